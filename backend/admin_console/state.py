"""Explicit per-screen state, handed to the workflows that mutate it.

Nothing here is a module-level singleton: each caller builds the screen it
needs (one per request in the HTTP layer) and passes it down.
"""
import asyncio
from dataclasses import dataclass, field

from admin_console.config import settings
from admin_console.models.enums import OperationEvent, ResolutionAction
from admin_console.schemas.common import PageMeta
from admin_console.schemas.dispute import Dispute
from admin_console.schemas.promotion import PromotionalOffer, PromotionalStats
from admin_console.schemas.referral import ReferralItem, ReferralProgramSettings, ReferralStats
from admin_console.utils.operation import OperationState, reduce_operation
from admin_console.utils.resolution import (
    DEFAULT_BUYER_PERCENTAGE,
    select_resolution_action,
    seller_share,
)


@dataclass
class ResolutionForm:
    action: ResolutionAction | None = None
    label: str | None = None
    buyer_percentage: int = DEFAULT_BUYER_PERCENTAGE
    comment: str = ""
    operation: OperationState = field(default_factory=OperationState)

    @property
    def seller_percentage(self) -> int:
        return seller_share(self.buyer_percentage)

    @property
    def error(self) -> str | None:
        return self.operation.error

    def select(self, label: str | None) -> ResolutionAction | None:
        """Pick a dropdown entry; any transient error is cleared either way."""
        self.action = select_resolution_action(label)
        self.label = label if self.action is not None else None
        if not self.operation.busy:
            self.operation = reduce_operation(self.operation, OperationEvent.RESET)
        return self.action


@dataclass
class DisputeScreen:
    disputes: list[Dispute] = field(default_factory=list)
    meta: PageMeta | None = None
    loading: bool = False
    error: str | None = None
    selected: Dispute | None = None
    detail_open: bool = False
    form: ResolutionForm = field(default_factory=ResolutionForm)
    pending_close: asyncio.Task | None = None

    @property
    def page_size(self) -> int:
        if self.meta and self.meta.limit:
            return self.meta.limit
        return settings.DISPUTE_PAGE_SIZE

    def open_detail(self, dispute: Dispute) -> None:
        self.selected = dispute
        self.detail_open = True
        self.form = ResolutionForm()

    def close_detail(self) -> None:
        """Hide the detail view; the selected dispute stays until clear_selection."""
        self.detail_open = False

    def clear_selection(self) -> None:
        self.selected = None
        self.form = ResolutionForm()


@dataclass
class ReferralModal:
    referral_id: str
    referral: ReferralItem | None = None
    override_amount: str = ""
    note: str = ""
    reason: str = ""
    is_open: bool = True
    success_banner: bool = False
    operation: OperationState = field(default_factory=OperationState)
    pending_close: asyncio.Task | None = None

    @property
    def error(self) -> str | None:
        return self.operation.error

    def reset_inputs(self) -> None:
        self.override_amount = ""
        self.note = ""
        self.reason = ""

    def cancel(self) -> None:
        self.reset_inputs()
        self.operation = reduce_operation(self.operation, OperationEvent.RESET)
        self.is_open = False

    def close(self) -> None:
        self.success_banner = False
        self.is_open = False


@dataclass
class ReferralScreen:
    referrals: list[ReferralItem] = field(default_factory=list)
    meta: PageMeta | None = None
    loading: bool = False
    error: str | None = None
    stats: ReferralStats | None = None
    stats_error: str | None = None
    program_settings: ReferralProgramSettings | None = None
    settings_error: str | None = None
    modal: ReferralModal | None = None

    def open_modal(self, referral: ReferralItem | str) -> ReferralModal:
        if isinstance(referral, ReferralItem):
            self.modal = ReferralModal(referral_id=referral.id, referral=referral)
        else:
            self.modal = ReferralModal(referral_id=referral)
        return self.modal


@dataclass
class PromotionScreen:
    promotions: list[PromotionalOffer] = field(default_factory=list)
    meta: PageMeta | None = None
    stats: PromotionalStats | None = None
    stats_error: str | None = None
    loading: bool = False
    error: str | None = None


@dataclass
class ConsoleState:
    disputes: DisputeScreen = field(default_factory=DisputeScreen)
    referrals: ReferralScreen = field(default_factory=ReferralScreen)
    promotions: PromotionScreen = field(default_factory=PromotionScreen)
