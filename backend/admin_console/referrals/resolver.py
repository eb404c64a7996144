"""Admin overrides on a referral payout: mark paid, mark ineligible, retry."""
import inspect
import math
from typing import Any, Awaitable, Callable

import structlog

from admin_console.config import settings
from admin_console.errors import InvalidAmount, MissingFields
from admin_console.metrics import REFERRAL_ACTIONS
from admin_console.models.enums import OperationStatus, ReferralAction, ReferralStatus
from admin_console.schemas.referral import ReferralItem
from admin_console.services.referrals import ReferralService
from admin_console.state import ReferralModal
from admin_console.utils.background import schedule_after
from admin_console.utils.log_mask import mask_email
from admin_console.utils.operation import run_operation
from admin_console.utils.referral_state import next_referral_status

logger = structlog.get_logger()

FALLBACK_MESSAGES = {
    ReferralAction.MARK_PAID: "Failed to mark as paid",
    ReferralAction.MARK_INELIGIBLE: "Failed to mark as ineligible",
    ReferralAction.RECALCULATE_AND_RETRY: "Failed to recalculate and retry payout",
}


def parse_override_amount(value: str | float | int | None) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFields("Override amount is required")
    if isinstance(value, bool):
        raise InvalidAmount()
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        try:
            amount = float(value.strip())
        except ValueError:
            raise InvalidAmount() from None
    # nan and inf parse as floats but cannot be sent as JSON
    if not math.isfinite(amount):
        raise InvalidAmount()
    return amount


class ReferralStatusResolver:
    """Runs one admin action and signals completion through ``on_complete``.

    When a modal is given, the recalculate path raises its success banner and
    closes it after ``banner_duration``; the other two signal completion
    straight away and leave closing to the caller.
    """

    def __init__(
        self,
        service: ReferralService,
        modal: ReferralModal | None = None,
        *,
        on_complete: Callable[[], Any] | None = None,
        banner_duration: float | None = None,
    ):
        self.service = service
        self.modal = modal
        self.on_complete = on_complete
        self.banner_duration = (
            settings.RECALCULATE_BANNER_SECONDS if banner_duration is None else banner_duration
        )

    async def mark_as_paid(
        self,
        referral_id: str,
        override_amount: str | float | None,
        note: str | None = None,
        current_status: ReferralStatus | None = None,
    ) -> ReferralItem | None:
        amount = parse_override_amount(override_amount)
        self._check_transition(current_status, ReferralAction.MARK_PAID)
        note = (note or "").strip() or None
        referral = await self._call(
            ReferralAction.MARK_PAID,
            referral_id,
            lambda: self.service.mark_as_paid(referral_id, amount, note),
        )
        logger.info("referral_marked_paid", referral_id=referral_id, override_amount=amount, **_party_fields(referral))
        await self._complete()
        return referral

    async def mark_as_ineligible(
        self,
        referral_id: str,
        reason: str | None,
        current_status: ReferralStatus | None = None,
    ) -> ReferralItem | None:
        reason = (reason or "").strip()
        if not reason:
            raise MissingFields("Please provide a reason")
        self._check_transition(current_status, ReferralAction.MARK_INELIGIBLE)
        referral = await self._call(
            ReferralAction.MARK_INELIGIBLE,
            referral_id,
            lambda: self.service.mark_as_ineligible(referral_id, reason),
        )
        logger.info("referral_marked_ineligible", referral_id=referral_id, **_party_fields(referral))
        await self._complete()
        return referral

    async def recalculate_and_retry(
        self,
        referral_id: str,
        current_status: ReferralStatus | None = None,
    ) -> ReferralItem | None:
        self._check_transition(current_status, ReferralAction.RECALCULATE_AND_RETRY)
        referral = await self._call(
            ReferralAction.RECALCULATE_AND_RETRY,
            referral_id,
            lambda: self.service.recalculate_and_retry(referral_id),
        )
        logger.info("referral_payout_retried", referral_id=referral_id)
        if self.modal is None:
            await self._complete()
            return referral

        self.modal.success_banner = True
        modal = self.modal

        async def _close_and_complete() -> None:
            modal.close()
            await self._complete()

        if self.banner_duration <= 0:
            await _close_and_complete()
        else:
            modal.pending_close = schedule_after(self.banner_duration, _close_and_complete)
        return referral

    def _check_transition(self, current: ReferralStatus | None, action: ReferralAction) -> None:
        if current is not None:
            next_referral_status(current, action)

    async def _call(
        self,
        action: ReferralAction,
        referral_id: str,
        call: Callable[[], Awaitable[ReferralItem | None]],
    ) -> ReferralItem | None:
        try:
            referral = await call()
        except Exception:
            REFERRAL_ACTIONS.labels(action=action.value, outcome="failed").inc()
            logger.warning("referral_action_failed", referral_id=referral_id, action=action.value)
            raise
        REFERRAL_ACTIONS.labels(action=action.value, outcome="succeeded").inc()
        return referral

    async def _complete(self) -> None:
        if self.on_complete is None:
            return
        result = self.on_complete()
        if inspect.isawaitable(result):
            await result


def _party_fields(referral: ReferralItem | None) -> dict:
    if referral is None:
        return {}
    fields = {}
    if referral.referrer and referral.referrer.email:
        fields["referrer_email"] = mask_email(referral.referrer.email)
    if referral.referred and referral.referred.email:
        fields["referred_email"] = mask_email(referral.referred.email)
    return fields


async def submit_referral_action(
    modal: ReferralModal,
    resolver: ReferralStatusResolver,
    action: ReferralAction,
) -> ReferralItem | None:
    """Drive ``modal`` through one action. Inputs survive a failure untouched."""
    current = modal.referral.status if modal.referral else None
    if action == ReferralAction.MARK_PAID:
        call = lambda: resolver.mark_as_paid(modal.referral_id, modal.override_amount, modal.note, current)
    elif action == ReferralAction.MARK_INELIGIBLE:
        call = lambda: resolver.mark_as_ineligible(modal.referral_id, modal.reason, current)
    else:
        call = lambda: resolver.recalculate_and_retry(modal.referral_id, current)
    result = await run_operation(modal, call, FALLBACK_MESSAGES[action])
    if action != ReferralAction.RECALCULATE_AND_RETRY and modal.operation.status == OperationStatus.SUCCEEDED:
        modal.reset_inputs()
        modal.close()
    return result
