from datetime import datetime

from pydantic import Field, field_validator

from admin_console.models.enums import DisputeStatus, OpenedByRole, ResolutionAction
from admin_console.schemas.common import CamelModel, PageMeta, PartySummary
from admin_console.utils.dispute_status import is_terminal, to_api_status


class BookingSummary(CamelModel):
    id: str | None = None
    service_title: str | None = None
    status: str | None = None


class Dispute(CamelModel):
    id: str
    booking_id: str
    opened_by_id: str | None = None
    opened_by_role: OpenedByRole | None = None
    buyer_id: str | None = None
    seller_id: str | None = None
    buyer: PartySummary
    seller: PartySummary | None = None
    reason: str
    description: str = ""
    evidence_urls: list[str] = Field(default_factory=list)
    status: DisputeStatus
    resolve_comment: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    booking: BookingSummary | None = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return to_api_status(v)
        return v

    @field_validator("opened_by_role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    @property
    def is_resolved(self) -> bool:
        return is_terminal(self.status)


class DisputeListResponse(CamelModel):
    data: list[Dispute] = Field(default_factory=list)
    meta: PageMeta | None = None


class ResolveDisputeRequest(CamelModel):
    """Body of POST /disputes/{id}/resolve on the marketplace API."""
    action: ResolutionAction
    resolve_comment: str | None = None
    buyer_percentage: int | None = None


class DisputeResolutionResponse(CamelModel):
    message: str = ""
    paid_amount: float | None = None
    max_refund: float | None = None
    action: ResolutionAction | None = None


class ResolutionOption(CamelModel):
    label: str
    action: ResolutionAction


class ResolveDisputeForm(CamelModel):
    """What the dashboard submits to the console."""
    resolution: str | None = Field(None, description="Label picked from the resolution dropdown")
    action: ResolutionAction | None = None
    buyer_percentage: int = 50
    comment: str = ""


class ResolutionFormView(CamelModel):
    options: list[ResolutionOption]
    max_buyer_percentage: int
    default_buyer_percentage: int
    notice: str


class DisputeDetailView(CamelModel):
    dispute: Dispute
    display_status: str
    # None once the dispute is resolved: the comment is shown read-only instead
    resolution_form: ResolutionFormView | None = None
    resolve_comment: str | None = None


class ResolutionOutcome(CamelModel):
    dispute_id: str
    action: ResolutionAction
    message: str = ""
    paid_amount: float | None = None
    max_refund: float | None = None
    buyer_percentage: int | None = None
    seller_percentage: int | None = None
    disputes: DisputeListResponse
    disputes_error: str | None = None
