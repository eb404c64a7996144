from datetime import datetime

from pydantic import Field

from admin_console.models.enums import ServiceApprovalStatus
from admin_console.schemas.common import CamelModel


class SellerUser(CamelModel):
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None


class SellerProfile(CamelModel):
    user: SellerUser | None = None


class MarketplaceService(CamelModel):
    id: str
    title: str
    created_at: datetime | None = None
    status: ServiceApprovalStatus
    rejected_at: datetime | None = None
    rejected_reason: str | None = None
    seller_profiles: list[SellerProfile] = Field(default_factory=list)


class ModerationRequest(CamelModel):
    ids: list[str]
    reason: str | None = Field(None, max_length=500)


class FailedId(CamelModel):
    id: str
    error: str


class BulkSummary(CamelModel):
    total: int = 0
    success_count: int = 0
    failure_count: int = 0


class BulkOperationResult(CamelModel):
    successful: list[str] = Field(default_factory=list)
    failed: list[FailedId] = Field(default_factory=list)
    summary: BulkSummary = Field(default_factory=BulkSummary)
