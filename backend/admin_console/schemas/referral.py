from datetime import datetime
from typing import Any

from pydantic import Field

from admin_console.models.enums import ReferralStatus
from admin_console.schemas.common import CamelModel


class ReferralParty(CamelModel):
    id: str
    full_name: str
    email: str | None = None


class ReferralEvent(CamelModel):
    id: str
    referral_id: str | None = None
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class ReferralItem(CamelModel):
    id: str
    referrer_id: str | None = None
    referred_id: str | None = None
    signup_date: datetime | None = None
    first_transaction_amount: float | None = None
    first_transaction_status: str | None = None
    status: ReferralStatus
    reward_amount: float | None = None
    reward_paid_at: datetime | None = None
    reward_paid: bool = False
    reward_transaction_id: str | None = None
    note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    referral_code_used: str | None = None
    referrer: ReferralParty | None = None
    referred: ReferralParty | None = None
    events: list[ReferralEvent] = Field(default_factory=list)


class ReferralListResponse(CamelModel):
    items: list[ReferralItem] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20


class ReferralStats(CamelModel):
    total_referrals: int = 0
    successful_referrals: int = 0
    rewards_paid_count: int = 0
    rewards_paid_total: float = 0
    current_reward_rate: float | None = None
    reward_eligibility_days: int | None = None
    max_transaction_amount: float | None = None


class ReferralProgramSettings(CamelModel):
    id: str | None = None
    active: bool = False
    platform_fee_percentage: float = 0
    max_transaction_amount: float | None = None
    reward_eligibility_days: int | None = None
    max_referrals_per_user_per_month: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReferralSettingsUpdate(CamelModel):
    """Partial upsert: only the fields that are set go on the wire."""
    active: bool | None = None
    platform_fee_percentage: float | None = Field(None, ge=0, le=100)
    max_transaction_amount: float | None = Field(None, ge=0)
    reward_eligibility_days: int | None = Field(None, ge=0)
    max_referrals_per_user_per_month: int | None = Field(None, ge=0)


class MarkPaidRequest(CamelModel):
    referral_id: str
    override_amount: float
    note: str | None = None


class MarkIneligibleRequest(CamelModel):
    referral_id: str
    reason: str


class MarkPaidForm(CamelModel):
    # Kept as text: the dashboard input is a string and is validated as such
    override_amount: str | float | None = None
    note: str | None = None


class MarkIneligibleForm(CamelModel):
    reason: str = ""


class ReferralActionOutcome(CamelModel):
    referral: ReferralItem | None = None
    message: str | None = None
    referrals: ReferralListResponse | None = None
    stats: ReferralStats | None = None
    referrals_error: str | None = None
    stats_error: str | None = None
