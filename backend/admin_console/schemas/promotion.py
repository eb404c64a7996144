from datetime import datetime

from pydantic import Field, model_validator

from admin_console.models.enums import PromotionStatus
from admin_console.schemas.common import CamelModel


class PromotionalOffer(CamelModel):
    id: str
    offer_title: str
    eligible_user: str
    type: str
    activation_trigger: str
    status: str
    start_date: datetime
    end_date: datetime
    max_redemption_per_user: int
    max_total_redemption: int
    reward_value: float
    reward_unit: str
    redemptions: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PromotionalStats(CamelModel):
    active_promotions: int = 0
    total_redemptions: int = 0
    reward_given: float = 0
    new_users: int = 0


class PromotionListResponse(CamelModel):
    items: list[PromotionalOffer] = Field(default_factory=list)
    page: int = 1
    page_size: int = 20
    total: int = 0
    pages: int = 0


class PromotionCreate(CamelModel):
    offer_title: str = Field(min_length=1, max_length=200)
    eligible_user: str
    type: str
    activation_trigger: str
    status: PromotionStatus = PromotionStatus.DRAFT
    start_date: datetime
    end_date: datetime
    max_redemption_per_user: int = Field(ge=1)
    max_total_redemption: int = Field(ge=1)
    reward_value: float = Field(gt=0)
    reward_unit: str

    @model_validator(mode="after")
    def validate_dates(self) -> "PromotionCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class PromotionUpdate(CamelModel):
    offer_title: str | None = Field(None, min_length=1, max_length=200)
    eligible_user: str | None = None
    type: str | None = None
    activation_trigger: str | None = None
    status: PromotionStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_redemption_per_user: int | None = Field(None, ge=1)
    max_total_redemption: int | None = Field(None, ge=1)
    reward_value: float | None = Field(None, gt=0)
    reward_unit: str | None = None


class PromotionView(CamelModel):
    offer: PromotionalOffer
    effective_status: PromotionStatus


class PromotionMutationOutcome(CamelModel):
    offer: PromotionalOffer | None = None
    promotions: PromotionListResponse | None = None
    stats: PromotionalStats | None = None
    promotions_error: str | None = None
    stats_error: str | None = None
