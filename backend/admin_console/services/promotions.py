from datetime import datetime, timezone
from urllib.parse import quote

import structlog

from admin_console.errors import ValidationError
from admin_console.models.enums import PromotionStatus
from admin_console.schemas.promotion import (
    PromotionalOffer,
    PromotionalStats,
    PromotionCreate,
    PromotionListResponse,
    PromotionUpdate,
)
from admin_console.services.api_client import MarketplaceClient

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 20


def _validate_positive_int(name: str, value, default: int) -> int:
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer number") from None
    if not number.is_integer():
        raise ValidationError(f"{name} must be an integer number")
    if number < 1:
        raise ValidationError(f"{name} must not be less than 1")
    return int(number)


def validate_pagination(page=None, page_size=None) -> tuple[int, int]:
    return (
        _validate_positive_int("page", page, 1),
        _validate_positive_int("pageSize", page_size, DEFAULT_PAGE_SIZE),
    )


def effective_status(offer: PromotionalOffer, now: datetime | None = None) -> PromotionStatus:
    """Draft -> Active -> Expired, driven by the offer's dates.

    An explicit Draft stays a draft until its end date passes; Completed is an
    admin decision and is never overridden.
    """
    now = now or datetime.now(timezone.utc)
    start, end = offer.start_date, offer.end_date
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)

    if offer.status == PromotionStatus.COMPLETED.value:
        return PromotionStatus.COMPLETED
    if now >= end:
        return PromotionStatus.EXPIRED
    if offer.status == PromotionStatus.DRAFT.value or now < start:
        return PromotionStatus.DRAFT
    return PromotionStatus.ACTIVE


class PromotionService:
    def __init__(self, client: MarketplaceClient):
        self.client = client

    async def list_promotions(self, page=1, page_size=DEFAULT_PAGE_SIZE) -> PromotionListResponse:
        page, page_size = validate_pagination(page, page_size)
        data = await self.client.get("/promotions", params={"page": page, "pageSize": page_size})
        return PromotionListResponse.model_validate(data or {})

    async def get_stats(self) -> PromotionalStats:
        data = await self.client.get("/promotions/stats/overview")
        return PromotionalStats.model_validate(data or {})

    async def get_promotion(self, promotion_id: str) -> PromotionalOffer:
        data = await self.client.get(f"/promotions/{quote(promotion_id, safe='')}")
        return PromotionalOffer.model_validate(data)

    async def create_promotion(self, payload: PromotionCreate) -> PromotionalOffer:
        data = await self.client.post("/promotions", json=payload.to_wire())
        offer = PromotionalOffer.model_validate(data)
        logger.info("promotion_created", promotion_id=offer.id)
        return offer

    async def update_promotion(self, promotion_id: str, payload: PromotionUpdate) -> PromotionalOffer:
        body = payload.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=True)
        data = await self.client.patch(f"/promotions/{quote(promotion_id, safe='')}", json=body)
        logger.info("promotion_updated", promotion_id=promotion_id, fields=sorted(body))
        return PromotionalOffer.model_validate(data)

    async def delete_promotion(self, promotion_id: str) -> None:
        await self.client.delete(f"/promotions/{quote(promotion_id, safe='')}")
        logger.info("promotion_deleted", promotion_id=promotion_id)
