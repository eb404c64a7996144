from typing import Awaitable, Callable

import structlog
from fastapi import APIRouter, Depends, Query, Request, status

from admin_console.dependencies import get_promotion_service
from admin_console.errors import AdminConsoleError
from admin_console.schemas.promotion import (
    PromotionalOffer,
    PromotionalStats,
    PromotionCreate,
    PromotionListResponse,
    PromotionMutationOutcome,
    PromotionUpdate,
    PromotionView,
)
from admin_console.services.promotions import PromotionService, effective_status, validate_pagination
from admin_console.services.refresh import refresh_promotions
from admin_console.state import PromotionScreen
from admin_console.utils.http_errors import http_error
from admin_console.utils.rate_limit import LIST_RATE_LIMIT, MUTATION_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter(prefix="/admin/promotions", tags=["promotions"])


@router.get("", response_model=PromotionListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_promotions(
    request: Request,
    page: str | None = Query(None),
    page_size: str | None = Query(None, alias="pageSize"),
    service: PromotionService = Depends(get_promotion_service),
):
    # Raw strings: pagination errors are reported with the marketplace's own wording
    try:
        page_number, size = validate_pagination(page, page_size)
        return await service.list_promotions(page=page_number, page_size=size)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load promotions")


@router.get("/stats", response_model=PromotionalStats)
async def get_promotion_stats(service: PromotionService = Depends(get_promotion_service)):
    try:
        return await service.get_stats()
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load promotion stats")


@router.get("/{promotion_id}", response_model=PromotionView)
async def get_promotion(
    promotion_id: str,
    service: PromotionService = Depends(get_promotion_service),
):
    try:
        offer = await service.get_promotion(promotion_id)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load promotion")
    return PromotionView(offer=offer, effective_status=effective_status(offer))


async def _mutate(
    service: PromotionService,
    call: Callable[[], Awaitable[PromotionalOffer | None]],
    fallback: str,
) -> PromotionMutationOutcome:
    screen = PromotionScreen()
    try:
        offer = await call()
    except AdminConsoleError as exc:
        raise http_error(exc, fallback)
    await refresh_promotions(screen, service)
    return PromotionMutationOutcome(
        offer=offer,
        promotions=PromotionListResponse(
            items=screen.promotions,
            page=screen.meta.page if screen.meta else 1,
            page_size=screen.meta.limit if screen.meta else 0,
            total=screen.meta.total if screen.meta else 0,
            pages=(screen.meta.total_pages or 0) if screen.meta else 0,
        ),
        stats=screen.stats,
        promotions_error=screen.error,
        stats_error=screen.stats_error,
    )


@router.post("", response_model=PromotionMutationOutcome, status_code=status.HTTP_201_CREATED)
@limiter.limit(MUTATION_RATE_LIMIT)
async def create_promotion(
    request: Request,
    body: PromotionCreate,
    service: PromotionService = Depends(get_promotion_service),
):
    return await _mutate(service, lambda: service.create_promotion(body), "Failed to create promotion")


@router.patch("/{promotion_id}", response_model=PromotionMutationOutcome)
@limiter.limit(MUTATION_RATE_LIMIT)
async def update_promotion(
    request: Request,
    promotion_id: str,
    body: PromotionUpdate,
    service: PromotionService = Depends(get_promotion_service),
):
    return await _mutate(
        service, lambda: service.update_promotion(promotion_id, body), "Failed to update promotion"
    )


@router.delete("/{promotion_id}", response_model=PromotionMutationOutcome)
@limiter.limit(MUTATION_RATE_LIMIT)
async def delete_promotion(
    request: Request,
    promotion_id: str,
    service: PromotionService = Depends(get_promotion_service),
):
    async def _delete() -> None:
        await service.delete_promotion(promotion_id)

    return await _mutate(service, _delete, "Failed to delete promotion")
