import structlog
from fastapi import APIRouter, Depends, Request

from admin_console.config import settings
from admin_console.dependencies import get_referral_service
from admin_console.errors import AdminConsoleError
from admin_console.models.enums import ReferralAction
from admin_console.referrals.resolver import FALLBACK_MESSAGES, ReferralStatusResolver
from admin_console.schemas.referral import (
    MarkIneligibleForm,
    MarkPaidForm,
    ReferralActionOutcome,
    ReferralItem,
    ReferralListResponse,
    ReferralProgramSettings,
    ReferralSettingsUpdate,
    ReferralStats,
)
from admin_console.services.referrals import ReferralService
from admin_console.services.refresh import refresh_referrals
from admin_console.state import ReferralScreen
from admin_console.utils.http_errors import http_error
from admin_console.utils.rate_limit import LIST_RATE_LIMIT, MUTATION_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter(prefix="/admin/referrals", tags=["referrals"])


@router.get("", response_model=ReferralListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_referrals(
    request: Request,
    service: ReferralService = Depends(get_referral_service),
):
    try:
        return await service.list_referrals()
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load referrals")


@router.get("/stats", response_model=ReferralStats)
async def get_referral_stats(service: ReferralService = Depends(get_referral_service)):
    try:
        return await service.get_stats()
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load stats")


@router.get("/settings", response_model=ReferralProgramSettings)
async def get_referral_settings(service: ReferralService = Depends(get_referral_service)):
    try:
        return await service.get_settings()
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load settings")


@router.post("/settings", response_model=ReferralProgramSettings)
@limiter.limit(MUTATION_RATE_LIMIT)
async def upsert_referral_settings(
    request: Request,
    body: ReferralSettingsUpdate,
    service: ReferralService = Depends(get_referral_service),
):
    try:
        return await service.upsert_settings(body)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to update settings")


@router.get("/{referral_id}", response_model=ReferralItem)
async def get_referral(
    referral_id: str,
    service: ReferralService = Depends(get_referral_service),
):
    try:
        return await service.get_referral(referral_id)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load referral")


async def _run_action(
    service: ReferralService,
    referral_id: str,
    action: ReferralAction,
    form: MarkPaidForm | MarkIneligibleForm | None = None,
) -> ReferralActionOutcome:
    """Apply one admin action to a referral, then return the refreshed list and stats.

    The referral is loaded first so its current status can be checked
    against the allowed transitions before anything is sent.
    """
    fallback = FALLBACK_MESSAGES[action]
    screen = ReferralScreen()
    try:
        current = await service.get_referral(referral_id)
    except AdminConsoleError as exc:
        raise http_error(exc, fallback)
    screen.open_modal(current)

    resolver = ReferralStatusResolver(
        service,
        on_complete=lambda: refresh_referrals(screen, service),
    )
    try:
        if action == ReferralAction.MARK_PAID:
            updated = await resolver.mark_as_paid(
                referral_id, form.override_amount, form.note, current_status=current.status
            )
        elif action == ReferralAction.MARK_INELIGIBLE:
            updated = await resolver.mark_as_ineligible(
                referral_id, form.reason, current_status=current.status
            )
        else:
            updated = await resolver.recalculate_and_retry(referral_id, current_status=current.status)
    except AdminConsoleError as exc:
        raise http_error(exc, fallback)

    message = None
    if action == ReferralAction.RECALCULATE_AND_RETRY:
        message = "Payout recalculated and retry initiated"
    return ReferralActionOutcome(
        referral=updated,
        message=message,
        referrals=ReferralListResponse(
            items=screen.referrals,
            total=screen.meta.total if screen.meta else 0,
            page=1,
            limit=settings.REFERRAL_PAGE_SIZE,
        ),
        stats=screen.stats,
        referrals_error=screen.error,
        stats_error=screen.stats_error,
    )


@router.patch("/{referral_id}/mark-paid", response_model=ReferralActionOutcome)
@limiter.limit(MUTATION_RATE_LIMIT)
async def mark_referral_paid(
    request: Request,
    referral_id: str,
    body: MarkPaidForm,
    service: ReferralService = Depends(get_referral_service),
):
    return await _run_action(service, referral_id, ReferralAction.MARK_PAID, body)


@router.patch("/{referral_id}/mark-ineligible", response_model=ReferralActionOutcome)
@limiter.limit(MUTATION_RATE_LIMIT)
async def mark_referral_ineligible(
    request: Request,
    referral_id: str,
    body: MarkIneligibleForm,
    service: ReferralService = Depends(get_referral_service),
):
    return await _run_action(service, referral_id, ReferralAction.MARK_INELIGIBLE, body)


@router.patch("/{referral_id}/recalculate-and-retry", response_model=ReferralActionOutcome)
@limiter.limit(MUTATION_RATE_LIMIT)
async def recalculate_referral_payout(
    request: Request,
    referral_id: str,
    service: ReferralService = Depends(get_referral_service),
):
    return await _run_action(service, referral_id, ReferralAction.RECALCULATE_AND_RETRY)
