import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from admin_console.disputes.dispatcher import DisputeResolutionDispatcher, ResolutionParams
from admin_console.dependencies import get_dispute_service
from admin_console.errors import AdminConsoleError
from admin_console.schemas.dispute import (
    DisputeDetailView,
    DisputeListResponse,
    ResolutionFormView,
    ResolutionOption,
    ResolutionOutcome,
    ResolveDisputeForm,
)
from admin_console.services.disputes import DisputeService
from admin_console.state import DisputeScreen
from admin_console.utils.dispute_status import status_label, to_api_status
from admin_console.utils.http_errors import http_error
from admin_console.utils.rate_limit import LIST_RATE_LIMIT, MUTATION_RATE_LIMIT, limiter
from admin_console.utils.resolution import (
    DEFAULT_BUYER_PERCENTAGE,
    MAX_BUYER_PERCENTAGE,
    RESOLUTION_NOTICE,
    RESOLUTION_OPTIONS,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/admin/disputes", tags=["disputes"])


def _resolution_form_view() -> ResolutionFormView:
    return ResolutionFormView(
        options=[ResolutionOption(label=label, action=action) for label, action in RESOLUTION_OPTIONS],
        max_buyer_percentage=MAX_BUYER_PERCENTAGE,
        default_buyer_percentage=DEFAULT_BUYER_PERCENTAGE,
        notice=RESOLUTION_NOTICE,
    )


@router.get("", response_model=DisputeListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_disputes(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=200),
    status_filter: str | None = Query(None, alias="status"),
    service: DisputeService = Depends(get_dispute_service),
):
    """List disputes. ``status`` accepts the API value or its display form."""
    api_status = None
    if status_filter:
        try:
            api_status = to_api_status(status_filter)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

    screen = DisputeScreen()
    try:
        return await service.list_disputes(page=page, limit=limit or screen.page_size, status=api_status)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load disputes")


@router.get("/resolution-options", response_model=ResolutionFormView)
async def get_resolution_options():
    return _resolution_form_view()


@router.get("/{dispute_id}", response_model=DisputeDetailView)
async def get_dispute(
    dispute_id: str,
    service: DisputeService = Depends(get_dispute_service),
):
    """Detail view: the resolution form is offered only while the dispute is unresolved."""
    try:
        dispute = await service.get_dispute(dispute_id)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load dispute")

    if dispute.is_resolved:
        return DisputeDetailView(
            dispute=dispute,
            display_status=status_label(dispute.status),
            resolve_comment=dispute.resolve_comment,
        )
    return DisputeDetailView(
        dispute=dispute,
        display_status=status_label(dispute.status),
        resolution_form=_resolution_form_view(),
    )


@router.post("/{dispute_id}/resolve", response_model=ResolutionOutcome)
@limiter.limit(MUTATION_RATE_LIMIT)
async def resolve_dispute(
    request: Request,
    dispute_id: str,
    body: ResolveDisputeForm,
    service: DisputeService = Depends(get_dispute_service),
):
    """Resolve a dispute and return the refreshed first page of the list.

    The dashboard may send either the dropdown label or the action itself.
    """
    try:
        dispute = await service.get_dispute(dispute_id)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to resolve dispute")

    screen = DisputeScreen()
    screen.open_detail(dispute)
    form = screen.form
    if body.resolution is not None:
        form.select(body.resolution)
    else:
        form.action = body.action
    form.buyer_percentage = body.buyer_percentage
    form.comment = body.comment

    # Nothing is displayed server-side, so the detail view closes at once
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)
    try:
        result = await dispatcher.resolve(
            dispute,
            form.action,
            ResolutionParams(buyer_percentage=form.buyer_percentage),
            form.comment,
        )
    except AdminConsoleError as exc:
        logger.warning("dispute_resolution_rejected", dispute_id=dispute_id, error=str(exc))
        raise http_error(exc, "Failed to resolve dispute")

    return ResolutionOutcome(
        dispute_id=result.dispute_id,
        action=result.action,
        message=result.response.message,
        paid_amount=result.response.paid_amount,
        max_refund=result.response.max_refund,
        buyer_percentage=result.buyer_percentage,
        seller_percentage=result.seller_percentage,
        disputes=DisputeListResponse(data=screen.disputes, meta=screen.meta),
        disputes_error=screen.error,
    )
