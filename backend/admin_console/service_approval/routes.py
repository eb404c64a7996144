import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from admin_console.dependencies import get_service_approval_service
from admin_console.errors import AdminConsoleError, BulkOperationError
from admin_console.schemas.service import BulkOperationResult, MarketplaceService, ModerationRequest
from admin_console.services.service_approval import ServiceApprovalService
from admin_console.utils.http_errors import http_error
from admin_console.utils.rate_limit import LIST_RATE_LIMIT, MUTATION_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter(prefix="/admin/services", tags=["services"])


def _partial_response(exc: BulkOperationError) -> JSONResponse:
    # 207: the dashboard lists which ids went through and which did not
    return JSONResponse(
        status_code=status.HTTP_207_MULTI_STATUS,
        content={"detail": exc.message, "result": exc.result.to_wire()},
    )


@router.get("", response_model=list[MarketplaceService])
@limiter.limit(LIST_RATE_LIMIT)
async def list_services(
    request: Request,
    service: ServiceApprovalService = Depends(get_service_approval_service),
):
    try:
        return await service.list_by_status()
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to load services")


@router.post("/approve", response_model=BulkOperationResult)
@limiter.limit(MUTATION_RATE_LIMIT)
async def approve_services(
    request: Request,
    body: ModerationRequest,
    service: ServiceApprovalService = Depends(get_service_approval_service),
):
    try:
        return await service.approve(body.ids)
    except BulkOperationError as exc:
        return _partial_response(exc)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to approve services")


@router.post("/reject", response_model=BulkOperationResult)
@limiter.limit(MUTATION_RATE_LIMIT)
async def reject_services(
    request: Request,
    body: ModerationRequest,
    service: ServiceApprovalService = Depends(get_service_approval_service),
):
    """Reject the selected services; the reason is optional and shared by all of them."""
    reason = (body.reason or "").strip() or None
    try:
        return await service.reject(body.ids, reason)
    except BulkOperationError as exc:
        return _partial_response(exc)
    except AdminConsoleError as exc:
        raise http_error(exc, "Failed to reject services")
