"""Turns a validated resolution choice into exactly one marketplace call.

The dispatcher owns the success path: refetch the dispute list, then close
the detail view after a short delay. Failures propagate untouched so the
caller decides where the message goes.
"""
from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog

from admin_console.config import settings
from admin_console.errors import InvalidState
from admin_console.metrics import DISPUTE_RESOLUTIONS
from admin_console.models.enums import ResolutionAction
from admin_console.schemas.dispute import Dispute, DisputeResolutionResponse
from admin_console.services.disputes import DisputeService
from admin_console.services.refresh import refresh_disputes
from admin_console.state import DisputeScreen
from admin_console.utils.background import schedule_after
from admin_console.utils.operation import run_operation
from admin_console.utils.resolution import seller_share, validate_resolution

logger = structlog.get_logger()


@dataclass
class ResolutionParams:
    buyer_percentage: int | None = None


@dataclass
class ResolutionResult:
    dispute_id: str
    action: ResolutionAction
    response: DisputeResolutionResponse
    buyer_percentage: int | None = None

    @property
    def seller_percentage(self) -> int | None:
        if self.buyer_percentage is None:
            return None
        return seller_share(self.buyer_percentage)


Handler = Callable[[DisputeService, str, ResolutionParams, str], Awaitable[DisputeResolutionResponse]]

_HANDLERS: dict[ResolutionAction, Handler] = {
    ResolutionAction.REFUND_BUYER: lambda svc, id_, p, c: svc.refund_buyer(id_, c),
    ResolutionAction.PAY_SELLER: lambda svc, id_, p, c: svc.pay_seller(id_, c),
    ResolutionAction.SPLIT_PAYMENT: lambda svc, id_, p, c: svc.split_payment(id_, p.buyer_percentage, c),
    ResolutionAction.REQUEST_REWORK: lambda svc, id_, p, c: svc.request_rework(id_, c),
}


class DisputeResolutionDispatcher:
    def __init__(
        self,
        service: DisputeService,
        screen: DisputeScreen,
        close_delay: float | None = None,
    ):
        self.service = service
        self.screen = screen
        self.close_delay = settings.RESOLVE_CLOSE_DELAY_SECONDS if close_delay is None else close_delay

    async def resolve(
        self,
        dispute: Dispute,
        action: ResolutionAction | None,
        params: ResolutionParams | None,
        comment: str | None,
    ) -> ResolutionResult:
        params = params or ResolutionParams()
        if dispute.is_resolved:
            raise InvalidState("This dispute has already been resolved")
        validate_resolution(action, params.buyer_percentage, comment)

        if action != ResolutionAction.SPLIT_PAYMENT:
            params = ResolutionParams()
        handler = _HANDLERS[action]
        try:
            response = await handler(self.service, dispute.id, params, comment)
        except Exception:
            DISPUTE_RESOLUTIONS.labels(action=action.value, outcome="failed").inc()
            raise
        DISPUTE_RESOLUTIONS.labels(action=action.value, outcome="succeeded").inc()
        logger.info(
            "dispute_resolved",
            dispute_id=dispute.id,
            action=action.value,
            buyer_percentage=params.buyer_percentage,
        )

        await refresh_disputes(self.screen, self.service)
        self._schedule_close()
        return ResolutionResult(
            dispute_id=dispute.id,
            action=action,
            response=response,
            buyer_percentage=params.buyer_percentage,
        )

    def _schedule_close(self) -> None:
        if self.screen.pending_close is not None and not self.screen.pending_close.done():
            self.screen.pending_close.cancel()
        if self.close_delay <= 0:
            self.screen.pending_close = None
            self.screen.close_detail()
            return
        self.screen.pending_close = schedule_after(self.close_delay, self.screen.close_detail)


async def submit_resolution(
    screen: DisputeScreen,
    dispatcher: DisputeResolutionDispatcher,
) -> ResolutionResult | None:
    """Submit the open detail view's form. Does nothing while a submit is in flight."""
    form = screen.form
    if screen.selected is None:
        return None
    dispute = screen.selected
    return await run_operation(
        form,
        lambda: dispatcher.resolve(
            dispute,
            form.action,
            ResolutionParams(buyer_percentage=form.buyer_percentage),
            form.comment,
        ),
        "Failed to resolve dispute",
    )
