from urllib.parse import quote

import structlog

from admin_console.models.enums import DisputeStatus, ResolutionAction
from admin_console.schemas.dispute import (
    Dispute,
    DisputeListResponse,
    DisputeResolutionResponse,
    ResolveDisputeRequest,
)
from admin_console.services.api_client import MarketplaceClient

logger = structlog.get_logger()


class DisputeService:
    """Thin wrapper over the marketplace dispute endpoints."""

    def __init__(self, client: MarketplaceClient):
        self.client = client

    async def list_disputes(
        self,
        page: int | None = None,
        limit: int | None = None,
        status: DisputeStatus | str | None = None,
    ) -> DisputeListResponse:
        params: dict = {}
        if page is not None:
            params["page"] = page
        if limit is not None:
            params["limit"] = limit
        if status:
            params["status"] = status.value if isinstance(status, DisputeStatus) else status
        data = await self.client.get("/disputes", params=params or None)
        return DisputeListResponse.model_validate(data or {})

    async def get_dispute(self, dispute_id: str) -> Dispute:
        data = await self.client.get(f"/disputes/{quote(dispute_id, safe='')}")
        return Dispute.model_validate(data)

    async def resolve_dispute(
        self,
        dispute_id: str,
        action: ResolutionAction,
        comment: str | None = None,
        buyer_percentage: int | None = None,
    ) -> DisputeResolutionResponse:
        body = ResolveDisputeRequest(
            action=action,
            resolve_comment=comment,
            buyer_percentage=buyer_percentage,
        )
        data = await self.client.post(
            f"/disputes/{quote(dispute_id, safe='')}/resolve", json=body.to_wire()
        )
        logger.info("dispute_resolve_sent", dispute_id=dispute_id, action=action.value)
        return DisputeResolutionResponse.model_validate(data or {})

    async def refund_buyer(self, dispute_id: str, comment: str | None = None) -> DisputeResolutionResponse:
        """Refund the refundable 70% share to the buyer."""
        return await self.resolve_dispute(dispute_id, ResolutionAction.REFUND_BUYER, comment)

    async def pay_seller(self, dispute_id: str, comment: str | None = None) -> DisputeResolutionResponse:
        """Release the held escrow to the seller."""
        return await self.resolve_dispute(dispute_id, ResolutionAction.PAY_SELLER, comment)

    async def split_payment(
        self,
        dispute_id: str,
        buyer_percentage: int,
        comment: str | None = None,
    ) -> DisputeResolutionResponse:
        return await self.resolve_dispute(
            dispute_id, ResolutionAction.SPLIT_PAYMENT, comment, buyer_percentage
        )

    async def request_rework(self, dispute_id: str, comment: str | None = None) -> DisputeResolutionResponse:
        """Send the job back to the seller; no funds move."""
        return await self.resolve_dispute(dispute_id, ResolutionAction.REQUEST_REWORK, comment)
