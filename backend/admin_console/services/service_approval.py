from typing import Awaitable, Callable
from urllib.parse import quote

import structlog

from admin_console.errors import AdminConsoleError, BulkOperationError, ValidationError
from admin_console.metrics import MODERATION_DECISIONS
from admin_console.schemas.service import BulkOperationResult, FailedId, MarketplaceService
from admin_console.services.api_client import MarketplaceClient

logger = structlog.get_logger()


class ServiceApprovalService:
    """Approve or reject seller services, singly or in bulk.

    Bulk calls fall back to one call per id when the bulk endpoint fails, so a
    single bad id does not block the rest of the selection.
    """

    def __init__(self, client: MarketplaceClient):
        self.client = client

    async def list_by_status(self) -> list[MarketplaceService]:
        data = await self.client.get("/master-services/by-status", params={"page": 1, "limit": 100}) or {}
        services: list[MarketplaceService] = []
        for bucket in ("pending", "approved", "rejected"):
            for item in (data.get(bucket) or {}).get("data") or []:
                services.append(MarketplaceService.model_validate(item))
        return services

    async def approve_one(self, service_id: str) -> None:
        await self.client.patch(f"/master-services/{quote(service_id, safe='')}/approve")

    async def reject_one(self, service_id: str, reason: str | None = None) -> None:
        await self.client.patch(
            f"/master-services/{quote(service_id, safe='')}/reject", json={"reason": reason}
        )

    async def approve(self, ids: list[str]) -> BulkOperationResult:
        if not ids:
            raise ValidationError("No services selected for approval")
        if len(ids) == 1:
            await self.approve_one(ids[0])
            MODERATION_DECISIONS.labels("approve", "success").inc()
            return _all_successful(ids)
        return await self._bulk_with_fallback(
            "approve",
            ids,
            lambda: self.client.post("/master-services/bulk-approve", json={"ids": ids}),
            self.approve_one,
        )

    async def reject(self, ids: list[str], reason: str | None = None) -> BulkOperationResult:
        if not ids:
            raise ValidationError("No services selected for rejection")
        if len(ids) == 1:
            await self.reject_one(ids[0], reason)
            MODERATION_DECISIONS.labels("reject", "success").inc()
            return _all_successful(ids)
        return await self._bulk_with_fallback(
            "reject",
            ids,
            lambda: self.client.post("/master-services/bulk-reject", json={"ids": ids, "reason": reason}),
            lambda service_id: self.reject_one(service_id, reason),
        )

    async def _bulk_with_fallback(
        self,
        decision: str,
        ids: list[str],
        bulk_call: Callable[[], Awaitable],
        single_call: Callable[[str], Awaitable],
    ) -> BulkOperationResult:
        try:
            await bulk_call()
        except AdminConsoleError as exc:
            bulk_error = exc
            logger.warning("bulk_moderation_failed", decision=decision, count=len(ids), error=str(exc))
        else:
            MODERATION_DECISIONS.labels(decision, "success").inc(len(ids))
            return _all_successful(ids)

        result = BulkOperationResult()
        result.summary.total = len(ids)
        for service_id in ids:
            try:
                await single_call(service_id)
            except AdminConsoleError as exc:
                result.failed.append(FailedId(id=service_id, error=str(exc)))
                result.summary.failure_count += 1
            else:
                result.successful.append(service_id)
                result.summary.success_count += 1

        MODERATION_DECISIONS.labels(decision, "success").inc(result.summary.success_count)
        MODERATION_DECISIONS.labels(decision, "failure").inc(result.summary.failure_count)

        if result.summary.failure_count == len(ids):
            raise bulk_error
        if result.summary.failure_count:
            verb = "approved" if decision == "approve" else "rejected"
            details = "; ".join(f"{f.id}: {f.error}" for f in result.failed)
            raise BulkOperationError(
                result,
                f"Partial success: {result.summary.success_count} {verb}, "
                f"{result.summary.failure_count} failed. {details}",
            )
        return result


def _all_successful(ids: list[str]) -> BulkOperationResult:
    result = BulkOperationResult(successful=list(ids))
    result.summary.total = len(ids)
    result.summary.success_count = len(ids)
    return result
