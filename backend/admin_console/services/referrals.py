from urllib.parse import quote

import structlog

from admin_console.schemas.referral import (
    MarkIneligibleRequest,
    MarkPaidRequest,
    ReferralItem,
    ReferralListResponse,
    ReferralProgramSettings,
    ReferralSettingsUpdate,
    ReferralStats,
)
from admin_console.services.api_client import MarketplaceClient

logger = structlog.get_logger()


def _referral_or_none(data) -> ReferralItem | None:
    # Admin override endpoints answer with the updated referral or a bare ack
    if isinstance(data, dict) and "id" in data and "status" in data:
        return ReferralItem.model_validate(data)
    return None


class ReferralService:
    def __init__(self, client: MarketplaceClient):
        self.client = client

    async def list_referrals(self) -> ReferralListResponse:
        # The backend ignores pagination parameters and always returns everything
        data = await self.client.get("/referrals")
        return ReferralListResponse.model_validate(data or {})

    async def get_stats(self) -> ReferralStats:
        data = await self.client.get("/referrals/stats")
        return ReferralStats.model_validate(data or {})

    async def get_settings(self) -> ReferralProgramSettings:
        data = await self.client.get("/referrals/settings")
        return ReferralProgramSettings.model_validate(data or {})

    async def get_referral(self, referral_id: str) -> ReferralItem:
        data = await self.client.get(f"/referrals/{quote(referral_id, safe='')}")
        return ReferralItem.model_validate(data)

    async def upsert_settings(self, update: ReferralSettingsUpdate) -> ReferralProgramSettings:
        """Create or update program settings; only the fields that were set are sent."""
        payload = update.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=True)
        data = await self.client.post("/referrals/upsert", json=payload)
        logger.info("referral_settings_upserted", fields=sorted(payload))
        return ReferralProgramSettings.model_validate(data or {})

    async def mark_as_paid(
        self,
        referral_id: str,
        override_amount: float,
        note: str | None = None,
    ) -> ReferralItem | None:
        body = MarkPaidRequest(referral_id=referral_id, override_amount=override_amount, note=note)
        data = await self.client.patch("/referrals/admin/mark-paid", json=body.to_wire())
        return _referral_or_none(data)

    async def mark_as_ineligible(self, referral_id: str, reason: str) -> ReferralItem | None:
        body = MarkIneligibleRequest(referral_id=referral_id, reason=reason)
        data = await self.client.patch("/referrals/admin/mark-ineligible", json=body.to_wire())
        return _referral_or_none(data)

    async def recalculate_and_retry(self, referral_id: str) -> ReferralItem | None:
        data = await self.client.patch(
            f"/referrals/admin/recalculate-and-retry/{quote(referral_id, safe='')}"
        )
        return _referral_or_none(data)
