import time
from typing import AsyncIterator

import httpx
import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from admin_console.services.api_client import MarketplaceClient
from admin_console.services.disputes import DisputeService
from admin_console.services.documents import DocumentProxy
from admin_console.services.promotions import PromotionService
from admin_console.services.referrals import ReferralService
from admin_console.services.service_approval import ServiceApprovalService
from admin_console.utils.log_mask import mask_token

logger = structlog.get_logger()
security = HTTPBearer(auto_error=False)


async def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """The admin's bearer token, forwarded as-is to the marketplace API.

    Signatures are checked upstream. A JWT whose ``exp`` is already past is
    refused here so the dashboard is sent back to login without a round trip;
    opaque tokens pass through untouched.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Please log in again",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = credentials.credentials
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return token
    exp = claims.get("exp")
    if isinstance(exp, (int, float)) and exp < time.time():
        logger.info("expired_token_refused", token=mask_token(token))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - Session expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def get_upstream_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for outbound calls; None means real network. Overridden in tests."""
    return None


async def get_marketplace_client(
    token: str = Depends(get_access_token),
    transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport),
) -> AsyncIterator[MarketplaceClient]:
    client = MarketplaceClient(token, transport=transport)
    try:
        yield client
    finally:
        await client.aclose()


def get_dispute_service(client: MarketplaceClient = Depends(get_marketplace_client)) -> DisputeService:
    return DisputeService(client)


def get_referral_service(client: MarketplaceClient = Depends(get_marketplace_client)) -> ReferralService:
    return ReferralService(client)


def get_promotion_service(client: MarketplaceClient = Depends(get_marketplace_client)) -> PromotionService:
    return PromotionService(client)


def get_service_approval_service(
    client: MarketplaceClient = Depends(get_marketplace_client),
) -> ServiceApprovalService:
    return ServiceApprovalService(client)


def get_document_proxy(
    token: str = Depends(get_access_token),
    transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport),
) -> DocumentProxy:
    # The token dependency only gates access; it is not handed to the proxy
    return DocumentProxy(transport=transport)
