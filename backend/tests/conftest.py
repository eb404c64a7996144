import json
import os
import time
from collections.abc import AsyncGenerator
from typing import Any, Callable

os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("MARKETPLACE_API_URL", "http://marketplace.test")
os.environ.setdefault("DOCUMENT_ALLOWED_HOSTS", "files.example.com")

import httpx
import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from admin_console.dependencies import get_upstream_transport
from admin_console.main import app
from admin_console.services.api_client import MarketplaceClient

Handler = Callable[[httpx.Request], httpx.Response]


class FakeMarketplace:
    """In-memory stand-in for the marketplace REST API.

    Routes are keyed on (method, path). Unregistered routes answer 404 with a
    marketplace-style error body. Every request is recorded in ``calls``.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Handler] = {}
        self.calls: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json_body: Any = None,
        handler: Handler | None = None,
    ) -> None:
        if handler is None:
            def handler(request: httpx.Request, _status=status_code, _body=json_body) -> httpx.Response:
                if _body is None:
                    return httpx.Response(_status)
                return httpx.Response(_status, json=_body)
        self.routes[(method.upper(), path)] = handler

    def fail_network(self, method: str, path: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)
        self.routes[(method.upper(), path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not found"})
        return handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [c for c in self.calls if c.method == method.upper() and c.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


def make_token(expires_in: int = 3600) -> str:
    return jwt.encode(
        {"sub": "admin-1", "role": "ADMIN", "exp": int(time.time()) + expires_in},
        "marketplace-signing-key-not-checked-here",
        algorithm="HS256",
    )


def make_dispute(**overrides) -> dict:
    data = {
        "id": "d1",
        "bookingId": "b1",
        "openedByRole": "buyer",
        "buyer": {"id": "u-buyer", "fullName": "Jane Buyer", "email": "jane@example.com"},
        "seller": {"id": "u-seller", "fullName": "Sam Seller", "email": "sam@example.com"},
        "reason": "Work not finished",
        "description": "The fence was only half painted",
        "evidenceUrls": ["https://files.example.com/evidence/photo-1.jpg"],
        "status": "OPEN",
        "createdAt": "2026-03-01T10:00:00Z",
    }
    data.update(overrides)
    return data


def make_referral(**overrides) -> dict:
    data = {
        "id": "r1",
        "referrerId": "u-1",
        "referredId": "u-2",
        "status": "PENDING",
        "rewardAmount": 25.0,
        "rewardPaid": False,
        "firstTransactionAmount": 500.0,
        "firstTransactionStatus": "Completed",
        "referrer": {"id": "u-1", "fullName": "Rita Referrer", "email": "rita@example.com"},
        "referred": {"id": "u-2", "fullName": "Ned Newcomer", "email": "ned@example.com"},
        "createdAt": "2026-02-01T09:00:00Z",
    }
    data.update(overrides)
    return data


def make_promotion(**overrides) -> dict:
    data = {
        "id": "p1",
        "offerTitle": "Spring cashback",
        "eligibleUser": "New users",
        "type": "Cashback",
        "activationTrigger": "First booking",
        "status": "Active",
        "startDate": "2026-03-01T00:00:00Z",
        "endDate": "2026-06-01T00:00:00Z",
        "maxRedemptionPerUser": 1,
        "maxTotalRedemption": 500,
        "rewardValue": 10,
        "rewardUnit": "percent",
    }
    data.update(overrides)
    return data


def make_service(**overrides) -> dict:
    data = {
        "id": "s1",
        "title": "Kitchen deep clean",
        "status": "PENDING",
        "createdAt": "2026-03-10T12:00:00Z",
        "sellerProfiles": [{"user": {"fullName": "Sam Seller", "email": "sam@example.com"}}],
    }
    data.update(overrides)
    return data


def dispute_page(disputes: list[dict], limit: int = 50) -> dict:
    return {
        "data": disputes,
        "meta": {"total": len(disputes), "page": 1, "limit": limit, "totalPages": 1},
    }


@pytest.fixture
def fake_api() -> FakeMarketplace:
    return FakeMarketplace()


@pytest_asyncio.fixture
async def marketplace_client(fake_api: FakeMarketplace) -> AsyncGenerator[MarketplaceClient, None]:
    client = MarketplaceClient("test-token", transport=fake_api.transport())
    yield client
    await client.aclose()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest_asyncio.fixture
async def client(fake_api: FakeMarketplace) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_upstream_transport] = fake_api.transport

    # Reset rate limiter storage between tests to avoid 429 errors
    from admin_console.utils.rate_limit import limiter
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
