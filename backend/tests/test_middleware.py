import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from admin_console.middleware import SecurityHeadersMiddleware


async def homepage(request: Request):
    return PlainTextResponse("OK")


async def _get(is_production: bool):
    test_app = Starlette(routes=[Route("/", homepage)])
    test_app.add_middleware(SecurityHeadersMiddleware, is_production=is_production)
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.get("/")


@pytest.mark.asyncio
async def test_security_headers_middleware():
    """All hardening headers, HSTS included, in production."""
    response = await _get(is_production=True)

    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert response.headers["Cache-Control"] == "no-store"
    assert "max-age=31536000" in response.headers["Strict-Transport-Security"]
    assert "Content-Security-Policy" in response.headers


@pytest.mark.asyncio
async def test_security_headers_no_hsts_in_dev():
    response = await _get(is_production=False)

    assert response.status_code == 200
    assert "Strict-Transport-Security" not in response.headers
    # Admin data is never cacheable, whatever the environment
    assert response.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_request_id_echoed(client, fake_api):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.headers["X-Process-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_request_id_rejects_injection(client, fake_api):
    response = await client.get("/health", headers={"X-Request-ID": "bad id; forged=1"})
    assert response.headers["X-Request-ID"] != "bad id; forged=1"
    assert len(response.headers["X-Request-ID"]) == 36
