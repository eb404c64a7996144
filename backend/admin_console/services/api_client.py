import time as _time
from typing import Any

import httpx
import structlog

from admin_console.config import settings
from admin_console.errors import AuthError, NetworkError, RemoteError
from admin_console.metrics import UPSTREAM_CALL_DURATION

logger = structlog.get_logger()


def extract_error_message(data: Any) -> str | None:
    """Pull a human message out of an error body: message, then error, then detail."""
    if not isinstance(data, dict):
        return None
    for key in ("message", "error", "detail"):
        value = data.get(key)
        if not value:
            continue
        # NestJS-style validation errors arrive as a list of strings
        if isinstance(value, list):
            return ", ".join(str(v) for v in value)
        if isinstance(value, str):
            return value
    return None


class MarketplaceClient:
    """Authenticated JSON client for the marketplace REST API.

    One instance per admin request: it carries that admin's bearer token and
    forwards it unchanged. Durable state lives upstream; nothing is cached here.
    """

    def __init__(
        self,
        access_token: str | None,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        self.access_token = access_token
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        if timeout is None:
            timeout = settings.UPSTREAM_TIMEOUT_SECONDS
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "MarketplaceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict | None = None,
    ) -> Any:
        if not self.access_token:
            logger.warning("upstream_request_without_token", endpoint=endpoint)
            raise AuthError("Unauthorized - Please log in again")

        start = _time.monotonic()
        try:
            response = await self._http.request(
                method,
                endpoint,
                json=json,
                params=params,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
        except httpx.HTTPError as exc:
            UPSTREAM_CALL_DURATION.labels(method, "error").observe(_time.monotonic() - start)
            logger.error("upstream_request_failed", method=method, endpoint=endpoint, error=str(exc))
            raise NetworkError(str(exc)) from exc
        UPSTREAM_CALL_DURATION.labels(method, str(response.status_code)).observe(
            _time.monotonic() - start
        )

        if response.status_code == 401:
            logger.warning("upstream_unauthorized", endpoint=endpoint)
            raise AuthError("Unauthorized - Session expired")
        if response.status_code == 403:
            logger.warning("upstream_forbidden", endpoint=endpoint)
            raise AuthError("Forbidden - Access denied", http_status=403)

        data: Any = None
        if response.content:
            try:
                data = response.json()
            except ValueError:
                logger.warning(
                    "upstream_invalid_json",
                    endpoint=endpoint,
                    status_code=response.status_code,
                    body=response.text[:300],
                )

        if not response.is_success:
            message = extract_error_message(data)
            logger.error(
                "upstream_error_response",
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
                message=message,
            )
            raise RemoteError(response.status_code, message)

        logger.debug("upstream_request_ok", method=method, endpoint=endpoint)
        return data

    async def get(self, endpoint: str, *, params: dict | None = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json: Any = None) -> Any:
        return await self.request("POST", endpoint, json=json)

    async def patch(self, endpoint: str, json: Any = None) -> Any:
        return await self.request("PATCH", endpoint, json=json)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)
