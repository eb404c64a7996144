from dataclasses import dataclass
from urllib.parse import unquote

import httpx
import structlog

from admin_console.config import settings
from admin_console.errors import NetworkError, RemoteError, ValidationError
from admin_console.metrics import DOCUMENT_DOWNLOADS

logger = structlog.get_logger()

MAX_REDIRECTS = 5


@dataclass
class DownloadedDocument:
    filename: str
    content_type: str
    content: bytes


def document_filename(url: str) -> str:
    """Last path segment without the query string, 'download' when there is none."""
    path = url.split("?", 1)[0].split("#", 1)[0]
    if "://" in path:
        path = path.split("://", 1)[1]
    segments = path.split("/")[1:]  # drop the host
    name = segments[-1] if segments else ""
    return unquote(name) or "download"


class DocumentProxy:
    """Fetch dispute evidence and ticket attachments on behalf of the dashboard.

    The admin's session token is never forwarded to the document host.
    """

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        allowed_hosts: set[str] | None = None,
        max_bytes: int | None = None,
    ):
        self.transport = transport
        self.allowed_hosts = settings.document_allowed_hosts if allowed_hosts is None else allowed_hosts
        self.max_bytes = max_bytes or settings.DOCUMENT_MAX_BYTES

    def validate_url(self, url: str) -> httpx.URL:
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError):
            raise ValidationError("Invalid document URL") from None
        if parsed.scheme != "https" or not parsed.host:
            raise ValidationError("Only https document URLs can be downloaded")
        if self.allowed_hosts and parsed.host.lower() not in self.allowed_hosts:
            logger.warning("document_host_rejected", host=parsed.host)
            raise ValidationError("Document host is not allowed")
        return parsed

    async def fetch(self, url: str) -> DownloadedDocument:
        target = self.validate_url(url)
        chunks: list[bytes] = []
        size = 0
        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS),
        ) as client:
            try:
                # Redirects are followed by hand so every hop passes validate_url
                for _ in range(MAX_REDIRECTS + 1):
                    async with client.stream("GET", target) as response:
                        if response.is_redirect:
                            location = target.join(response.headers["location"])
                            logger.info("document_redirect", host=target.host, location_host=location.host)
                            target = self._validate_hop(location)
                            continue
                        if not response.is_success:
                            DOCUMENT_DOWNLOADS.labels("upstream_error").inc()
                            logger.error(
                                "document_download_failed", host=target.host, status_code=response.status_code
                            )
                            raise RemoteError(response.status_code, "Download failed")
                        content_type = response.headers.get("content-type", "application/octet-stream")
                        async for chunk in response.aiter_bytes():
                            size += len(chunk)
                            if size > self.max_bytes:
                                DOCUMENT_DOWNLOADS.labels("too_large").inc()
                                raise ValidationError("Document is too large to download")
                            chunks.append(chunk)
                        break
                else:
                    DOCUMENT_DOWNLOADS.labels("upstream_error").inc()
                    logger.error("document_too_many_redirects", host=target.host)
                    raise RemoteError(response.status_code, "Download failed: too many redirects")
            except httpx.HTTPError as exc:
                DOCUMENT_DOWNLOADS.labels("network_error").inc()
                logger.error("document_download_error", host=target.host, error=str(exc))
                raise NetworkError(str(exc)) from exc

        DOCUMENT_DOWNLOADS.labels("success").inc()
        logger.info("document_downloaded", host=target.host, size=size)
        return DownloadedDocument(
            filename=document_filename(url),
            content_type=content_type,
            content=b"".join(chunks),
        )

    def _validate_hop(self, location: httpx.URL) -> httpx.URL:
        try:
            return self.validate_url(str(location))
        except ValidationError:
            DOCUMENT_DOWNLOADS.labels("redirect_rejected").inc()
            raise
