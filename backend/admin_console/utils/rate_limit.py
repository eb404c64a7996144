from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from admin_console.config import settings


def get_real_ip(request: Request) -> str:
    """Extract the real client IP, respecting TRUSTED_PROXY_COUNT.

    When TRUSTED_PROXY_COUNT is 0 (default), ignore X-Forwarded-For entirely
    and use the direct connection IP. When > 0, pick the IP at position
    len(ips) - trusted_proxy_count from X-Forwarded-For to prevent spoofing.
    """
    trusted_proxy_count = settings.TRUSTED_PROXY_COUNT
    if trusted_proxy_count > 0:
        forwarded = request.headers.get("X-Forwarded-For", "")
        if forwarded:
            ips = [ip.strip() for ip in forwarded.split(",")]
            index = max(0, len(ips) - trusted_proxy_count)
            return ips[index]
    return get_remote_address(request)


_is_dev = settings.APP_ENV == "development"

limiter = Limiter(
    key_func=get_real_ip,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI or None,
    default_limits=["200/minute" if _is_dev else "60/minute"],
)

# Dashboard screens poll these; keep them generous
LIST_RATE_LIMIT = "100/minute" if _is_dev else "30/minute"
# Money-moving and moderation actions
MUTATION_RATE_LIMIT = "30/minute" if _is_dev else "10/minute"
DOWNLOAD_RATE_LIMIT = "60/minute" if _is_dev else "20/minute"
