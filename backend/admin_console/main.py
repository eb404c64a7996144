import re as _re
import time as _time
import uuid as _uuid
from contextlib import asynccontextmanager

import httpx
import sentry_sdk
import structlog
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.responses import Response as StarletteResponse

from admin_console.config import settings
from admin_console.dependencies import get_upstream_transport
from admin_console.disputes.routes import router as disputes_router
from admin_console.documents.routes import router as documents_router
from admin_console.errors import AdminConsoleError, user_message
from admin_console.middleware import SecurityHeadersMiddleware
from admin_console.promotions.routes import router as promotions_router
from admin_console.referrals.routes import router as referrals_router
from admin_console.service_approval.routes import router as services_router
from admin_console.utils.rate_limit import limiter

# Configure structlog: JSON in production, console in development
processors = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]
if settings.is_production:
    processors.append(structlog.processors.JSONRenderer())
else:
    processors.append(structlog.dev.ConsoleRenderer())

structlog.configure(
    processors=processors,
    wrapper_class=structlog.make_filtering_bound_logger(0),
)

logger = structlog.get_logger()

# Sentry error tracking
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=0.1,
        environment=settings.APP_ENV,
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "admin_console_startup",
        env=settings.APP_ENV,
        api_target=settings.API_TARGET,
        api_base_url=settings.api_base_url,
    )
    yield
    logger.info("admin_console_shutdown")


app = FastAPI(
    title="Marketplace Admin Console",
    description="Admin back-office for disputes, referral payouts, promotions and service moderation",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(AdminConsoleError)
async def admin_console_error_handler(request: Request, exc: AdminConsoleError):
    """Workflow errors that escaped a route keep their own status code."""
    logger.warning("admin_console_error", path=request.url.path, error=str(exc), status_code=exc.http_status)
    return JSONResponse(
        status_code=exc.http_status,
        content={"detail": user_message(exc, "Something went wrong")},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return a safe 500 response outside development."""
    logger.exception("unhandled_exception", path=request.url.path)
    if settings.APP_ENV != "development":
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
    raise exc


# Middleware is LIFO: the last middleware added runs first.
if settings.is_production:
    # Credentialed requests are only allowed from the explicit dashboard origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    if not settings.cors_origins_list:
        logger.warning("cors_origins_empty_in_production", app_env=settings.APP_ENV)
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list or ["http://localhost:3000"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(SecurityHeadersMiddleware, is_production=settings.is_production)


_REQUEST_ID_RE = _re.compile(r"^[a-zA-Z0-9\-]{1,64}$")


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Attach a unique request ID and measure duration for every request."""
    # Validate X-Request-ID to prevent log injection
    client_id = request.headers.get("X-Request-ID")
    request_id = client_id if client_id and _REQUEST_ID_RE.match(client_id) else str(_uuid.uuid4())
    structlog.contextvars.bind_contextvars(request_id=request_id)
    start = _time.monotonic()
    try:
        response = await call_next(request)
        duration_ms = (_time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms:.1f}ms"
        if duration_ms > 1000:
            logger.warning(
                "slow_request",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 1),
                status_code=response.status_code,
            )
        return response
    finally:
        structlog.contextvars.clear_contextvars()


_HTTP_REQUESTS = Counter(
    "admin_console_http_requests_total", "Total HTTP requests",
    ["method", "status", "handler"],
)
_HTTP_LATENCY = Histogram(
    "admin_console_http_request_duration_seconds", "Request latency",
    ["method", "handler"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)


def _safe_metrics(info) -> None:
    # Replaces metrics.default(), which chokes on non-numeric Content-Length headers
    _HTTP_REQUESTS.labels(info.method, info.modified_status, info.modified_handler).inc()
    _HTTP_LATENCY.labels(info.method, info.modified_handler).observe(info.modified_duration)


Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/health", "/metrics"],
).add(_safe_metrics).instrument(app)


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint(request: Request):
    """Prometheus metrics endpoint (protected by API key)."""
    if settings.is_production and not settings.METRICS_API_KEY:
        raise HTTPException(status_code=503, detail="Metrics not available")

    if settings.METRICS_API_KEY:
        api_key = request.headers.get("x-metrics-key", "")
        if api_key != settings.METRICS_API_KEY:
            raise HTTPException(status_code=403, detail="Invalid metrics API key")

    return StarletteResponse(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


app.include_router(disputes_router)
app.include_router(referrals_router)
app.include_router(promotions_router)
app.include_router(services_router)
app.include_router(documents_router)


@app.get("/health")
@limiter.limit("60/minute")
async def health_check(
    request: Request,
    transport: httpx.AsyncBaseTransport | None = Depends(get_upstream_transport),
):
    """Console status plus marketplace API reachability.

    Any HTTP answer counts as reachable, even a 401: only a transport
    failure marks the upstream down.
    """
    result: dict = {"status": "ok", "api_target": settings.API_TARGET, "upstream": "reachable"}
    try:
        async with httpx.AsyncClient(
            base_url=settings.api_base_url,
            transport=transport,
            timeout=httpx.Timeout(5.0),
        ) as client:
            await client.get("/")
    except httpx.HTTPError as exc:
        logger.warning("health_upstream_unreachable", error=str(exc))
        result["upstream"] = "unreachable"
        result["status"] = "degraded"
        if settings.is_production:
            return JSONResponse(status_code=503, content=result)
    return result
