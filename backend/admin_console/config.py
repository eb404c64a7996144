import warnings

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

_DEFAULT_LIVE_API_URL = "http://localhost:3001"
_DEFAULT_STAGING_API_URL = "http://localhost:3002"


class Settings(BaseSettings):
    # Marketplace API (the admin console never owns data, it only proxies this API)
    API_TARGET: str = "live"
    MARKETPLACE_API_URL: str = _DEFAULT_LIVE_API_URL
    MARKETPLACE_STAGING_API_URL: str = _DEFAULT_STAGING_API_URL
    # None disables every httpx deadline: a fetch runs to completion or failure
    UPSTREAM_TIMEOUT_SECONDS: float | None = None

    @field_validator("API_TARGET")
    @classmethod
    def validate_api_target(cls, v: str) -> str:
        allowed = {"live", "staging"}
        if v not in allowed:
            raise ValueError(f"API_TARGET must be one of {allowed}, got '{v}'")
        return v

    # Screen defaults
    DISPUTE_PAGE_SIZE: int = 50
    REFERRAL_PAGE_SIZE: int = 100
    PROMOTION_PAGE_SIZE: int = 100

    # Presentation delays, overridable so tests never wait on real time
    RESOLVE_CLOSE_DELAY_SECONDS: float = 0.5
    RECALCULATE_BANNER_SECONDS: float = 2.0

    # Document download proxy
    DOCUMENT_ALLOWED_HOSTS: str = ""
    DOCUMENT_MAX_BYTES: int = 20 * 1024 * 1024

    # Sentry
    SENTRY_DSN: str = ""

    # Metrics
    METRICS_API_KEY: str = ""

    # Rate limiting (in-memory when empty)
    RATE_LIMIT_STORAGE_URI: str = ""
    TRUSTED_PROXY_COUNT: int = 0

    # App
    APP_ENV: str = "development"

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}, got '{v}'")
        return v
    APP_DEBUG: bool = False
    CORS_ORIGINS: str = ""

    @field_validator("MARKETPLACE_API_URL", "MARKETPLACE_STAGING_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints are joined as base + '/path'."""
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Warn in development but fail in production for insecure defaults."""
        if self.is_production:
            if not self.api_base_url.startswith("https://"):
                raise ValueError(
                    "The marketplace API must be reached over https in production."
                )
            if not self.METRICS_API_KEY:
                raise ValueError(
                    "METRICS_API_KEY must be set in production."
                )
            if not self.SENTRY_DSN:
                raise ValueError(
                    "SENTRY_DSN must be set in production for error monitoring."
                )
        else:
            if self.api_base_url in (_DEFAULT_LIVE_API_URL, _DEFAULT_STAGING_API_URL):
                warnings.warn(
                    f"Marketplace API points at the local default ({self.api_base_url}).",
                    stacklevel=2,
                )
            if not self.DOCUMENT_ALLOWED_HOSTS:
                warnings.warn(
                    "DOCUMENT_ALLOWED_HOSTS is empty: the download proxy accepts any https host.",
                    stacklevel=2,
                )
        return self

    @property
    def api_base_url(self) -> str:
        if self.API_TARGET == "staging":
            return self.MARKETPLACE_STAGING_API_URL
        return self.MARKETPLACE_API_URL

    @property
    def cors_origins_list(self) -> list[str]:
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def document_allowed_hosts(self) -> set[str]:
        return {h.strip().lower() for h in self.DOCUMENT_ALLOWED_HOSTS.split(",") if h.strip()}

    @property
    def is_production(self) -> bool:
        return self.APP_ENV in ("production", "staging")

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
