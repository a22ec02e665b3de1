"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. The database URL is checked when the engine is first
created, not at import time, so pure engine code and tests run without it.
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env."""

    # App
    app_name: str = "automation-engine"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str | None = None

    # Database (postgresql+asyncpg://...)
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # Store resolution for the HTTP surface
    store_header_name: str = "X-Store-ID"

    # Engine
    automation_batch_size: int = 100
    automation_lease_seconds: int = 300
    abandoned_cart_min_idle_minutes: int = 60
    abandoned_cart_max_idle_hours: int = 24
    scheduler_interval_seconds: int = 60
    webhook_timeout_seconds: float = 30.0

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_engine_limits(self) -> "Settings":
        """Reject batch/lease/window values the engine cannot work with."""
        if self.automation_batch_size < 1:
            raise ValueError("AUTOMATION_BATCH_SIZE must be >= 1")
        if self.automation_lease_seconds < 1:
            raise ValueError("AUTOMATION_LEASE_SECONDS must be >= 1")
        if self.abandoned_cart_min_idle_minutes < 1:
            raise ValueError("ABANDONED_CART_MIN_IDLE_MINUTES must be >= 1")
        if self.abandoned_cart_min_idle_minutes >= self.abandoned_cart_max_idle_hours * 60:
            raise ValueError(
                "Abandoned cart window is empty: ABANDONED_CART_MIN_IDLE_MINUTES must be "
                "shorter than ABANDONED_CART_MAX_IDLE_HOURS."
            )
        if not 0.0 <= self.telemetry_sample_rate <= 1.0:
            raise ValueError("TELEMETRY_SAMPLE_RATE must be between 0.0 and 1.0")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.
    """
    return Settings()
