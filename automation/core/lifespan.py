"""Application lifespan: startup and shutdown.

Only wiring of infrastructure here (shared HTTP client, telemetry, DB
engine dispose); no business logic.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from automation.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup: shared webhook HTTP client, telemetry (if enabled).
    Shutdown: HTTP client close, telemetry shutdown, SQL engine dispose.
    """
    settings = get_settings()

    # ---- Startup ----
    app.state.webhook_http_client = httpx.AsyncClient(
        timeout=settings.webhook_timeout_seconds
    )

    if settings.telemetry_enabled:
        from automation.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument_fastapi(app)

        from automation.infrastructure.persistence import database

        database._ensure_engine()
        if database.engine is not None:
            telemetry.instrument_sqlalchemy(database.engine)
        logger.info("Telemetry initialized")

    yield

    # ---- Shutdown ----
    if getattr(app.state, "webhook_http_client", None) is not None:
        await app.state.webhook_http_client.aclose()
        app.state.webhook_http_client = None
        logger.info("Webhook HTTP client closed")

    from automation.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        set_telemetry(None)

    from automation.infrastructure.persistence import database

    await database.dispose_engine()
