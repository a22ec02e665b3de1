"""Pytest configuration and fixtures for the automation engine.

Uses automation.main:app for HTTP tests and
automation.infrastructure.persistence.database for DB-dependent fixtures.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from automation.api.v1.dependencies import (
    get_automation_service,
    get_automation_service_for_write,
)
from automation.infrastructure.persistence import database
from automation.main import app
from tests.fakes import STORE_ID, Engine, build_engine


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def engine() -> Engine:
    """AutomationService over in-memory repositories, injected into the API."""
    eng = build_engine()
    app.dependency_overrides[get_automation_service] = lambda: eng.service
    app.dependency_overrides[get_automation_service_for_write] = lambda: eng.service
    yield eng
    app.dependency_overrides.clear()


@pytest.fixture
def store_headers() -> dict[str, str]:
    return {"X-Store-ID": STORE_ID}


@pytest.fixture
async def db_session() -> AsyncSession:
    """Database session for repository/integration tests. Rolls back after test.

    Requires DATABASE_URL (postgresql+asyncpg://...) and a migrated schema.
    Skips when Postgres is not configured. Mark such tests with
    @pytest.mark.requires_db; run without DB via: pytest -m 'not requires_db'.
    """
    database._ensure_engine()
    if database.AsyncSessionLocal is None:
        pytest.skip(
            "Postgres not configured: set DATABASE_URL, then run: alembic upgrade head"
        )
    async with database.AsyncSessionLocal() as session:
        yield session
        await session.rollback()
