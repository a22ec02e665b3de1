"""Presentation-layer dependency injection (composition root).

Routes depend only on these dependencies, never on repositories directly.
Read endpoints get a service over a plain session; writes get one over a
transactional session (commit on success, rollback on error).
"""

from __future__ import annotations

from typing import Annotated

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.use_cases.automation import AutomationService
from automation.core.config import get_settings
from automation.domain.exceptions import ValidationException
from automation.infrastructure.persistence.database import get_db, get_db_transactional
from automation.infrastructure.services.automation_factory import build_automation_service

_STORE_ID_MAX_LENGTH = 64


def get_store_id(request: Request) -> str:
    """Resolve the store from the configured header (default X-Store-ID)."""
    header = get_settings().store_header_name
    store_id = (request.headers.get(header) or "").strip()
    if not store_id:
        raise ValidationException(f"{header} header is required", field=header)
    if len(store_id) > _STORE_ID_MAX_LENGTH:
        raise ValidationException(f"{header} header is too long", field=header)
    return store_id


def _http_client(request: Request) -> httpx.AsyncClient | None:
    return getattr(request.app.state, "webhook_http_client", None)


async def get_automation_service(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AutomationService:
    """AutomationService for read operations."""
    return build_automation_service(db, http_client=_http_client(request))


async def get_automation_service_for_write(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> AutomationService:
    """AutomationService for writes, triggers and job kicks (transactional)."""
    return build_automation_service(db, http_client=_http_client(request))
