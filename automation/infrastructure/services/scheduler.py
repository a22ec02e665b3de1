"""Periodic driver: one automation cycle per store with active workflows."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.dtos.automation import CycleResult
from automation.application.use_cases.automation import AutomationService
from automation.core.config import Settings, get_settings
from automation.infrastructure.persistence.database import transactional_session
from automation.infrastructure.persistence.repositories import WorkflowRepository
from automation.infrastructure.services.automation_factory import build_automation_service
from automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
ServiceFactory = Callable[[AsyncSession], AutomationService]


class AutomationScheduler:
    """Runs check_abandoned_carts + process_pending_steps per store.

    Each store gets its own session and transaction, so a failure rolls back
    only that store's cycle and the next store still runs.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        session_factory: SessionFactory = transactional_session,
        service_factory: ServiceFactory | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._session_factory = session_factory
        self._service_factory = service_factory or (
            lambda db: build_automation_service(db, self._settings, http_client)
        )

    async def _store_ids(self) -> list[str]:
        async with self._session_factory() as db:
            return await WorkflowRepository(db).get_store_ids_with_active_workflows()

    async def run_once(self, store_ids: list[str] | None = None) -> list[CycleResult]:
        """Run one cycle for the given stores (default: every store owning an active workflow)."""
        if store_ids is None:
            store_ids = await self._store_ids()
        logger.info("Automation cycle starting for %d stores", len(store_ids))
        results: list[CycleResult] = []
        for store_id in store_ids:
            try:
                async with self._session_factory() as db:
                    service = self._service_factory(db)
                    result = await service.run_scheduled_cycle(store_id)
                results.append(result)
            except Exception:
                logger.exception("Automation cycle failed for store %s", store_id)
        logger.info(
            "Automation cycle finished: %d/%d stores succeeded", len(results), len(store_ids)
        )
        return results

    async def run_forever(
        self,
        store_ids: list[str] | None = None,
        stop: Callable[[], bool] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Run cycles every scheduler_interval_seconds until stop() returns True."""
        interval = self._settings.scheduler_interval_seconds
        while not (stop and stop()):
            await self.run_once(store_ids)
            await sleep(interval)
