"""Automation step log repository (append-only). Implements IStepLogRepository."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.dtos.enrollment import StepLogCreate, StepLogResult
from automation.infrastructure.persistence.models.automation import AutomationStepLog


def _to_result(s: AutomationStepLog) -> StepLogResult:
    """Map AutomationStepLog ORM to StepLogResult DTO."""
    return StepLogResult(
        id=s.id,
        store_id=s.store_id,
        workflow_id=s.workflow_id,
        enrollment_id=s.enrollment_id,
        customer_id=s.customer_id,
        step_index=s.step_index,
        step_type=s.step_type,
        status=s.status,
        error_message=s.error_message,
        metadata=dict(s.log_metadata or {}),
        created_at=s.created_at,
    )


class StepLogRepository:
    """Step log repository."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def log_step(self, store_id: str, entry: StepLogCreate) -> None:
        log = AutomationStepLog(
            store_id=store_id,
            workflow_id=entry.workflow_id,
            enrollment_id=entry.enrollment_id,
            customer_id=entry.customer_id,
            step_index=entry.step_index,
            step_type=entry.step_type,
            status=entry.status,
            error_message=entry.error_message,
            log_metadata=dict(entry.metadata or {}),
        )
        async with self.db.begin_nested():
            self.db.add(log)
            await self.db.flush()

    async def get_by_workflow(
        self,
        store_id: str,
        workflow_id: str,
        *,
        status: str | None = None,
        limit: int = 100,
    ) -> list[StepLogResult]:
        q = select(AutomationStepLog).where(
            AutomationStepLog.store_id == store_id,
            AutomationStepLog.workflow_id == workflow_id,
        )
        if status is not None:
            q = q.where(AutomationStepLog.status == status)
        q = q.order_by(AutomationStepLog.created_at.desc()).limit(limit)
        result = await self.db.execute(q)
        return [_to_result(s) for s in result.scalars().all()]

    async def count_by_status(self, store_id: str, workflow_id: str) -> dict[str, int]:
        result = await self.db.execute(
            select(AutomationStepLog.status, func.count())
            .where(
                AutomationStepLog.store_id == store_id,
                AutomationStepLog.workflow_id == workflow_id,
            )
            .group_by(AutomationStepLog.status)
        )
        return {status: count for status, count in result.all()}
