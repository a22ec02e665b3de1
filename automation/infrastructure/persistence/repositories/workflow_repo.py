"""Automation workflow repository. Implements IWorkflowRepository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.dtos.workflow import WorkflowCreate, WorkflowResult
from automation.infrastructure.persistence.models.automation import AutomationWorkflow
from automation.shared.enums import WorkflowStatus
from automation.shared.utils.datetime import utc_now

_UPDATABLE_FIELDS = frozenset(
    {"name", "description", "trigger_type", "trigger_config", "steps", "status", "activated_at"}
)


def workflow_to_result(w: AutomationWorkflow) -> WorkflowResult:
    """Map AutomationWorkflow ORM to WorkflowResult DTO."""
    return WorkflowResult(
        id=w.id,
        store_id=w.store_id,
        name=w.name,
        description=w.description,
        trigger_type=w.trigger_type,
        trigger_config=dict(w.trigger_config or {}),
        steps=list(w.steps or []),
        status=w.status,
        activated_at=w.activated_at,
        created_at=w.created_at,
        updated_at=w.updated_at,
    )


class WorkflowRepository:
    """Workflow definition repository (soft-deleted rows are invisible)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get(self, workflow_id: str, store_id: str) -> AutomationWorkflow | None:
        result = await self.db.execute(
            select(AutomationWorkflow).where(
                AutomationWorkflow.id == workflow_id,
                AutomationWorkflow.store_id == store_id,
                AutomationWorkflow.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def create_workflow(self, store_id: str, data: WorkflowCreate) -> WorkflowResult:
        workflow = AutomationWorkflow(
            store_id=store_id,
            name=data.name,
            description=data.description,
            trigger_type=data.trigger_type,
            trigger_config=dict(data.trigger_config or {}),
            steps=list(data.steps or []),
            status=WorkflowStatus.DRAFT.value,
        )
        async with self.db.begin_nested():
            self.db.add(workflow)
            await self.db.flush()
        await self.db.refresh(workflow)
        return workflow_to_result(workflow)

    async def get_by_id_and_store(
        self, workflow_id: str, store_id: str
    ) -> WorkflowResult | None:
        workflow = await self._get(workflow_id, store_id)
        return workflow_to_result(workflow) if workflow else None

    async def list_by_store(
        self,
        store_id: str,
        *,
        status: str | None = None,
        trigger_type: str | None = None,
        limit: int = 100,
    ) -> list[WorkflowResult]:
        q = select(AutomationWorkflow).where(
            AutomationWorkflow.store_id == store_id,
            AutomationWorkflow.deleted_at.is_(None),
        )
        if status is not None:
            q = q.where(AutomationWorkflow.status == status)
        if trigger_type is not None:
            q = q.where(AutomationWorkflow.trigger_type == trigger_type)
        q = q.order_by(AutomationWorkflow.created_at.desc()).limit(limit)
        result = await self.db.execute(q)
        return [workflow_to_result(w) for w in result.scalars().all()]

    async def update_workflow(
        self, store_id: str, workflow_id: str, changes: dict[str, Any]
    ) -> WorkflowResult | None:
        workflow = await self._get(workflow_id, store_id)
        if workflow is None:
            return None
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update workflow fields: {sorted(unknown)}")
        async with self.db.begin_nested():
            for key, value in changes.items():
                setattr(workflow, key, value)
            await self.db.flush()
        await self.db.refresh(workflow)
        return workflow_to_result(workflow)

    async def soft_delete(self, store_id: str, workflow_id: str) -> bool:
        workflow = await self._get(workflow_id, store_id)
        if workflow is None:
            return False
        async with self.db.begin_nested():
            workflow.deleted_at = utc_now()
            await self.db.flush()
        return True

    async def get_active_by_trigger(
        self, store_id: str, trigger_type: str
    ) -> list[WorkflowResult]:
        result = await self.db.execute(
            select(AutomationWorkflow)
            .where(
                AutomationWorkflow.store_id == store_id,
                AutomationWorkflow.trigger_type == trigger_type,
                AutomationWorkflow.status == WorkflowStatus.ACTIVE.value,
                AutomationWorkflow.deleted_at.is_(None),
            )
            .order_by(AutomationWorkflow.created_at.asc())
        )
        return [workflow_to_result(w) for w in result.scalars().all()]

    async def get_store_ids_with_active_workflows(self) -> list[str]:
        result = await self.db.execute(
            select(AutomationWorkflow.store_id)
            .where(
                AutomationWorkflow.status == WorkflowStatus.ACTIVE.value,
                AutomationWorkflow.deleted_at.is_(None),
            )
            .distinct()
            .order_by(AutomationWorkflow.store_id)
        )
        return list(result.scalars().all())
