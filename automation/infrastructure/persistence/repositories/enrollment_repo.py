"""Automation enrollment repository. Implements IEnrollmentRepository.

Holds the two storage-level guards of the engine: the dedup_key unique
constraint (one active enrollment per customer in a non-re-enrollable
workflow) and the processing lease taken by claim_pending_enrollments.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, exists, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.dtos.enrollment import (
    ClaimedEnrollment,
    EnrollmentPatch,
    EnrollmentResult,
)
from automation.infrastructure.persistence.models.automation import (
    DEDUP_CONSTRAINT,
    AutomationEnrollment,
    AutomationWorkflow,
)
from automation.infrastructure.persistence.models.customer import Customer
from automation.infrastructure.persistence.repositories.workflow_repo import (
    workflow_to_result,
)
from automation.shared.enums import EnrollmentStatus, WorkflowStatus
from automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_ACTIVE = EnrollmentStatus.ACTIVE.value


def dedup_key(workflow_id: str, customer_id: str) -> str:
    return f"{workflow_id}:{customer_id}"


def _to_result(e: AutomationEnrollment) -> EnrollmentResult:
    """Map AutomationEnrollment ORM to EnrollmentResult DTO."""
    return EnrollmentResult(
        id=e.id,
        store_id=e.store_id,
        workflow_id=e.workflow_id,
        customer_id=e.customer_id,
        status=e.status,
        current_step=e.current_step,
        next_step_at=e.next_step_at,
        last_step_at=e.last_step_at,
        trigger_data=dict(e.trigger_data or {}),
        exit_reason=e.exit_reason,
        enrolled_at=e.enrolled_at,
        completed_at=e.completed_at,
    )


def customer_to_dict(c: Customer) -> dict[str, Any]:
    """Flatten a customer row (custom attributes first, core columns win)."""
    return {
        **(c.attributes or {}),
        "id": c.id,
        "email": c.email,
        "phone": c.phone,
        "first_name": c.first_name,
        "last_name": c.last_name,
        "tags": list(c.tags or []),
    }


class EnrollmentRepository:
    """Enrollment repository. Every write runs in a savepoint."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def has_active_enrollment(
        self, store_id: str, workflow_id: str, customer_id: str
    ) -> bool:
        result = await self.db.execute(
            select(
                exists().where(
                    AutomationEnrollment.store_id == store_id,
                    AutomationEnrollment.workflow_id == workflow_id,
                    AutomationEnrollment.customer_id == customer_id,
                    AutomationEnrollment.status == _ACTIVE,
                )
            )
        )
        return bool(result.scalar())

    async def create_enrollment(
        self,
        store_id: str,
        workflow_id: str,
        customer_id: str,
        trigger_data: dict[str, Any],
        *,
        allow_re_enrollment: bool = False,
    ) -> EnrollmentResult | None:
        enrollment = AutomationEnrollment(
            store_id=store_id,
            workflow_id=workflow_id,
            customer_id=customer_id,
            status=_ACTIVE,
            current_step=0,
            next_step_at=None,
            trigger_data=dict(trigger_data or {}),
            dedup_key=None if allow_re_enrollment else dedup_key(workflow_id, customer_id),
        )
        try:
            async with self.db.begin_nested():
                self.db.add(enrollment)
                await self.db.flush()
        except IntegrityError as e:
            if DEDUP_CONSTRAINT not in str(e.orig):
                raise
            logger.info(
                "Duplicate active enrollment rejected: workflow=%s customer=%s",
                workflow_id,
                customer_id,
            )
            return None
        await self.db.refresh(enrollment)
        return _to_result(enrollment)

    async def claim_pending_enrollments(
        self,
        store_id: str,
        now: datetime,
        lease_until: datetime,
        limit: int,
    ) -> list[ClaimedEnrollment]:
        """Lock due rows (SKIP LOCKED), stamp the lease, and return them with workflow and customer."""
        stmt = (
            select(AutomationEnrollment, AutomationWorkflow, Customer)
            .join(
                AutomationWorkflow,
                AutomationWorkflow.id == AutomationEnrollment.workflow_id,
            )
            .outerjoin(
                Customer,
                and_(
                    Customer.id == AutomationEnrollment.customer_id,
                    Customer.store_id == AutomationEnrollment.store_id,
                ),
            )
            .where(
                AutomationEnrollment.store_id == store_id,
                AutomationEnrollment.status == _ACTIVE,
                or_(
                    AutomationEnrollment.next_step_at.is_(None),
                    AutomationEnrollment.next_step_at <= now,
                ),
                or_(
                    AutomationEnrollment.processing_until.is_(None),
                    AutomationEnrollment.processing_until < now,
                ),
                AutomationWorkflow.status == WorkflowStatus.ACTIVE.value,
                AutomationWorkflow.deleted_at.is_(None),
            )
            .order_by(
                AutomationEnrollment.next_step_at.asc().nulls_first(),
                AutomationEnrollment.enrolled_at.asc(),
            )
            .limit(limit)
            .with_for_update(of=AutomationEnrollment, skip_locked=True)
            .execution_options(populate_existing=True)
        )
        rows = (await self.db.execute(stmt)).all()
        if not rows:
            return []
        claimed = [
            ClaimedEnrollment(
                enrollment=_to_result(enrollment),
                workflow=workflow_to_result(workflow),
                customer=customer_to_dict(customer) if customer is not None else None,
            )
            for enrollment, workflow, customer in rows
        ]
        async with self.db.begin_nested():
            await self.db.execute(
                update(AutomationEnrollment)
                .where(AutomationEnrollment.id.in_([c.enrollment.id for c in claimed]))
                .values(processing_until=lease_until)
                .execution_options(synchronize_session=False)
            )
        return claimed

    async def release_claim(self, store_id: str, enrollment_id: str) -> None:
        async with self.db.begin_nested():
            await self.db.execute(
                update(AutomationEnrollment)
                .where(
                    AutomationEnrollment.id == enrollment_id,
                    AutomationEnrollment.store_id == store_id,
                )
                .values(processing_until=None)
                .execution_options(synchronize_session=False)
            )

    async def update_enrollment(
        self, store_id: str, enrollment_id: str, patch: EnrollmentPatch
    ) -> bool:
        values: dict[str, Any] = dict(patch)
        values["processing_until"] = None
        if values.get("status", _ACTIVE) != _ACTIVE:
            values["dedup_key"] = None
        async with self.db.begin_nested():
            result = await self.db.execute(
                update(AutomationEnrollment)
                .where(
                    AutomationEnrollment.id == enrollment_id,
                    AutomationEnrollment.store_id == store_id,
                    AutomationEnrollment.status == _ACTIVE,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount > 0

    async def exit_active_for_workflow(
        self, store_id: str, workflow_id: str, reason: str, now: datetime
    ) -> int:
        async with self.db.begin_nested():
            result = await self.db.execute(
                update(AutomationEnrollment)
                .where(
                    AutomationEnrollment.store_id == store_id,
                    AutomationEnrollment.workflow_id == workflow_id,
                    AutomationEnrollment.status == _ACTIVE,
                )
                .values(
                    status=EnrollmentStatus.EXITED.value,
                    exit_reason=reason,
                    exited_at=now,
                    dedup_key=None,
                    processing_until=None,
                )
                .execution_options(synchronize_session=False)
            )
        return result.rowcount

    async def count_by_status(self, store_id: str, workflow_id: str) -> dict[str, int]:
        result = await self.db.execute(
            select(AutomationEnrollment.status, func.count())
            .where(
                AutomationEnrollment.store_id == store_id,
                AutomationEnrollment.workflow_id == workflow_id,
            )
            .group_by(AutomationEnrollment.status)
        )
        return {status: count for status, count in result.all()}
