"""Automation workflow, enrollment, and step log ORM models."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from automation.infrastructure.persistence.database import Base
from automation.infrastructure.persistence.models.mixins import (
    CreatedAtMixin,
    CuidMixin,
    MultiStoreModel,
    SoftDeleteMixin,
    StoreMixin,
)

DEDUP_CONSTRAINT = "uq_automation_enrollment_dedup_key"


class AutomationWorkflow(MultiStoreModel, SoftDeleteMixin, Base):
    """Workflow definition: trigger + ordered steps. Table: automation_workflow."""

    __tablename__ = "automation_workflow"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    trigger_type: Mapped[str] = mapped_column(String(50), nullable=False)
    trigger_config: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )
    steps: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'active', 'paused')",
            name="ck_automation_workflow_status",
        ),
        Index(
            "ix_automation_workflow_store_status_trigger",
            "store_id",
            "status",
            "trigger_type",
        ),
    )


class AutomationEnrollment(CuidMixin, StoreMixin, Base):
    """One customer's progress through one workflow. Table: automation_enrollment.

    dedup_key is "{workflow_id}:{customer_id}" while the enrollment is active
    in a workflow that does not allow re-enrollment, NULL otherwise; its
    unique constraint is what prevents concurrent duplicate enrollments.
    processing_until is the lease stamped by the batch processor.
    """

    __tablename__ = "automation_enrollment"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("automation_workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_step_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_step_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    trigger_data: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )
    exit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    exited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    processing_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    dedup_key: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'completed', 'exited')",
            name="ck_automation_enrollment_status",
        ),
        CheckConstraint(
            "current_step >= 0", name="ck_automation_enrollment_current_step"
        ),
        UniqueConstraint("dedup_key", name=DEDUP_CONSTRAINT),
        Index(
            "ix_automation_enrollment_store_status_next_step",
            "store_id",
            "status",
            "next_step_at",
        ),
        Index(
            "ix_automation_enrollment_workflow_customer_status",
            "workflow_id",
            "customer_id",
            "status",
        ),
    )


class AutomationStepLog(CuidMixin, StoreMixin, CreatedAtMixin, Base):
    """Append-only audit record of one step execution. Table: automation_step_log."""

    __tablename__ = "automation_step_log"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("automation_workflow.id", ondelete="CASCADE"),
        nullable=False,
    )
    enrollment_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("automation_enrollment.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[str] = mapped_column(String, nullable=False)
    step_index: Mapped[int] = mapped_column(Integer, nullable=False)
    step_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes.
    log_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('success', 'failed')", name="ck_automation_step_log_status"
        ),
        Index(
            "ix_automation_step_log_workflow_created",
            "workflow_id",
            "created_at",
        ),
    )
