"""DTOs for enrollments, step logs, and step outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypedDict

from automation.application.dtos.workflow import WorkflowResult


@dataclass(frozen=True)
class EnrollmentResult:
    """One customer's progress through one workflow."""

    id: str
    store_id: str
    workflow_id: str
    customer_id: str
    status: str
    current_step: int = 0
    next_step_at: datetime | None = None
    last_step_at: datetime | None = None
    trigger_data: dict[str, Any] = field(default_factory=dict)
    exit_reason: str | None = None
    enrolled_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class ClaimedEnrollment:
    """Pending enrollment joined with its workflow (steps, status) and customer record.

    customer is the customer row as a flat dict (id, email, phone, names, tags,
    plus custom attributes) or None when the customer no longer exists.
    """

    enrollment: EnrollmentResult
    workflow: WorkflowResult | None
    customer: dict[str, Any] | None = None


class EnrollmentPatch(TypedDict, total=False):
    """Fields the engine may change on an active enrollment."""

    status: str
    current_step: int
    next_step_at: datetime | None
    last_step_at: datetime
    exit_reason: str | None
    completed_at: datetime
    exited_at: datetime


@dataclass(frozen=True)
class StepLogCreate:
    """Audit record for one step execution attempt."""

    workflow_id: str
    enrollment_id: str
    customer_id: str
    step_index: int
    step_type: str
    status: str
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StepLogResult:
    """Stored step log."""

    id: str
    store_id: str
    workflow_id: str
    enrollment_id: str
    customer_id: str
    step_index: int
    step_type: str
    status: str
    error_message: str | None
    metadata: dict[str, Any]
    created_at: datetime | None = None


@dataclass(frozen=True)
class ActionResult:
    """Outcome of an action executor.

    should_exit ends the enrollment with error as the exit reason (e.g. the
    recipient has no email or unsubscribed).
    """

    success: bool
    error: str | None = None
    should_exit: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
