"""Repository interfaces (ports) for the application layer.

Protocols define the persistence contracts the engine depends on (DIP).
Every method is scoped by store_id.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from automation.application.dtos.automation import CartResult
    from automation.application.dtos.enrollment import (
        ClaimedEnrollment,
        EnrollmentPatch,
        EnrollmentResult,
        StepLogCreate,
        StepLogResult,
    )
    from automation.application.dtos.workflow import WorkflowCreate, WorkflowResult


class IWorkflowRepository(Protocol):
    """Protocol for workflow definition persistence."""

    async def create_workflow(self, store_id: str, data: WorkflowCreate) -> WorkflowResult:
        """Create a workflow in draft status."""

    async def get_by_id_and_store(
        self, workflow_id: str, store_id: str
    ) -> WorkflowResult | None:
        """Return a non-deleted workflow or None."""

    async def list_by_store(
        self,
        store_id: str,
        *,
        status: str | None = None,
        trigger_type: str | None = None,
        limit: int = 100,
    ) -> list[WorkflowResult]:
        """List non-deleted workflows, newest first."""

    async def update_workflow(
        self, store_id: str, workflow_id: str, changes: dict[str, Any]
    ) -> WorkflowResult | None:
        """Apply changes (name, description, trigger_type, trigger_config, steps, status, activated_at)."""

    async def soft_delete(self, store_id: str, workflow_id: str) -> bool:
        """Mark a workflow deleted; return False when not found."""

    async def get_active_by_trigger(
        self, store_id: str, trigger_type: str
    ) -> list[WorkflowResult]:
        """Return active, non-deleted workflows subscribed to trigger_type."""

    async def get_store_ids_with_active_workflows(self) -> list[str]:
        """Return distinct store ids owning at least one active workflow."""


class IEnrollmentRepository(Protocol):
    """Protocol for enrollment persistence, including the processing claim."""

    async def has_active_enrollment(
        self, store_id: str, workflow_id: str, customer_id: str
    ) -> bool:
        """True when the customer has an active enrollment in the workflow."""

    async def create_enrollment(
        self,
        store_id: str,
        workflow_id: str,
        customer_id: str,
        trigger_data: dict[str, Any],
        *,
        allow_re_enrollment: bool = False,
    ) -> EnrollmentResult | None:
        """Insert an active enrollment at step 0 (single atomic write).

        Returns None when the storage-level uniqueness rule rejects a second
        active enrollment for a non-re-enrollable workflow.
        """

    async def claim_pending_enrollments(
        self,
        store_id: str,
        now: datetime,
        lease_until: datetime,
        limit: int,
    ) -> list[ClaimedEnrollment]:
        """Claim due active enrollments (not leased by another processor) until lease_until."""

    async def release_claim(self, store_id: str, enrollment_id: str) -> None:
        """Drop the processing lease without changing state (enrollment stays pending)."""

    async def update_enrollment(
        self, store_id: str, enrollment_id: str, patch: EnrollmentPatch
    ) -> bool:
        """Apply patch to a still-active enrollment and release its lease.

        Returns False when the enrollment is missing or already terminal.
        """

    async def exit_active_for_workflow(
        self, store_id: str, workflow_id: str, reason: str, now: datetime
    ) -> int:
        """Exit every active enrollment of a workflow; return how many."""

    async def count_by_status(self, store_id: str, workflow_id: str) -> dict[str, int]:
        """Return enrollment counts keyed by status."""


class IStepLogRepository(Protocol):
    """Protocol for the append-only step audit log."""

    async def log_step(self, store_id: str, entry: StepLogCreate) -> None:
        """Append one step log entry."""

    async def get_by_workflow(
        self,
        store_id: str,
        workflow_id: str,
        *,
        status: str | None = None,
        limit: int = 100,
    ) -> list[StepLogResult]:
        """Return step logs for a workflow, newest first."""

    async def count_by_status(self, store_id: str, workflow_id: str) -> dict[str, int]:
        """Return step log counts keyed by status."""


class ICartRepository(Protocol):
    """Protocol for cart reads and the abandoned-email flag flip."""

    async def get_idle_carts(
        self,
        store_id: str,
        updated_before: datetime,
        updated_after: datetime,
    ) -> list[CartResult]:
        """Carts with a customer, updated in (updated_after, updated_before), not yet flagged."""

    async def mark_abandoned_email_sent(self, store_id: str, cart_id: str) -> None:
        """Set is_abandoned_email_sent (monotonic; never reset here)."""
