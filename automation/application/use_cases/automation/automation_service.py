"""AutomationService: public operations of the marketing automation engine.

Wires the trigger matcher, the step state machine and the abandoned-cart
detector behind one store-scoped API used by the HTTP layer and the
scheduler.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from automation.application.dtos.automation import (
    AbandonedCartResult,
    CycleResult,
    ProcessResult,
    TriggerResult,
)
from automation.application.dtos.workflow import WorkflowCreate, WorkflowStats
from automation.domain.enums import StepType, TriggerType
from automation.domain.exceptions import (
    DuplicateEnrollmentException,
    ResourceNotFoundException,
    ValidationException,
    WorkflowStateException,
)
from automation.domain.value_objects.steps import parse_trigger_config, validate_steps
from automation.shared.enums import EnrollmentStatus, StepLogStatus, WorkflowStatus
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import add_span_attributes, traced
from automation.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from automation.application.dtos.enrollment import EnrollmentResult, StepLogResult
    from automation.application.dtos.workflow import WorkflowResult, WorkflowUpdate
    from automation.application.interfaces.repositories import (
        IEnrollmentRepository,
        IStepLogRepository,
        IWorkflowRepository,
    )
    from automation.application.use_cases.automation.abandoned_cart_detector import (
        AbandonedCartDetector,
    )
    from automation.application.use_cases.automation.step_executor import StepExecutor
    from automation.application.use_cases.automation.trigger_matcher import TriggerMatcher

logger = get_logger(__name__)

WORKFLOW_DELETED_REASON = "Workflow deleted"

_CLEARABLE_FIELDS: dict[str, Callable[[], Any]] = {
    "description": lambda: None,
    "trigger_config": dict,
}


def _label(value: str) -> str:
    return value.replace("_", " ").title()


def _validate_trigger_type(trigger_type: str) -> None:
    if trigger_type not in TriggerType.values():
        raise ValidationException(f"Unknown trigger type: {trigger_type}", field="triggerType")


class AutomationService:
    """Store-scoped workflow management, trigger handling and batch processing."""

    def __init__(
        self,
        workflow_repo: IWorkflowRepository,
        enrollment_repo: IEnrollmentRepository,
        step_log_repo: IStepLogRepository,
        trigger_matcher: TriggerMatcher,
        step_executor: StepExecutor,
        abandoned_cart_detector: AbandonedCartDetector,
        batch_size: int = 100,
        lease: timedelta = timedelta(minutes=5),
    ) -> None:
        self._workflow_repo = workflow_repo
        self._enrollment_repo = enrollment_repo
        self._step_log_repo = step_log_repo
        self._trigger_matcher = trigger_matcher
        self._step_executor = step_executor
        self._abandoned_carts = abandoned_cart_detector
        self._batch_size = batch_size
        self._lease = lease

    # ---- Workflow definitions ----

    async def create_workflow(self, store_id: str, data: WorkflowCreate) -> WorkflowResult:
        """Validate and store a new workflow in draft status."""
        if not data.name or not data.name.strip():
            raise ValidationException("name is required", field="name")
        _validate_trigger_type(data.trigger_type)
        parse_trigger_config(data.trigger_config, strict=True)
        validate_steps(data.steps)
        workflow = await self._workflow_repo.create_workflow(store_id, data)
        logger.info("Created workflow %s (%s) in store %s", workflow.id, workflow.name, store_id)
        return workflow

    async def get_workflow(self, store_id: str, workflow_id: str) -> WorkflowResult:
        """Return the workflow or raise ResourceNotFoundException."""
        workflow = await self._workflow_repo.get_by_id_and_store(workflow_id, store_id)
        if workflow is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return workflow

    async def list_workflows(
        self,
        store_id: str,
        *,
        status: str | None = None,
        trigger_type: str | None = None,
        limit: int = 100,
    ) -> list[WorkflowResult]:
        if status is not None and status not in WorkflowStatus.values():
            raise ValidationException(f"Unknown workflow status: {status}", field="status")
        return await self._workflow_repo.list_by_store(
            store_id, status=status, trigger_type=trigger_type, limit=limit
        )

    async def update_workflow(
        self, store_id: str, workflow_id: str, data: WorkflowUpdate
    ) -> WorkflowResult:
        """Apply a partial update.

        Steps of an active workflow cannot change while enrollments may be
        parked on them; pause the workflow first.
        """
        workflow = await self.get_workflow(store_id, workflow_id)
        changes: dict[str, Any] = {
            k: v for k, v in asdict(data).items() if k != "cleared" and v is not None
        }
        for name in data.cleared:
            if name not in _CLEARABLE_FIELDS:
                raise ValidationException(f"{name} cannot be cleared", field=name)
            changes[name] = _CLEARABLE_FIELDS[name]()
        if "name" in changes and not changes["name"].strip():
            raise ValidationException("name is required", field="name")
        if "trigger_type" in changes:
            _validate_trigger_type(changes["trigger_type"])
        if "trigger_config" in changes:
            parse_trigger_config(changes["trigger_config"], strict=True)
        if "steps" in changes:
            if workflow.status == WorkflowStatus.ACTIVE.value:
                raise WorkflowStateException(
                    workflow_id,
                    workflow.status,
                    "Steps of an active workflow cannot be edited; pause it first",
                )
            validate_steps(changes["steps"])
        if not changes:
            return workflow
        updated = await self._workflow_repo.update_workflow(store_id, workflow_id, changes)
        if updated is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return updated

    async def delete_workflow(self, store_id: str, workflow_id: str) -> None:
        """Soft-delete the workflow and exit its active enrollments."""
        await self.get_workflow(store_id, workflow_id)
        exited = await self._enrollment_repo.exit_active_for_workflow(
            store_id, workflow_id, WORKFLOW_DELETED_REASON, utc_now()
        )
        if not await self._workflow_repo.soft_delete(store_id, workflow_id):
            raise ResourceNotFoundException("workflow", workflow_id)
        logger.info("Deleted workflow %s (%s active enrollments exited)", workflow_id, exited)

    async def activate_workflow(self, store_id: str, workflow_id: str) -> WorkflowResult:
        """Set status active. The workflow must have at least one valid step."""
        workflow = await self.get_workflow(store_id, workflow_id)
        if not workflow.steps:
            raise WorkflowStateException(
                workflow_id, workflow.status, "Cannot activate a workflow with no steps"
            )
        validate_steps(workflow.steps)
        parse_trigger_config(workflow.trigger_config, strict=True)
        if workflow.status == WorkflowStatus.ACTIVE.value:
            return workflow
        updated = await self._workflow_repo.update_workflow(
            store_id,
            workflow_id,
            {"status": WorkflowStatus.ACTIVE.value, "activated_at": utc_now()},
        )
        if updated is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        logger.info("Activated workflow %s", workflow_id)
        return updated

    async def pause_workflow(self, store_id: str, workflow_id: str) -> WorkflowResult:
        """Set status paused; pending enrollments stay parked until reactivation."""
        workflow = await self.get_workflow(store_id, workflow_id)
        if workflow.status == WorkflowStatus.PAUSED.value:
            return workflow
        if workflow.status != WorkflowStatus.ACTIVE.value:
            raise WorkflowStateException(
                workflow_id, workflow.status, "Only active workflows can be paused"
            )
        updated = await self._workflow_repo.update_workflow(
            store_id, workflow_id, {"status": WorkflowStatus.PAUSED.value}
        )
        if updated is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        logger.info("Paused workflow %s", workflow_id)
        return updated

    # ---- Enrollment ----

    async def handle_trigger(
        self, store_id: str, trigger_type: str, trigger_data: dict[str, Any]
    ) -> TriggerResult:
        """Fan an event out to matching active workflows."""
        _validate_trigger_type(trigger_type)
        return await self._trigger_matcher.handle_trigger(
            store_id, trigger_type, trigger_data or {}
        )

    async def enroll_customer(
        self,
        store_id: str,
        workflow_id: str,
        customer_id: str,
        trigger_data: dict[str, Any] | None = None,
    ) -> EnrollmentResult:
        """Manually enroll a customer, bypassing trigger conditions.

        Raises:
            DuplicateEnrollmentException: active enrollment exists and the
                workflow does not allow re-enrollment.
        """
        if not customer_id:
            raise ValidationException("customerId is required", field="customerId")
        workflow = await self.get_workflow(store_id, workflow_id)
        allow_re_enrollment = parse_trigger_config(
            workflow.trigger_config, strict=False
        ).allow_re_enrollment
        if not allow_re_enrollment and await self._enrollment_repo.has_active_enrollment(
            store_id, workflow_id, customer_id
        ):
            raise DuplicateEnrollmentException(workflow_id, customer_id)
        enrollment = await self._enrollment_repo.create_enrollment(
            store_id,
            workflow_id,
            customer_id,
            {"customerId": customer_id, **(trigger_data or {})},
            allow_re_enrollment=allow_re_enrollment,
        )
        if enrollment is None:
            raise DuplicateEnrollmentException(workflow_id, customer_id)
        logger.info("Manually enrolled customer %s in workflow %s", customer_id, workflow_id)
        return enrollment

    # ---- Batch jobs ----

    @traced("automation.process_pending_steps")
    async def process_pending_steps(
        self, store_id: str, *, now: datetime | None = None
    ) -> ProcessResult:
        """Claim due enrollments and advance each by one step.

        Enrollments are processed sequentially; a failure is logged and counted
        and the batch continues. A failed enrollment keeps its lease and is
        retried once the lease expires.
        """
        now = now or utc_now()
        claimed = await self._enrollment_repo.claim_pending_enrollments(
            store_id, now, now + self._lease, self._batch_size
        )
        processed = errors = skipped = 0
        for item in claimed:
            try:
                if await self._step_executor.process_enrollment_step(store_id, item, now=now):
                    processed += 1
                else:
                    skipped += 1
            except Exception:
                errors += 1
                logger.exception("Error processing enrollment %s", item.enrollment.id)
        logger.info(
            "Processed pending steps for store %s: processed=%s errors=%s skipped=%s",
            store_id,
            processed,
            errors,
            skipped,
        )
        add_span_attributes(processed=processed, errors=errors, skipped=skipped)
        return ProcessResult(processed=processed, errors=errors, skipped=skipped)

    async def check_abandoned_carts(
        self, store_id: str, *, now: datetime | None = None
    ) -> AbandonedCartResult:
        return await self._abandoned_carts.check_abandoned_carts(store_id, now=now)

    async def run_scheduled_cycle(
        self, store_id: str, *, now: datetime | None = None
    ) -> CycleResult:
        """Periodic job body for one store: scan carts, then advance enrollments.

        A failed cart scan is logged and counted; step processing still runs.
        """
        try:
            carts = await self.check_abandoned_carts(store_id, now=now)
        except Exception:
            logger.exception("Abandoned cart check failed for store %s", store_id)
            carts = AbandonedCartResult(triggered=0, errors=1)
        steps = await self.process_pending_steps(store_id, now=now)
        return CycleResult(store_id=store_id, abandoned_carts=carts, steps=steps)

    # ---- Reporting ----

    async def get_workflow_logs(
        self,
        store_id: str,
        workflow_id: str,
        *,
        status: str | None = None,
        limit: int = 50,
    ) -> list[StepLogResult]:
        await self.get_workflow(store_id, workflow_id)
        if status is not None and status not in StepLogStatus.values():
            raise ValidationException(f"Unknown step log status: {status}", field="status")
        return await self._step_log_repo.get_by_workflow(
            store_id, workflow_id, status=status, limit=limit
        )

    async def get_workflow_stats(self, store_id: str, workflow_id: str) -> WorkflowStats:
        await self.get_workflow(store_id, workflow_id)
        enrollments = await self._enrollment_repo.count_by_status(store_id, workflow_id)
        logs = await self._step_log_repo.count_by_status(store_id, workflow_id)
        return WorkflowStats(
            workflow_id=workflow_id,
            total_enrolled=sum(enrollments.values()),
            active=enrollments.get(EnrollmentStatus.ACTIVE.value, 0),
            completed=enrollments.get(EnrollmentStatus.COMPLETED.value, 0),
            exited=enrollments.get(EnrollmentStatus.EXITED.value, 0),
            steps_succeeded=logs.get(StepLogStatus.SUCCESS.value, 0),
            steps_failed=logs.get(StepLogStatus.FAILED.value, 0),
        )

    @staticmethod
    def list_trigger_types() -> list[dict[str, str]]:
        """Trigger types for the authoring surface ({id, name, value})."""
        return [{"id": t.value, "name": _label(t.value), "value": t.value} for t in TriggerType]

    @staticmethod
    def list_step_types() -> list[dict[str, str]]:
        """Step types for the authoring surface ({id, name, value, category})."""
        return [
            {
                "id": s.value,
                "name": _label(s.value),
                "value": s.value,
                "category": "flow_control" if s.is_flow_control else "action",
            }
            for s in StepType
        ]
