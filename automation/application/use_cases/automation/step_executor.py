"""Enrollment state machine: run one step and persist the transition.

States are ``active@current_step`` (possibly deferred until next_step_at),
``completed`` and ``exited``. Each call executes at most one step; waiting
is modelled as data (next_step_at), never as a blocked coroutine.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from automation.application.dtos.enrollment import (
    ActionResult,
    EnrollmentPatch,
    StepLogCreate,
)
from automation.application.services.condition_evaluator import evaluate_condition_step
from automation.application.services.delay_calculator import compute_next_step_at
from automation.domain.exceptions import ValidationException
from automation.domain.value_objects.steps import (
    ConditionStep,
    DelayStep,
    ExitStep,
    Step,
    parse_step,
)
from automation.shared.enums import EnrollmentStatus, StepLogStatus, WorkflowStatus
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import traced
from automation.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from automation.application.dtos.enrollment import ClaimedEnrollment
    from automation.application.interfaces.repositories import (
        IEnrollmentRepository,
        IStepLogRepository,
    )
    from automation.application.use_cases.automation.action_executor import ActionExecutor

logger = get_logger(__name__)

EXIT_STEP_REASON = "Reached exit step"


@dataclass(frozen=True)
class Transition:
    """Next state computed from the current step and its action result."""

    next_step: int
    next_step_at: datetime | None = None
    exit_reason: str | None = None

    @property
    def exits(self) -> bool:
        return self.exit_reason is not None


def compute_transition(
    step: Step,
    current_step: int,
    result: ActionResult,
    now: datetime,
    customer: dict[str, Any] | None,
    trigger_data: dict[str, Any] | None,
) -> Transition:
    """Pure transition rule for one executed step."""
    if result.should_exit:
        return Transition(next_step=current_step, exit_reason=result.error or "Step failed")
    match step:
        case ExitStep():
            return Transition(next_step=current_step, exit_reason=EXIT_STEP_REASON)
        case DelayStep():
            return Transition(
                next_step=current_step + 1,
                next_step_at=compute_next_step_at(now, step.value, step.unit),
            )
        case ConditionStep():
            matched = evaluate_condition_step(step.condition, customer, trigger_data)
            return Transition(next_step=step.true_step if matched else step.false_step)
    return Transition(next_step=current_step + 1)


class StepExecutor:
    """Advances a claimed enrollment by exactly one step."""

    def __init__(
        self,
        enrollment_repo: IEnrollmentRepository,
        step_log_repo: IStepLogRepository,
        action_executor: ActionExecutor,
    ) -> None:
        self._enrollment_repo = enrollment_repo
        self._step_log_repo = step_log_repo
        self._actions = action_executor

    @traced("automation.process_enrollment_step")
    async def process_enrollment_step(
        self,
        store_id: str,
        claimed: ClaimedEnrollment,
        *,
        now: datetime | None = None,
    ) -> bool:
        """Execute the enrollment's current step.

        Returns:
            False when the enrollment was left untouched (workflow not active or
            enrollment already terminal), True otherwise.
        """
        now = now or utc_now()
        enrollment = claimed.enrollment
        workflow = claimed.workflow

        if EnrollmentStatus(enrollment.status).is_terminal:
            return False
        if workflow is None or workflow.status != WorkflowStatus.ACTIVE.value:
            logger.info(
                "Workflow %s is not active, leaving enrollment %s pending",
                enrollment.workflow_id,
                enrollment.id,
            )
            await self._enrollment_repo.release_claim(store_id, enrollment.id)
            return False

        steps = workflow.steps
        current = enrollment.current_step
        if not 0 <= current < len(steps):
            await self._persist(
                store_id,
                enrollment.id,
                {"status": EnrollmentStatus.COMPLETED.value, "completed_at": now},
            )
            logger.info("Enrollment %s completed workflow %s", enrollment.id, workflow.id)
            return True

        raw_step = steps[current]
        try:
            step = parse_step(raw_step, current, strict=False)
        except ValidationException as e:
            raw_type = raw_step.get("type") if isinstance(raw_step, dict) else None
            await self._log(
                store_id,
                claimed,
                current,
                str(raw_type or "unknown"),
                ActionResult(success=False, error=e.message, metadata=e.details),
            )
            logger.warning(
                "Invalid step %s in workflow %s: %s", current, workflow.id, e.message
            )
            await self._skip_step(store_id, enrollment.id, current, now)
            return True

        result = await self._actions.execute(store_id, claimed, step)
        try:
            transition = compute_transition(
                step, current, result, now, claimed.customer, enrollment.trigger_data
            )
        except (OverflowError, ValueError) as e:
            await self._log(
                store_id,
                claimed,
                current,
                step.type.value,
                ActionResult(success=False, error=str(e), metadata=dict(result.metadata)),
            )
            logger.warning(
                "Step %s of workflow %s could not be scheduled: %s", current, workflow.id, e
            )
            await self._skip_step(store_id, enrollment.id, current, now)
            return True

        metadata = dict(result.metadata)
        if isinstance(step, ConditionStep):
            metadata["nextStep"] = transition.next_step
        elif transition.next_step_at is not None:
            metadata["nextStepAt"] = transition.next_step_at.isoformat()
        await self._log(
            store_id,
            claimed,
            current,
            step.type.value,
            ActionResult(
                success=result.success,
                error=result.error,
                should_exit=result.should_exit,
                metadata=metadata,
            ),
        )

        if transition.exits:
            await self._persist(
                store_id,
                enrollment.id,
                {
                    "status": EnrollmentStatus.EXITED.value,
                    "exit_reason": transition.exit_reason,
                    "exited_at": now,
                    "last_step_at": now,
                },
            )
            logger.info(
                "Enrollment %s exited workflow %s: %s",
                enrollment.id,
                workflow.id,
                transition.exit_reason,
            )
            return True

        await self._persist(
            store_id,
            enrollment.id,
            {
                "current_step": transition.next_step,
                "next_step_at": transition.next_step_at,
                "last_step_at": now,
            },
        )
        return True

    async def _log(
        self,
        store_id: str,
        claimed: ClaimedEnrollment,
        step_index: int,
        step_type: str,
        result: ActionResult,
    ) -> None:
        enrollment = claimed.enrollment
        await self._step_log_repo.log_step(
            store_id,
            StepLogCreate(
                workflow_id=enrollment.workflow_id,
                enrollment_id=enrollment.id,
                customer_id=enrollment.customer_id,
                step_index=step_index,
                step_type=step_type,
                status=(
                    StepLogStatus.SUCCESS.value if result.success else StepLogStatus.FAILED.value
                ),
                error_message=result.error,
                metadata=result.metadata,
            ),
        )

    async def _skip_step(
        self, store_id: str, enrollment_id: str, current: int, now: datetime
    ) -> None:
        await self._persist(
            store_id,
            enrollment_id,
            {"current_step": current + 1, "next_step_at": None, "last_step_at": now},
        )

    async def _persist(
        self, store_id: str, enrollment_id: str, patch: EnrollmentPatch
    ) -> None:
        if not await self._enrollment_repo.update_enrollment(store_id, enrollment_id, patch):
            logger.warning(
                "Enrollment %s was no longer active; transition not applied", enrollment_id
            )
