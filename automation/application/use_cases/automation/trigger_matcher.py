"""Match an incoming business event to active workflows and enroll the customer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from automation.application.dtos.automation import TriggerResult
from automation.application.services.condition_evaluator import check_trigger_conditions
from automation.domain.exceptions import ValidationException
from automation.domain.value_objects.steps import parse_trigger_config
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import add_span_attributes, traced

if TYPE_CHECKING:
    from automation.application.dtos.workflow import WorkflowResult
    from automation.application.interfaces.repositories import (
        IEnrollmentRepository,
        IWorkflowRepository,
    )
    from automation.application.interfaces.services import IUnsubscribeService

logger = get_logger(__name__)


class TriggerMatcher:
    """Enrolls the event's customer into every matching active workflow.

    Each workflow is handled in isolation: a failure in one is logged and the
    fan-out continues with the next.
    """

    def __init__(
        self,
        workflow_repo: IWorkflowRepository,
        enrollment_repo: IEnrollmentRepository,
        unsubscribe_service: IUnsubscribeService,
    ) -> None:
        self._workflow_repo = workflow_repo
        self._enrollment_repo = enrollment_repo
        self._unsubscribe_service = unsubscribe_service

    @traced("automation.handle_trigger")
    async def handle_trigger(
        self,
        store_id: str,
        trigger_type: str,
        trigger_data: dict[str, Any],
    ) -> TriggerResult:
        """Enroll trigger_data["customerId"] into matching workflows.

        Returns:
            TriggerResult with the number of enrollments created by this call.
        """
        logger.info("Trigger received: store=%s type=%s", store_id, trigger_type)
        workflows = await self._workflow_repo.get_active_by_trigger(store_id, trigger_type)
        if not workflows:
            logger.info("No active workflows for trigger %s in store %s", trigger_type, store_id)
            return TriggerResult(enrolled=0)

        enrolled = 0
        for workflow in workflows:
            try:
                if await self._enroll_if_eligible(store_id, workflow, trigger_data):
                    enrolled += 1
            except Exception:
                logger.exception(
                    "Error processing workflow %s for trigger %s", workflow.id, trigger_type
                )
        add_span_attributes(enrolled=enrolled, candidate_workflows=len(workflows))
        return TriggerResult(enrolled=enrolled)

    async def _enroll_if_eligible(
        self,
        store_id: str,
        workflow: WorkflowResult,
        trigger_data: dict[str, Any],
    ) -> bool:
        try:
            trigger_config = parse_trigger_config(workflow.trigger_config, strict=False)
        except ValidationException as e:
            logger.warning("Workflow %s has an invalid trigger config: %s", workflow.id, e.message)
            return False

        if not check_trigger_conditions(trigger_config, trigger_data):
            logger.info("Trigger conditions not met for workflow %s", workflow.id)
            return False

        customer_id = trigger_data.get("customerId")
        if not customer_id:
            logger.warning("No customerId in trigger data for workflow %s", workflow.id)
            return False
        customer_id = str(customer_id)

        if not trigger_config.allow_re_enrollment and await self._enrollment_repo.has_active_enrollment(
            store_id, workflow.id, customer_id
        ):
            logger.info("Customer %s already enrolled in workflow %s", customer_id, workflow.id)
            return False

        email = trigger_data.get("email")
        if email and await self._unsubscribe_service.is_unsubscribed(store_id, str(email)):
            logger.info("Customer %s is unsubscribed, skipping workflow %s", customer_id, workflow.id)
            return False

        enrollment = await self._enrollment_repo.create_enrollment(
            store_id,
            workflow.id,
            customer_id,
            trigger_data,
            allow_re_enrollment=trigger_config.allow_re_enrollment,
        )
        if enrollment is None:
            # Lost a race with a concurrent identical trigger.
            logger.info("Customer %s already enrolled in workflow %s", customer_id, workflow.id)
            return False
        logger.info(
            "Enrolled customer %s in workflow %s (enrollment %s)",
            customer_id,
            workflow.id,
            enrollment.id,
        )
        return True
