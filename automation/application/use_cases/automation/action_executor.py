"""Execute the external side effect of one workflow step.

Every action returns an ``ActionResult``; exceptions raised by collaborators
are converted to a failed result so the caller can log them and move on.
Flow-control steps (DELAY, CONDITION, EXIT) have no side effect here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from automation.application.dtos.enrollment import ActionResult
from automation.application.interfaces.services import EmailMessage
from automation.domain.value_objects.steps import (
    AddTagStep,
    AddToSegmentStep,
    ConditionStep,
    DelayStep,
    ExitStep,
    InternalNotificationStep,
    RemoveFromSegmentStep,
    RemoveTagStep,
    SendEmailStep,
    SendSmsStep,
    Step,
    UpdateFieldStep,
    WebhookStep,
)
from automation.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from automation.application.dtos.enrollment import ClaimedEnrollment
    from automation.application.interfaces.services import (
        ICustomerFieldService,
        ICustomerTagService,
        IEmailDeliverer,
        INotificationService,
        ISegmentService,
        ISmsDeliverer,
        IUnsubscribeService,
        IWebhookClient,
    )

logger = get_logger(__name__)

WEBHOOK_EVENT = "automation_step"


class ActionExecutor:
    """Dispatches an action step to the collaborator that performs it."""

    def __init__(
        self,
        unsubscribe_service: IUnsubscribeService,
        tag_service: ICustomerTagService,
        field_service: ICustomerFieldService,
        segment_service: ISegmentService,
        email_deliverer: IEmailDeliverer,
        sms_deliverer: ISmsDeliverer,
        webhook_client: IWebhookClient,
        notification_service: INotificationService,
    ) -> None:
        self._unsubscribe = unsubscribe_service
        self._tags = tag_service
        self._fields = field_service
        self._segments = segment_service
        self._email = email_deliverer
        self._sms = sms_deliverer
        self._webhook = webhook_client
        self._notifications = notification_service

    async def execute(
        self, store_id: str, claimed: ClaimedEnrollment, step: Step
    ) -> ActionResult:
        """Run the step's action; never raises."""
        logger.debug(
            "Executing step %s for enrollment %s", step.type.value, claimed.enrollment.id
        )
        try:
            return await self._dispatch(store_id, claimed, step)
        except Exception as e:
            logger.warning(
                "Step %s failed for enrollment %s: %s",
                step.type.value,
                claimed.enrollment.id,
                e,
            )
            return ActionResult(success=False, error=str(e) or e.__class__.__name__)

    async def _dispatch(
        self, store_id: str, claimed: ClaimedEnrollment, step: Step
    ) -> ActionResult:
        customer_id = claimed.enrollment.customer_id
        match step:
            case SendEmailStep():
                return await self._send_email(store_id, claimed, step)
            case SendSmsStep():
                return await self._send_sms(store_id, claimed, step)
            case AddTagStep():
                await self._tags.add_tags(store_id, customer_id, list(step.tags))
                return ActionResult(success=True, metadata={"tagsAdded": list(step.tags)})
            case RemoveTagStep():
                await self._tags.remove_tags(store_id, customer_id, list(step.tags))
                return ActionResult(success=True, metadata={"tagsRemoved": list(step.tags)})
            case UpdateFieldStep():
                await self._fields.set_field(store_id, customer_id, step.field, step.value)
                return ActionResult(
                    success=True, metadata={"field": step.field, "value": step.value}
                )
            case AddToSegmentStep():
                await self._segments.add_to_segment(store_id, step.segment_id, customer_id)
                return ActionResult(success=True, metadata={"segmentId": step.segment_id})
            case RemoveFromSegmentStep():
                await self._segments.remove_from_segment(store_id, step.segment_id, customer_id)
                return ActionResult(success=True, metadata={"segmentId": step.segment_id})
            case WebhookStep():
                return await self._call_webhook(claimed, step)
            case InternalNotificationStep():
                await self._notifications.notify(
                    store_id,
                    step.message,
                    {
                        "workflow_id": claimed.enrollment.workflow_id,
                        "enrollment_id": claimed.enrollment.id,
                        "customer_id": customer_id,
                    },
                )
                return ActionResult(success=True, metadata={"message": step.message})
            case DelayStep() | ConditionStep() | ExitStep():
                return ActionResult(success=True)
        return ActionResult(success=False, error=f"Unknown step type: {step.type.value}")

    async def _send_email(
        self, store_id: str, claimed: ClaimedEnrollment, step: SendEmailStep
    ) -> ActionResult:
        customer = claimed.customer or {}
        email = customer.get("email")
        if not email:
            return ActionResult(success=False, error="No customer email", should_exit=True)
        if await self._unsubscribe.is_unsubscribed(store_id, email):
            return ActionResult(success=False, error="Customer unsubscribed", should_exit=True)
        await self._email.send_email(
            store_id,
            EmailMessage(
                to=email,
                template_id=step.template_id,
                subject=step.subject,
                data={"customer": customer, **claimed.enrollment.trigger_data},
            ),
        )
        return ActionResult(success=True, metadata={"templateId": step.template_id})

    async def _send_sms(
        self, store_id: str, claimed: ClaimedEnrollment, step: SendSmsStep
    ) -> ActionResult:
        customer = claimed.customer or {}
        phone = customer.get("phone")
        if not phone:
            return ActionResult(success=False, error="No customer phone", should_exit=True)
        await self._sms.send_sms(
            store_id,
            phone,
            step.message,
            {"customer": customer, **claimed.enrollment.trigger_data},
        )
        return ActionResult(success=True, metadata={"message": step.message})

    async def _call_webhook(
        self, claimed: ClaimedEnrollment, step: WebhookStep
    ) -> ActionResult:
        enrollment = claimed.enrollment
        payload: dict[str, Any] = {
            "event": WEBHOOK_EVENT,
            "workflow_id": enrollment.workflow_id,
            "customer_id": enrollment.customer_id,
            "customer": claimed.customer,
            "trigger_data": enrollment.trigger_data,
            "custom_data": step.data,
        }
        headers = {"Content-Type": "application/json", **step.headers}
        status_code = await self._webhook.call(step.url, step.method, headers, payload)
        if not 200 <= status_code < 300:
            return ActionResult(
                success=False,
                error=f"Webhook failed: {status_code}",
                metadata={"statusCode": status_code},
            )
        return ActionResult(success=True, metadata={"statusCode": status_code})
