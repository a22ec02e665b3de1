"""Build an AutomationService wired to SQL repositories and delivery adapters.

Shared by the HTTP composition root and the scheduler so both run the same
engine over one session.
"""

from __future__ import annotations

from datetime import timedelta

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.use_cases.automation import (
    AbandonedCartDetector,
    ActionExecutor,
    AutomationService,
    StepExecutor,
    TriggerMatcher,
)
from automation.core.config import Settings, get_settings
from automation.infrastructure.external.webhook_client import HttpxWebhookClient
from automation.infrastructure.persistence.repositories import (
    CartRepository,
    EnrollmentRepository,
    StepLogRepository,
    WorkflowRepository,
)
from automation.infrastructure.services.customer_services import (
    SqlCustomerFieldService,
    SqlCustomerTagService,
    SqlSegmentService,
    SqlUnsubscribeService,
)
from automation.infrastructure.services.delivery import (
    LogOnlyEmailDeliverer,
    LogOnlyNotificationService,
    LogOnlySmsDeliverer,
)


def build_automation_service(
    db: AsyncSession,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AutomationService:
    """Compose the engine over one session."""
    settings = settings or get_settings()
    workflow_repo = WorkflowRepository(db)
    enrollment_repo = EnrollmentRepository(db)
    step_log_repo = StepLogRepository(db)
    unsubscribe_service = SqlUnsubscribeService(db)

    trigger_matcher = TriggerMatcher(workflow_repo, enrollment_repo, unsubscribe_service)
    action_executor = ActionExecutor(
        unsubscribe_service=unsubscribe_service,
        tag_service=SqlCustomerTagService(db),
        field_service=SqlCustomerFieldService(db),
        segment_service=SqlSegmentService(db),
        email_deliverer=LogOnlyEmailDeliverer(),
        sms_deliverer=LogOnlySmsDeliverer(),
        webhook_client=HttpxWebhookClient(
            client=http_client, timeout=settings.webhook_timeout_seconds
        ),
        notification_service=LogOnlyNotificationService(),
    )
    step_executor = StepExecutor(enrollment_repo, step_log_repo, action_executor)
    detector = AbandonedCartDetector(
        CartRepository(db),
        trigger_matcher,
        min_idle=timedelta(minutes=settings.abandoned_cart_min_idle_minutes),
        max_idle=timedelta(hours=settings.abandoned_cart_max_idle_hours),
    )
    return AutomationService(
        workflow_repo=workflow_repo,
        enrollment_repo=enrollment_repo,
        step_log_repo=step_log_repo,
        trigger_matcher=trigger_matcher,
        step_executor=step_executor,
        abandoned_cart_detector=detector,
        batch_size=settings.automation_batch_size,
        lease=timedelta(seconds=settings.automation_lease_seconds),
    )
