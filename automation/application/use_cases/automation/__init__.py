"""Marketing automation engine use cases."""

from automation.application.use_cases.automation.abandoned_cart_detector import (
    AbandonedCartDetector,
)
from automation.application.use_cases.automation.action_executor import ActionExecutor
from automation.application.use_cases.automation.automation_service import AutomationService
from automation.application.use_cases.automation.step_executor import (
    StepExecutor,
    Transition,
    compute_transition,
)
from automation.application.use_cases.automation.trigger_matcher import TriggerMatcher

__all__ = [
    "AbandonedCartDetector",
    "ActionExecutor",
    "AutomationService",
    "StepExecutor",
    "Transition",
    "TriggerMatcher",
    "compute_transition",
]
