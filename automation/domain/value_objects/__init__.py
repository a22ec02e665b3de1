"""Domain value objects: typed workflow steps and trigger configuration."""

from automation.domain.value_objects.steps import (
    AddTagStep,
    AddToSegmentStep,
    Condition,
    ConditionStep,
    DelayStep,
    ExitStep,
    InternalNotificationStep,
    RemoveFromSegmentStep,
    RemoveTagStep,
    SendEmailStep,
    SendSmsStep,
    Step,
    TriggerConfig,
    UpdateFieldStep,
    WebhookStep,
    parse_condition,
    parse_step,
    parse_trigger_config,
    step_to_dict,
    validate_steps,
)

__all__ = [
    "AddTagStep",
    "AddToSegmentStep",
    "Condition",
    "ConditionStep",
    "DelayStep",
    "ExitStep",
    "InternalNotificationStep",
    "RemoveFromSegmentStep",
    "RemoveTagStep",
    "SendEmailStep",
    "SendSmsStep",
    "Step",
    "TriggerConfig",
    "UpdateFieldStep",
    "WebhookStep",
    "parse_condition",
    "parse_step",
    "parse_trigger_config",
    "step_to_dict",
    "validate_steps",
]
