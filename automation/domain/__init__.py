"""Domain layer: enums, exceptions, and step value objects.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from automation.domain.enums import ConditionOperator, DelayUnit, StepType, TriggerType
from automation.domain.exceptions import (
    AutomationException,
    DuplicateEnrollmentException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    ValidationException,
    WorkflowStateException,
)

__all__ = [
    # Enums
    "ConditionOperator",
    "DelayUnit",
    "StepType",
    "TriggerType",
    # Exceptions
    "AutomationException",
    "DuplicateEnrollmentException",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
    "ValidationException",
    "WorkflowStateException",
]
