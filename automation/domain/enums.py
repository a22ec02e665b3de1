"""Domain enumerations for the automation engine.

Fixed sets of values stored in workflow definitions: which events can start
a workflow, which step kinds a workflow is built from, and the vocabulary
of conditions and delays.
"""

from enum import Enum


class TriggerType(str, Enum):
    """Category of business event that can start a workflow enrollment."""

    # Customer lifecycle
    CUSTOMER_CREATED = "customer_created"
    CUSTOMER_FIRST_ORDER = "customer_first_order"
    CUSTOMER_ORDER = "customer_order"

    # E-commerce events
    ABANDONED_CART = "abandoned_cart"
    ORDER_PLACED = "order_placed"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"

    # Engagement
    FORM_SUBMITTED = "form_submitted"
    EMAIL_OPENED = "email_opened"
    EMAIL_CLICKED = "email_clicked"

    # Time-based
    DATE_TRIGGER = "date_trigger"
    RECURRING = "recurring"

    # Segment-based
    ENTERED_SEGMENT = "entered_segment"
    LEFT_SEGMENT = "left_segment"

    MANUAL = "manual"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid trigger values as strings."""
        return [t.value for t in cls]


class StepType(str, Enum):
    """Kind of action or flow-control operation within a workflow."""

    # Actions
    SEND_EMAIL = "send_email"
    SEND_SMS = "send_sms"
    ADD_TAG = "add_tag"
    REMOVE_TAG = "remove_tag"
    UPDATE_FIELD = "update_field"
    ADD_TO_SEGMENT = "add_to_segment"
    REMOVE_FROM_SEGMENT = "remove_from_segment"
    WEBHOOK = "webhook"
    INTERNAL_NOTIFICATION = "internal_notification"

    # Flow control
    DELAY = "delay"
    CONDITION = "condition"
    EXIT = "exit"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid step values as strings."""
        return [s.value for s in cls]

    @property
    def is_flow_control(self) -> bool:
        """True for steps whose effect is a transition, not an external action."""
        return self in (StepType.DELAY, StepType.CONDITION, StepType.EXIT)


class ConditionOperator(str, Enum):
    """Comparison used by trigger filters and CONDITION steps."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    IS_SET = "is_set"
    IS_NOT_SET = "is_not_set"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid operator values as strings."""
        return [o.value for o in cls]


class DelayUnit(str, Enum):
    """Time unit of a DELAY step."""

    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid unit values as strings."""
        return [u.value for u in cls]

    @property
    def milliseconds(self) -> int:
        """Length of one unit in milliseconds."""
        return _DELAY_UNIT_MILLISECONDS[self.value]


_DELAY_UNIT_MILLISECONDS: dict[str, int] = {
    DelayUnit.MINUTES.value: 60_000,
    DelayUnit.HOURS.value: 3_600_000,
    DelayUnit.DAYS.value: 86_400_000,
    DelayUnit.WEEKS.value: 604_800_000,
}
