"""ORM models. Importing this package registers every table on Base.metadata."""

from automation.infrastructure.persistence.models.automation import (
    AutomationEnrollment,
    AutomationStepLog,
    AutomationWorkflow,
)
from automation.infrastructure.persistence.models.customer import (
    Cart,
    Customer,
    CustomerSegmentMember,
    EmailUnsubscribe,
)

__all__ = [
    "AutomationEnrollment",
    "AutomationStepLog",
    "AutomationWorkflow",
    "Cart",
    "Customer",
    "CustomerSegmentMember",
    "EmailUnsubscribe",
]
