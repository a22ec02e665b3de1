"""SQLAlchemy repositories implementing the application ports."""

from automation.infrastructure.persistence.repositories.cart_repo import CartRepository
from automation.infrastructure.persistence.repositories.enrollment_repo import (
    EnrollmentRepository,
)
from automation.infrastructure.persistence.repositories.step_log_repo import (
    StepLogRepository,
)
from automation.infrastructure.persistence.repositories.workflow_repo import (
    WorkflowRepository,
)

__all__ = [
    "CartRepository",
    "EnrollmentRepository",
    "StepLogRepository",
    "WorkflowRepository",
]
