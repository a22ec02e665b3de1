"""Domain exceptions for the automation engine.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. The presentation
layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class AutomationException(Exception):
    """Base exception for all automation engine errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(AutomationException):
    """Raised when input validation fails (e.g. unknown step type, bad config)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or path that failed validation (e.g. 'steps[2].config.value').
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(AutomationException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class WorkflowStateException(AutomationException):
    """Raised when a workflow operation is not allowed in the workflow's current status."""

    def __init__(self, workflow_id: str, status: str, message: str) -> None:
        super().__init__(
            message,
            "WORKFLOW_STATE_CONFLICT",
            {"workflow_id": workflow_id, "status": status},
        )


class SqlNotConfiguredException(AutomationException):
    """Raised when an operation requires Postgres but DATABASE_URL is not set."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )


class DuplicateEnrollmentException(AutomationException):
    """Raised when a customer already has an active enrollment in a non-re-enrollable workflow."""

    def __init__(self, workflow_id: str, customer_id: str) -> None:
        super().__init__(
            f"Customer {customer_id} is already enrolled in workflow {workflow_id}",
            "ALREADY_ENROLLED",
            {"workflow_id": workflow_id, "customer_id": customer_id},
        )
