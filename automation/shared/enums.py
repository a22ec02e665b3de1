"""Shared enumerations for the automation engine.

Lifecycle statuses persisted by infrastructure (check constraints) and read
by the application layer. Step and trigger kinds live in
automation.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class WorkflowStatus(_ValuesMixin, str, Enum):
    """Workflow lifecycle status (authoring surface sets draft; engine reads active)."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"


class EnrollmentStatus(_ValuesMixin, str, Enum):
    """Enrollment lifecycle status. COMPLETED and EXITED are terminal."""

    ACTIVE = "active"
    COMPLETED = "completed"
    EXITED = "exited"

    @property
    def is_terminal(self) -> bool:
        return self is not EnrollmentStatus.ACTIVE


class StepLogStatus(_ValuesMixin, str, Enum):
    """Outcome of one step execution attempt."""

    SUCCESS = "success"
    FAILED = "failed"
