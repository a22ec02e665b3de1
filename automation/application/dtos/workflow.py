"""DTOs for workflow definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class WorkflowResult:
    """Workflow definition as read from the store."""

    id: str
    store_id: str
    name: str
    trigger_type: str
    trigger_config: dict[str, Any]
    steps: list[dict[str, Any]]
    status: str
    description: str | None = None
    activated_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class WorkflowCreate:
    """Input for creating a workflow (already validated)."""

    name: str
    trigger_type: str
    trigger_config: dict[str, Any] = field(default_factory=dict)
    steps: list[dict[str, Any]] = field(default_factory=list)
    description: str | None = None


@dataclass(frozen=True)
class WorkflowStats:
    """Enrollment and step log counts for one workflow."""

    workflow_id: str
    total_enrolled: int
    active: int
    completed: int
    exited: int
    steps_succeeded: int
    steps_failed: int


@dataclass(frozen=True)
class WorkflowUpdate:
    """Partial update; None leaves the field unchanged.

    Fields named in ``cleared`` are reset (description to null, trigger_config
    to an empty object).
    """

    name: str | None = None
    description: str | None = None
    trigger_type: str | None = None
    trigger_config: dict[str, Any] | None = None
    steps: list[dict[str, Any]] | None = None
    cleared: frozenset[str] = frozenset()
