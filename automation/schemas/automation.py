"""Automation workflow API schemas.

JSON uses the camelCase keys the authoring UI sends (triggerType,
triggerConfig, customerId, ...); snake_case is accepted as well.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from automation.domain.enums import TriggerType


class CamelModel(BaseModel):
    """Base model: camelCase aliases, population by field name allowed."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class StepSchema(CamelModel):
    """Stored step: {type, config}. Config keys are validated by the engine."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(..., min_length=1, max_length=50)
    config: dict[str, Any] = Field(default_factory=dict)


class WorkflowCreateRequest(CamelModel):
    """Request body for creating a workflow (created as draft)."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    trigger_type: TriggerType
    trigger_config: dict[str, Any] = Field(default_factory=dict)
    steps: list[StepSchema] = Field(default_factory=list)


class WorkflowUpdateRequest(CamelModel):
    """Request body for updating a workflow (partial)."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    trigger_type: TriggerType | None = None
    trigger_config: dict[str, Any] | None = None
    steps: list[StepSchema] | None = None


class WorkflowResponse(CamelModel):
    """Workflow response."""

    id: str
    store_id: str
    name: str
    description: str | None
    trigger_type: str
    trigger_config: dict[str, Any]
    steps: list[dict[str, Any]]
    status: str
    activated_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None


class WorkflowStatsResponse(CamelModel):
    """Enrollment and step counts for a workflow."""

    workflow_id: str
    total_enrolled: int
    active: int
    completed: int
    exited: int
    steps_succeeded: int
    steps_failed: int


class StepLogResponse(CamelModel):
    """One step execution audit record."""

    id: str
    workflow_id: str
    enrollment_id: str
    customer_id: str
    step_index: int
    step_type: str
    status: str
    error_message: str | None
    metadata: dict[str, Any]
    created_at: datetime | None


class EnrollRequest(CamelModel):
    """Request body for manually enrolling a customer."""

    customer_id: str = Field(..., min_length=1)
    trigger_data: dict[str, Any] = Field(default_factory=dict)


class EnrollmentResponse(CamelModel):
    """Enrollment response."""

    id: str
    workflow_id: str
    customer_id: str
    status: str
    current_step: int
    next_step_at: datetime | None
    trigger_data: dict[str, Any]
    enrolled_at: datetime | None


class TriggerRequest(CamelModel):
    """Request body for firing a trigger."""

    trigger_type: TriggerType
    trigger_data: dict[str, Any] = Field(default_factory=dict)


class TriggerResponse(CamelModel):
    enrolled: int


class ProcessResponse(CamelModel):
    processed: int
    errors: int
    skipped: int


class AbandonedCartResponse(CamelModel):
    triggered: int
    errors: int = 0


class CatalogItem(CamelModel):
    """Trigger or step type for the authoring surface."""

    id: str
    name: str
    value: str
    category: str | None = None
