"""Automation workflow API: thin routes delegating to AutomationService."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from automation.api.v1.dependencies import (
    get_automation_service,
    get_automation_service_for_write,
    get_store_id,
)
from automation.application.dtos.workflow import WorkflowCreate, WorkflowUpdate
from automation.application.use_cases.automation import AutomationService
from automation.schemas.automation import (
    AbandonedCartResponse,
    CatalogItem,
    EnrollmentResponse,
    EnrollRequest,
    ProcessResponse,
    StepLogResponse,
    TriggerRequest,
    TriggerResponse,
    WorkflowCreateRequest,
    WorkflowResponse,
    WorkflowStatsResponse,
    WorkflowUpdateRequest,
)

router = APIRouter()

StoreId = Annotated[str, Depends(get_store_id)]
ReadService = Annotated[AutomationService, Depends(get_automation_service)]
WriteService = Annotated[AutomationService, Depends(get_automation_service_for_write)]


@router.get("/triggers", response_model=list[CatalogItem], response_model_exclude_none=True)
def list_trigger_types() -> list[CatalogItem]:
    """Available trigger types."""
    return [CatalogItem(**t) for t in AutomationService.list_trigger_types()]


@router.get("/steps", response_model=list[CatalogItem])
def list_step_types() -> list[CatalogItem]:
    """Available step types (actions and flow control)."""
    return [CatalogItem(**s) for s in AutomationService.list_step_types()]


@router.post("/trigger", response_model=TriggerResponse)
async def fire_trigger(
    body: TriggerRequest,
    store_id: StoreId,
    service: WriteService,
) -> TriggerResponse:
    """Enroll the event's customer into every matching active workflow."""
    result = await service.handle_trigger(
        store_id, body.trigger_type.value, body.trigger_data
    )
    return TriggerResponse(enrolled=result.enrolled)


@router.post("/jobs/process", response_model=ProcessResponse)
async def process_pending_steps(store_id: StoreId, service: WriteService) -> ProcessResponse:
    """Advance due enrollments of this store by one step each."""
    result = await service.process_pending_steps(store_id)
    return ProcessResponse(
        processed=result.processed, errors=result.errors, skipped=result.skipped
    )


@router.post("/jobs/abandoned-carts", response_model=AbandonedCartResponse)
async def check_abandoned_carts(
    store_id: StoreId, service: WriteService
) -> AbandonedCartResponse:
    """Fire ABANDONED_CART triggers for idle carts of this store."""
    result = await service.check_abandoned_carts(store_id)
    return AbandonedCartResponse(triggered=result.triggered, errors=result.errors)


@router.get("", response_model=list[WorkflowResponse])
async def list_workflows(
    store_id: StoreId,
    service: ReadService,
    status: str | None = Query(None),
    trigger_type: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
) -> list[WorkflowResponse]:
    """List workflows of the store, newest first."""
    workflows = await service.list_workflows(
        store_id, status=status, trigger_type=trigger_type, limit=limit
    )
    return [WorkflowResponse.model_validate(w) for w in workflows]


@router.post("", response_model=WorkflowResponse, status_code=201)
async def create_workflow(
    body: WorkflowCreateRequest,
    store_id: StoreId,
    service: WriteService,
) -> WorkflowResponse:
    """Create a workflow in draft status."""
    workflow = await service.create_workflow(
        store_id,
        WorkflowCreate(
            name=body.name,
            description=body.description,
            trigger_type=body.trigger_type.value,
            trigger_config=body.trigger_config,
            steps=[s.model_dump() for s in body.steps],
        ),
    )
    return WorkflowResponse.model_validate(workflow)


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: str, store_id: StoreId, service: ReadService
) -> WorkflowResponse:
    workflow = await service.get_workflow(store_id, workflow_id)
    return WorkflowResponse.model_validate(workflow)


@router.put("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: str,
    body: WorkflowUpdateRequest,
    store_id: StoreId,
    service: WriteService,
) -> WorkflowResponse:
    """Partial update; explicit null clears description or triggerConfig."""
    workflow = await service.update_workflow(
        store_id,
        workflow_id,
        WorkflowUpdate(
            name=body.name,
            description=body.description,
            trigger_type=body.trigger_type.value if body.trigger_type else None,
            trigger_config=body.trigger_config,
            steps=[s.model_dump() for s in body.steps] if body.steps is not None else None,
            cleared=frozenset(
                name
                for name in ("description", "trigger_config")
                if name in body.model_fields_set and getattr(body, name) is None
            ),
        ),
    )
    return WorkflowResponse.model_validate(workflow)


@router.delete("/{workflow_id}", status_code=204)
async def delete_workflow(
    workflow_id: str, store_id: StoreId, service: WriteService
) -> Response:
    """Soft-delete the workflow; its active enrollments are exited."""
    await service.delete_workflow(store_id, workflow_id)
    return Response(status_code=204)


@router.post("/{workflow_id}/activate", response_model=WorkflowResponse)
async def activate_workflow(
    workflow_id: str, store_id: StoreId, service: WriteService
) -> WorkflowResponse:
    workflow = await service.activate_workflow(store_id, workflow_id)
    return WorkflowResponse.model_validate(workflow)


@router.post("/{workflow_id}/pause", response_model=WorkflowResponse)
async def pause_workflow(
    workflow_id: str, store_id: StoreId, service: WriteService
) -> WorkflowResponse:
    workflow = await service.pause_workflow(store_id, workflow_id)
    return WorkflowResponse.model_validate(workflow)


@router.get("/{workflow_id}/stats", response_model=WorkflowStatsResponse)
async def get_workflow_stats(
    workflow_id: str, store_id: StoreId, service: ReadService
) -> WorkflowStatsResponse:
    stats = await service.get_workflow_stats(store_id, workflow_id)
    return WorkflowStatsResponse.model_validate(stats)


@router.get("/{workflow_id}/logs", response_model=list[StepLogResponse])
async def get_workflow_logs(
    workflow_id: str,
    store_id: StoreId,
    service: ReadService,
    status: str | None = Query(None),
    limit: int = Query(50, ge=1, le=1000),
) -> list[StepLogResponse]:
    """Step execution logs, newest first."""
    logs = await service.get_workflow_logs(store_id, workflow_id, status=status, limit=limit)
    return [StepLogResponse.model_validate(log) for log in logs]


@router.post("/{workflow_id}/enroll", response_model=EnrollmentResponse, status_code=201)
async def enroll_customer(
    workflow_id: str,
    body: EnrollRequest,
    store_id: StoreId,
    service: WriteService,
) -> EnrollmentResponse:
    """Manually enroll a customer (trigger conditions are not evaluated)."""
    enrollment = await service.enroll_customer(
        store_id, workflow_id, body.customer_id, body.trigger_data
    )
    return EnrollmentResponse.model_validate(enrollment)
