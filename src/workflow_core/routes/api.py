"""REST API routes for workflows and executions."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, HTTPException

from ..core.dependencies import CronDep, EngineDep
from ..core.exceptions import (
    ExecutionNotFoundError,
    GraphValidationError,
    QueueFullError,
    TriggerMismatchError,
    ValidationError,
    WorkerPoolStoppedError,
    WorkflowEngineError,
    WorkflowInactiveError,
    WorkflowNotFoundError,
)
from ..engine.types import TriggerKind, WorkflowDefinition
from ..schemas.execution import (
    CancelResponse,
    ExecutionDetailResponse,
    ExecutionListItem,
    RunWorkflowRequest,
    TriggerResponse,
)
from ..schemas.workflow import ValidationResponse, WorkflowPublishRequest, WorkflowResponse
from ..storage.serialization import workflow_to_dict
from ..utils.hashing import hash_secret

router = APIRouter(prefix="/api/v1")

_STATUS_CODES: list[tuple[type[WorkflowEngineError], int]] = [
    (WorkflowNotFoundError, 404),
    (ExecutionNotFoundError, 404),
    (GraphValidationError, 422),
    (WorkflowInactiveError, 409),
    (TriggerMismatchError, 400),
    (ValidationError, 400),
    (QueueFullError, 503),
    (WorkerPoolStoppedError, 503),
]


def _raise_http(error: WorkflowEngineError) -> NoReturn:
    status_code = next((code for cls, code in _STATUS_CODES if isinstance(error, cls)), 500)
    raise HTTPException(
        status_code=status_code,
        detail={"message": error.message, "code": error.code, "details": error.details},
    )


def _workflow_response(definition: WorkflowDefinition) -> WorkflowResponse:
    definition_dict = workflow_to_dict(definition)
    # Never echo the secret hash
    definition_dict["triggerConfig"].pop("secretHash", None)
    return WorkflowResponse(
        id=definition.id,
        name=definition.name,
        active=definition.active,
        version=definition.version,
        trigger_kind=definition.trigger_config.kind.value,
        webhook_url=f"/webhook/{definition.webhook_path}",
        has_webhook_secret=definition.trigger_config.secret_hash is not None,
        definition=definition_dict,
    )


# --- Workflows ---


@router.post("/workflows", response_model=WorkflowResponse, status_code=201)
async def publish_workflow(
    request: WorkflowPublishRequest,
    engine: EngineDep,
    cron: CronDep,
) -> WorkflowResponse:
    """Validate and store a workflow."""
    secret = request.trigger_config.webhook_secret
    definition = request.to_definition(secret_hash=hash_secret(secret) if secret else None)
    try:
        definition = await engine.publish_workflow(definition)
        if cron is not None:
            cron.sync(definition)
    except WorkflowEngineError as e:
        _raise_http(e)
    return _workflow_response(definition)


@router.post("/workflows/validate", response_model=ValidationResponse)
async def validate_workflow(request: WorkflowPublishRequest, engine: EngineDep) -> ValidationResponse:
    """Validate a workflow without storing it."""
    try:
        engine.validate_workflow(request.to_definition())
    except GraphValidationError as e:
        return ValidationResponse(valid=False, violations=[v.to_dict() for v in e.violations])
    return ValidationResponse(valid=True)


@router.get("/workflows", response_model=list[WorkflowResponse])
async def list_workflows(engine: EngineDep) -> list[WorkflowResponse]:
    """List all workflows."""
    return [_workflow_response(d) for d in await engine.database.list_workflows()]


@router.get("/workflows/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(workflow_id: str, engine: EngineDep) -> WorkflowResponse:
    """Get a single workflow by ID."""
    definition = await engine.database.load_workflow(workflow_id)
    if definition is None:
        _raise_http(WorkflowNotFoundError(workflow_id))
    return _workflow_response(definition)


@router.post("/workflows/{workflow_id}/run", response_model=TriggerResponse)
async def run_workflow(
    workflow_id: str,
    engine: EngineDep,
    request: RunWorkflowRequest | None = None,
) -> TriggerResponse:
    """Start a manual execution."""
    payload = request.payload if request is not None else None
    try:
        result = await engine.trigger_workflow(workflow_id, TriggerKind.MANUAL, payload)
    except WorkflowEngineError as e:
        _raise_http(e)
    return TriggerResponse(execution_id=result.execution_id, status=result.status.value)


# --- Executions ---


@router.get("/executions", response_model=list[ExecutionListItem])
async def list_executions(engine: EngineDep, workflow_id: str | None = None) -> list[ExecutionListItem]:
    """List execution history, newest first."""
    records = await engine.database.list_executions(workflow_id)
    return [ExecutionListItem.model_validate(r.to_dict()) for r in records]


@router.get("/executions/{execution_id}", response_model=ExecutionDetailResponse)
async def get_execution(execution_id: str, engine: EngineDep) -> ExecutionDetailResponse:
    """Get an execution record."""
    try:
        record = await engine.get_execution(execution_id)
    except WorkflowEngineError as e:
        _raise_http(e)
    return ExecutionDetailResponse.model_validate(record.to_dict())


@router.post("/executions/{execution_id}/cancel", response_model=CancelResponse)
async def cancel_execution(execution_id: str, engine: EngineDep) -> CancelResponse:
    """Request cancellation; it takes effect between batches."""
    try:
        requested = await engine.cancel_execution(execution_id)
    except WorkflowEngineError as e:
        _raise_http(e)
    return CancelResponse(execution_id=execution_id, cancel_requested=requested)
