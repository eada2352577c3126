"""Execution-related Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunWorkflowRequest(BaseModel):
    """Request schema for a manual run."""

    payload: Any = Field(None, description="Trigger payload passed to the start node")


class TriggerResponse(CamelModel):
    """Immediate acknowledgement of a trigger."""

    execution_id: str = Field(..., description="Unique execution ID")
    status: str = Field(..., description="Execution status at dispatch time")


class ExecutionErrorSchema(CamelModel):
    """Schema for the error that ended an execution."""

    node_id: str | None = None
    message: str
    code: str
    timestamp: str


class ExecutionDetailResponse(CamelModel):
    """Persisted execution record."""

    execution_id: str
    workflow_id: str
    status: str
    mode: str
    started_at: str | None = None
    finished_at: str | None = None
    node_outputs: dict[str, dict[str, list[dict[str, Any]]]] = Field(default_factory=dict)
    node_attempts: dict[str, int] = Field(default_factory=dict)
    error: ExecutionErrorSchema | None = None


class ExecutionListItem(CamelModel):
    """Schema for execution in list response."""

    execution_id: str
    workflow_id: str
    status: str
    mode: str
    started_at: str | None = None
    finished_at: str | None = None


class CancelResponse(CamelModel):
    """Result of a cancellation request."""

    execution_id: str
    cancel_requested: bool
