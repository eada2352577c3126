"""Pydantic schemas for API requests and responses."""

from .common import HealthResponse, RootResponse
from .execution import (
    CancelResponse,
    ExecutionDetailResponse,
    ExecutionErrorSchema,
    ExecutionListItem,
    RunWorkflowRequest,
    TriggerResponse,
)
from .workflow import (
    ConnectionSchema,
    NodeSpecSchema,
    TriggerConfigSchema,
    ValidationResponse,
    WorkflowPublishRequest,
    WorkflowResponse,
)

__all__ = [
    "HealthResponse",
    "RootResponse",
    "CancelResponse",
    "ExecutionDetailResponse",
    "ExecutionErrorSchema",
    "ExecutionListItem",
    "RunWorkflowRequest",
    "TriggerResponse",
    "ConnectionSchema",
    "NodeSpecSchema",
    "TriggerConfigSchema",
    "ValidationResponse",
    "WorkflowPublishRequest",
    "WorkflowResponse",
]
