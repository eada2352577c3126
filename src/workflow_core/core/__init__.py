"""Core module for workflow engine - config and exceptions."""

from .config import Settings, get_settings
from .exceptions import (
    WorkflowEngineError,
    WorkflowNotFoundError,
    ExecutionNotFoundError,
    NodeNotFoundError,
    ValidationError,
    WorkflowInactiveError,
    TriggerMismatchError,
    WebhookAuthError,
    GraphViolation,
    GraphValidationError,
    NodeExecutionError,
    NodeTimeoutError,
    LoopLimitExceeded,
    QueueFullError,
    WorkerPoolStoppedError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "WorkflowEngineError",
    "WorkflowNotFoundError",
    "ExecutionNotFoundError",
    "NodeNotFoundError",
    "ValidationError",
    "WorkflowInactiveError",
    "TriggerMismatchError",
    "WebhookAuthError",
    "GraphViolation",
    "GraphValidationError",
    "NodeExecutionError",
    "NodeTimeoutError",
    "LoopLimitExceeded",
    "QueueFullError",
    "WorkerPoolStoppedError",
]
