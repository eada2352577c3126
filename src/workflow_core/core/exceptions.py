"""Custom exceptions for the workflow engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class WorkflowEngineError(Exception):
    """Base exception for all workflow engine errors."""

    code = "WorkflowEngineError"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class WorkflowNotFoundError(WorkflowEngineError):
    """Raised when a workflow is not found."""

    code = "NotFound"

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            message=f"Workflow not found: {workflow_id}",
            details={"workflow_id": workflow_id},
        )
        self.workflow_id = workflow_id


class ExecutionNotFoundError(WorkflowEngineError):
    """Raised when an execution record is not found."""

    code = "NotFound"

    def __init__(self, execution_id: str) -> None:
        super().__init__(
            message=f"Execution not found: {execution_id}",
            details={"execution_id": execution_id},
        )
        self.execution_id = execution_id


class NodeNotFoundError(WorkflowEngineError):
    """Raised when a node type is not registered."""

    code = "Unregistered"

    def __init__(self, node_type: str) -> None:
        super().__init__(
            message=f"Node type not found: {node_type}",
            details={"node_type": node_type},
        )
        self.node_type = node_type


class ValidationError(WorkflowEngineError):
    """Raised when validation fails."""

    code = "ValidationError"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )
        self.field = field


class WorkflowInactiveError(WorkflowEngineError):
    """Raised when trying to trigger an inactive workflow."""

    code = "WorkflowInactive"

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            message=f"Workflow is not active: {workflow_id}",
            details={"workflow_id": workflow_id},
        )
        self.workflow_id = workflow_id


class TriggerMismatchError(WorkflowEngineError):
    """Raised when a trigger kind does not match the workflow's trigger configuration."""

    code = "TriggerMismatch"

    def __init__(self, workflow_id: str, trigger_kind: str, expected: str) -> None:
        super().__init__(
            message=(
                f'Workflow {workflow_id} cannot be triggered by "{trigger_kind}" '
                f'(configured: "{expected}")'
            ),
            details={
                "workflow_id": workflow_id,
                "trigger_kind": trigger_kind,
                "expected": expected,
            },
        )
        self.workflow_id = workflow_id
        self.trigger_kind = trigger_kind


class WebhookAuthError(WorkflowEngineError):
    """Raised when a webhook request fails secret verification."""

    code = "WebhookAuth"

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            message=f"Webhook secret rejected for workflow: {workflow_id}",
            details={"workflow_id": workflow_id},
        )
        self.workflow_id = workflow_id


# --- Graph validation ---


@dataclass(frozen=True)
class GraphViolation:
    """A single structural defect found while validating a workflow graph."""

    code: str
    message: str
    node_id: str | None = None
    connection: tuple[str, str, str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.node_id is not None:
            data["nodeId"] = self.node_id
        if self.connection is not None:
            data["connection"] = list(self.connection)
        return data


class GraphValidationError(WorkflowEngineError):
    """Raised when a workflow graph has structural defects.

    Carries every violation found, not just the first one.
    """

    code = "GraphValidationError"

    def __init__(self, workflow_id: str | None, violations: list[GraphViolation]) -> None:
        summary = "; ".join(v.message for v in violations)
        super().__init__(
            message=f"Workflow graph is invalid ({len(violations)} violation(s)): {summary}",
            details={
                "workflow_id": workflow_id,
                "violations": [v.to_dict() for v in violations],
            },
        )
        self.workflow_id = workflow_id
        self.violations = violations

    @property
    def codes(self) -> set[str]:
        return {v.code for v in self.violations}


# --- Execution ---


class NodeExecutionError(WorkflowEngineError):
    """Node-local failure. `retryable` decides whether the executor retries it."""

    code = "NodeExecutionError"

    def __init__(
        self,
        message: str,
        node_id: str | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(
            message=message,
            details={"node_id": node_id, "retryable": retryable},
        )
        self.node_id = node_id
        self.retryable = retryable

    def for_node(self, node_id: str) -> NodeExecutionError:
        """Attach the failing node id, keeping the original error type."""
        self.node_id = node_id
        self.details["node_id"] = node_id
        return self


class NodeTimeoutError(NodeExecutionError):
    """Raised when a node does not finish within its timeout."""

    code = "Timeout"

    def __init__(self, node_id: str | None, timeout: float) -> None:
        super().__init__(
            message=f"Node timed out after {timeout:g}s",
            node_id=node_id,
            retryable=True,
        )
        self.timeout = timeout


class LoopLimitExceeded(WorkflowEngineError):
    """Raised when a loop controller is revisited more often than allowed."""

    code = "LoopLimitExceeded"

    def __init__(self, node_id: str, limit: int) -> None:
        super().__init__(
            message=f'Loop node "{node_id}" exceeded the maximum of {limit} iterations',
            details={"node_id": node_id, "limit": limit},
        )
        self.node_id = node_id
        self.limit = limit


class QueueFullError(WorkflowEngineError):
    """Raised when the execution queue cannot accept more items."""

    code = "QueueFull"

    def __init__(self, max_size: int) -> None:
        super().__init__(
            message=f"Execution queue is full ({max_size} items)",
            details={"max_size": max_size},
        )


class WorkerPoolStoppedError(WorkflowEngineError):
    """Raised when work is submitted to a pool that is not running."""

    code = "WorkerPoolStopped"

    def __init__(self, message: str = "Worker pool is not running") -> None:
        super().__init__(message=message)
