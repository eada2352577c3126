"""Core type definitions for the workflow engine."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ..core.exceptions import WorkflowEngineError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NodeKind(str, Enum):
    """Variant tag of a node capability."""

    TRIGGER = "trigger"
    ACTION = "action"
    CONDITIONAL = "conditional"
    LOOP = "loop"


class TriggerKind(str, Enum):
    """How an execution was (or may be) started."""

    WEBHOOK = "webhook"
    CRON = "cron"
    MANUAL = "manual"
    NONE = "none"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ExecutionStatus.SUCCEEDED,
            ExecutionStatus.FAILED,
            ExecutionStatus.CANCELLED,
        )


class EdgeState(str, Enum):
    """Activation state of a connection within one run."""

    PENDING = "pending"
    ACTIVE = "active"
    SKIPPED = "skipped"


@dataclass
class NodeData:
    """Data item passed between nodes."""

    json: dict[str, Any]
    binary: dict[str, bytes] | None = None


# Output data keyed by port name. A None value means the port produced no output.
PortData = dict[str, "list[NodeData] | None"]


@dataclass
class NodeResult:
    """
    Result of a single node invocation.

    `output_data` holds one entry per output port. `next_ports` is the
    port selection hint of conditional and loop nodes; when it is None the
    ports with a non-None value are selected.
    """

    success: bool = True
    output_data: PortData = field(default_factory=dict)
    error: WorkflowEngineError | None = None
    next_ports: list[str] | None = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("A successful NodeResult cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("A failed NodeResult must carry an error")

    def selected_ports(self) -> set[str]:
        if self.next_ports is not None:
            return set(self.next_ports)
        return {port for port, data in self.output_data.items() if data is not None}


# --- Workflow Schema Types ---


@dataclass(frozen=True)
class NodeSpec:
    """Definition of a node in a workflow."""

    id: str
    type: str
    parameters: dict[str, Any] = field(default_factory=dict)
    disabled: bool = False
    timeout: float | None = None
    max_retries: int | None = None


@dataclass(frozen=True)
class Connection:
    """Directed edge between an output port and an input port."""

    source_node: str
    target_node: str
    source_output: str = "main"
    target_input: str = "main"

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.source_node, self.source_output, self.target_node, self.target_input)

    def __str__(self) -> str:
        return (
            f"{self.source_node}.{self.source_output} -> "
            f"{self.target_node}.{self.target_input}"
        )


@dataclass(frozen=True)
class TriggerConfig:
    """How a workflow may be started from the outside."""

    kind: TriggerKind = TriggerKind.NONE
    webhook_path: str | None = None
    cron_expression: str | None = None
    node_id: str | None = None
    secret_hash: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", TriggerKind(self.kind))


@dataclass(frozen=True)
class WorkflowDefinition:
    """Workflow definition. Immutable once published."""

    id: str
    name: str
    nodes: tuple[NodeSpec, ...] = ()
    connections: tuple[Connection, ...] = ()
    trigger_config: TriggerConfig = field(default_factory=TriggerConfig)
    active: bool = True
    settings: dict[str, Any] = field(default_factory=dict)
    version: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "connections", tuple(self.connections))

    @property
    def webhook_path(self) -> str:
        """Path segment under /webhook/ that triggers this workflow."""
        return self.trigger_config.webhook_path or self.id


# --- Execution Types ---


@dataclass
class ExecutionError:
    """Error that ended (or failed an attempt of) an execution."""

    message: str
    code: str
    node_id: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    @classmethod
    def from_exception(cls, exc: BaseException, node_id: str | None = None) -> ExecutionError:
        if isinstance(exc, WorkflowEngineError):
            return cls(
                message=exc.message,
                code=exc.code,
                node_id=node_id or getattr(exc, "node_id", None),
            )
        return cls(message=str(exc) or type(exc).__name__, code=type(exc).__name__, node_id=node_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "message": self.message,
            "code": self.code,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ExecutionContext:
    """
    Mutable state of one workflow run.

    Created by the trigger dispatcher and mutated only by the worker that
    has claimed it.
    """

    workflow: WorkflowDefinition
    execution_id: str
    mode: TriggerKind
    start_node_id: str
    trigger_payload: list[NodeData] = field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.PENDING

    # Node execution state
    node_outputs: dict[str, PortData] = field(default_factory=dict)
    pending_nodes: set[str] = field(default_factory=set)
    visited_nodes: set[str] = field(default_factory=set)
    skipped_nodes: set[str] = field(default_factory=set)
    edge_states: dict[tuple[str, str, str, str], EdgeState] = field(default_factory=dict)

    # Loop support: iterations per loop controller
    loop_iterations: dict[str, int] = field(default_factory=dict)
    node_run_counts: dict[str, int] = field(default_factory=dict)
    node_attempts: dict[str, int] = field(default_factory=dict)

    created_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: ExecutionError | None = None
    run_attempt: int = 1
    cancel_requested: bool = False

    @classmethod
    def create(
        cls,
        workflow: WorkflowDefinition,
        mode: TriggerKind,
        start_node_id: str,
        payload: list[NodeData],
    ) -> ExecutionContext:
        context = cls(
            workflow=workflow,
            execution_id=generate_execution_id(),
            mode=mode,
            start_node_id=start_node_id,
            trigger_payload=payload,
        )
        context.seed()
        return context

    @property
    def workflow_id(self) -> str:
        return self.workflow.id

    def seed(self) -> None:
        """Place the trigger payload on the start node."""
        self.node_outputs[self.start_node_id] = {"main": list(self.trigger_payload)}

    @property
    def started(self) -> bool:
        return bool(self.visited_nodes or self.skipped_nodes or self.pending_nodes)

    def mark_running(self) -> None:
        self.status = ExecutionStatus.RUNNING
        if self.started_at is None:
            self.started_at = utcnow()

    def succeed(self) -> None:
        self._finish(ExecutionStatus.SUCCEEDED)

    def fail(self, error: ExecutionError) -> None:
        self.error = error
        self._finish(ExecutionStatus.FAILED)

    def cancel(self, error: ExecutionError | None = None) -> None:
        if error is not None:
            self.error = error
        self._finish(ExecutionStatus.CANCELLED)

    def _finish(self, status: ExecutionStatus) -> None:
        self.status = status
        self.pending_nodes.clear()
        self.finished_at = utcnow()

    def reset_for_retry(self) -> None:
        """Clear all run state so the whole execution can run again."""
        self.node_outputs.clear()
        self.pending_nodes.clear()
        self.visited_nodes.clear()
        self.skipped_nodes.clear()
        self.edge_states.clear()
        self.loop_iterations.clear()
        self.node_run_counts.clear()
        self.node_attempts.clear()
        self.error = None
        self.status = ExecutionStatus.PENDING
        self.run_attempt += 1
        self.seed()

    def to_record(self) -> ExecutionRecord:
        from .data import clone_items

        return ExecutionRecord(
            execution_id=self.execution_id,
            workflow_id=self.workflow_id,
            workflow_name=self.workflow.name,
            status=self.status,
            mode=self.mode,
            started_at=self.started_at,
            finished_at=self.finished_at,
            node_outputs={
                node_id: {
                    port: clone_items(items)
                    for port, items in ports.items()
                    if items is not None
                }
                for node_id, ports in self.node_outputs.items()
            },
            node_attempts=dict(self.node_attempts),
            error=self.error,
            created_at=self.created_at,
        )


@dataclass
class QueueItem:
    """An execution waiting in (or claimed from) the worker queue."""

    context: ExecutionContext
    attempt: int = 1
    next_run_at: datetime | None = None

    @property
    def execution_id(self) -> str:
        return self.context.execution_id


@dataclass
class TriggerResult:
    """Immediate acknowledgement returned to trigger callers."""

    execution_id: str
    status: ExecutionStatus

    def to_dict(self) -> dict[str, str]:
        return {"executionId": self.execution_id, "status": self.status.value}


@dataclass
class ExecutionRecord:
    """Persisted shape of an execution."""

    execution_id: str
    workflow_id: str
    workflow_name: str
    status: ExecutionStatus
    mode: TriggerKind
    started_at: datetime | None = None
    finished_at: datetime | None = None
    node_outputs: dict[str, dict[str, list[NodeData]]] = field(default_factory=dict)
    node_attempts: dict[str, int] = field(default_factory=dict)
    error: ExecutionError | None = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "executionId": self.execution_id,
            "workflowId": self.workflow_id,
            "status": self.status.value,
            "mode": self.mode.value,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "nodeOutputs": {
                node_id: {port: [item.json for item in items] for port, items in ports.items()}
                for node_id, ports in self.node_outputs.items()
            },
            "nodeAttempts": dict(self.node_attempts),
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


def generate_execution_id() -> str:
    """Generate unique execution ID."""
    return f"exec_{int(utcnow().timestamp() * 1000)}_{uuid.uuid4().hex}"
