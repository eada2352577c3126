"""Workflow execution core."""

from .types import (
    Connection,
    EdgeState,
    ExecutionContext,
    ExecutionError,
    ExecutionRecord,
    ExecutionStatus,
    NodeData,
    NodeKind,
    NodeResult,
    NodeSpec,
    QueueItem,
    TriggerConfig,
    TriggerKind,
    TriggerResult,
    WorkflowDefinition,
)
from .node_registry import NodeRegistry
from .graph import GraphCache, WorkflowGraph
from .scheduler import GraphScheduler, ScheduledNode
from .executor import NodeExecutor, NodeOutcome, RetryPolicy
from .workflow_runner import WorkflowRunner
from .worker_pool import WorkerPool
from .dispatcher import TriggerDispatcher
from .engine import ExecutionEngine

__all__ = [
    "Connection",
    "EdgeState",
    "ExecutionContext",
    "ExecutionError",
    "ExecutionRecord",
    "ExecutionStatus",
    "NodeData",
    "NodeKind",
    "NodeResult",
    "NodeSpec",
    "QueueItem",
    "TriggerConfig",
    "TriggerKind",
    "TriggerResult",
    "WorkflowDefinition",
    "NodeRegistry",
    "GraphCache",
    "WorkflowGraph",
    "GraphScheduler",
    "ScheduledNode",
    "NodeExecutor",
    "NodeOutcome",
    "RetryPolicy",
    "WorkflowRunner",
    "WorkerPool",
    "TriggerDispatcher",
    "ExecutionEngine",
]
