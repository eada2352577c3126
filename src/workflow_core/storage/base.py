"""Persistence contract consumed by the execution engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..engine.types import ExecutionContext, ExecutionRecord, WorkflowDefinition


class DatabaseService(ABC):
    """
    Storage for workflow definitions and execution records.

    `connect()` and `disconnect()` are called once at process start and stop.
    `save_execution` is called repeatedly for the same execution as it moves
    through its lifecycle and must overwrite the previous record.
    """

    async def connect(self) -> None:
        return None

    async def disconnect(self) -> None:
        return None

    @abstractmethod
    async def load_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        """Return the stored definition, or None when it does not exist."""

    @abstractmethod
    async def save_workflow(self, definition: WorkflowDefinition) -> None: ...

    @abstractmethod
    async def list_workflows(self) -> list[WorkflowDefinition]: ...

    @abstractmethod
    async def save_execution(self, context: ExecutionContext) -> None: ...

    @abstractmethod
    async def get_execution(self, execution_id: str) -> ExecutionRecord | None: ...

    @abstractmethod
    async def list_executions(self, workflow_id: str | None = None) -> list[ExecutionRecord]:
        """Execution records, newest first."""
