"""In-memory storage, used by tests and when no database is configured."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import DatabaseService

if TYPE_CHECKING:
    from ..engine.types import ExecutionContext, ExecutionRecord, WorkflowDefinition


class InMemoryDatabaseService(DatabaseService):
    """In-memory workflow and execution storage with a bounded history."""

    def __init__(self, max_records: int = 100) -> None:
        self._workflows: dict[str, WorkflowDefinition] = {}
        self._executions: dict[str, ExecutionRecord] = {}
        self._max_records = max_records

    async def load_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        return self._workflows.get(workflow_id)

    async def save_workflow(self, definition: WorkflowDefinition) -> None:
        self._workflows[definition.id] = definition

    async def list_workflows(self) -> list[WorkflowDefinition]:
        return list(self._workflows.values())

    async def delete_workflow(self, workflow_id: str) -> bool:
        return self._workflows.pop(workflow_id, None) is not None

    async def save_execution(self, context: ExecutionContext) -> None:
        # Snapshot, so later mutation of the live context is not visible
        self._executions[context.execution_id] = context.to_record()
        self._cleanup()

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        return self._executions.get(execution_id)

    async def list_executions(self, workflow_id: str | None = None) -> list[ExecutionRecord]:
        records = sorted(self._executions.values(), key=lambda r: r.created_at, reverse=True)
        if workflow_id:
            records = [r for r in records if r.workflow_id == workflow_id]
        return records

    def _cleanup(self) -> None:
        """Remove oldest finished records if over max."""
        if len(self._executions) <= self._max_records:
            return
        finished = sorted(
            (r for r in self._executions.values() if r.status.is_terminal),
            key=lambda r: r.created_at,
        )
        for record in finished[: len(self._executions) - self._max_records]:
            del self._executions[record.execution_id]
