"""
Execution engine - composes the graph model, scheduler, executor, dispatcher
and worker pool behind one surface.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Callable

from ..core.config import Settings
from ..core.exceptions import ExecutionNotFoundError, ValidationError
from .dispatcher import TriggerDispatcher
from .executor import NodeExecutor
from .graph import GraphCache, WorkflowGraph
from .node_registry import NodeRegistry
from .types import ExecutionContext, ExecutionRecord, TriggerKind, TriggerResult, WorkflowDefinition
from .worker_pool import WorkerPool
from .workflow_runner import WorkflowRunner

if TYPE_CHECKING:
    from ..storage.base import DatabaseService

logger = logging.getLogger(__name__)


class ExecutionEngine:
    """
    Public entry point of the execution core.

    The registry is passed in explicitly and frozen when the worker starts;
    the engine keeps no global state.
    """

    def __init__(
        self,
        database: DatabaseService,
        registry: NodeRegistry | None = None,
        settings: Settings | None = None,
        executor: NodeExecutor | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.database = database
        if registry is None:
            registry = NodeRegistry()
            registry.register_default_nodes()
        self.registry = registry
        self.graphs = GraphCache(registry)
        self.executor = executor or NodeExecutor.from_settings(self.settings)
        self.pool = WorkerPool(
            execute=self._run_execution,
            persist=database.save_execution,
            worker_count=self.settings.worker_count,
            max_size=self.settings.queue_max_size,
            run_retries=self.settings.run_retries,
            run_retry_delay=self.settings.run_retry_delay,
        )
        self.dispatcher = TriggerDispatcher(database, self.graphs, self.pool)

    # --- Lifecycle ---

    async def start_worker(self) -> None:
        self.registry.freeze()
        self.pool.start()

    async def stop_worker(self, timeout: float | None = None) -> None:
        await self.pool.stop(timeout=timeout)

    async def wait_until_idle(self) -> None:
        """Wait until every queued execution (including retries) has settled."""
        await self.pool.join()

    # --- Triggers ---

    async def trigger_workflow(
        self,
        workflow_id: str,
        trigger_kind: TriggerKind | str,
        payload: Any = None,
    ) -> TriggerResult:
        return await self.dispatcher.trigger_workflow(workflow_id, trigger_kind, payload)

    # --- Workflows ---

    def validate_workflow(self, definition: WorkflowDefinition) -> WorkflowGraph:
        """
        Validate a definition without storing it.

        Raises:
            GraphValidationError: listing every violation found
        """
        return WorkflowGraph.build(definition, self.registry)

    async def publish_workflow(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        """
        Validate and store a definition; republishing bumps its version.

        Raises:
            GraphValidationError: listing every violation found
            ValidationError: the webhook path belongs to another workflow
        """
        self.validate_workflow(definition)
        owner = await self.resolve_webhook(definition.webhook_path)
        if owner is not None and owner.id != definition.id:
            raise ValidationError(
                f"Webhook path {definition.webhook_path!r} is used by workflow {owner.id}",
                field="webhook_path",
            )
        existing = await self.database.load_workflow(definition.id)
        if existing is not None and existing.version >= definition.version:
            definition = dataclasses.replace(definition, version=existing.version + 1)
        await self.database.save_workflow(definition)
        self.graphs.invalidate(definition.id)
        logger.info(f"Published workflow {definition.id} version {definition.version}")
        return definition

    async def resolve_webhook(self, path: str) -> WorkflowDefinition | None:
        """Find the workflow a webhook path triggers."""
        for definition in await self.database.list_workflows():
            if definition.webhook_path == path:
                return definition
        return None

    # --- Executions ---

    async def get_execution(self, execution_id: str) -> ExecutionRecord:
        context = self.pool.find(execution_id)
        if context is not None:
            return context.to_record()
        record = await self.database.get_execution(execution_id)
        if record is None:
            raise ExecutionNotFoundError(execution_id)
        return record

    async def cancel_execution(self, execution_id: str) -> bool:
        """
        Request cancellation of an execution.

        Takes effect between batches. Returns False when the execution has
        already finished.

        Raises:
            ExecutionNotFoundError: unknown execution
        """
        context = self.pool.find(execution_id)
        if context is not None:
            context.cancel_requested = True
            logger.info(f"Cancellation requested for execution {execution_id}")
            return True
        record = await self.database.get_execution(execution_id)
        if record is None:
            raise ExecutionNotFoundError(execution_id)
        return False

    async def _run_execution(
        self,
        context: ExecutionContext,
        stop_requested: Callable[[], bool],
    ) -> ExecutionContext:
        graph = self.graphs.get(context.workflow)
        runner = WorkflowRunner(graph, self.executor, self.settings.max_loop_iterations)
        return await runner.run(context, stop_requested)
