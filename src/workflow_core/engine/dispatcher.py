"""
Trigger dispatcher - turns trigger events into queued executions.

The dispatcher is trigger-kind agnostic: webhooks, the cron timer and
manual runs all call `trigger_workflow`. It returns as soon as the
execution is enqueued; the outcome is observed through the persisted
execution record.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..core.exceptions import (
    TriggerMismatchError,
    ValidationError,
    WorkflowEngineError,
    WorkflowInactiveError,
    WorkflowNotFoundError,
)
from .data import to_items
from .types import ExecutionContext, ExecutionError, TriggerKind, TriggerResult

if TYPE_CHECKING:
    from ..storage.base import DatabaseService
    from .graph import GraphCache
    from .worker_pool import WorkerPool

logger = logging.getLogger(__name__)


def parse_trigger_kind(trigger_kind: TriggerKind | str) -> TriggerKind:
    try:
        return TriggerKind(trigger_kind)
    except ValueError:
        raise ValidationError(f"Unknown trigger kind: {trigger_kind}", field="trigger_kind") from None


class TriggerDispatcher:
    """Creates ExecutionContexts and hands them to the worker pool."""

    def __init__(
        self,
        database: DatabaseService,
        graphs: GraphCache,
        pool: WorkerPool,
    ) -> None:
        self._database = database
        self._graphs = graphs
        self._pool = pool

    async def trigger_workflow(
        self,
        workflow_id: str,
        trigger_kind: TriggerKind | str,
        payload: Any = None,
    ) -> TriggerResult:
        """
        Start an execution of a workflow.

        Raises:
            WorkflowNotFoundError: unknown workflow
            WorkflowInactiveError: workflow is disabled
            TriggerMismatchError: trigger kind not allowed by the trigger config
            GraphValidationError: stored workflow is structurally invalid
            QueueFullError / WorkerPoolStoppedError: execution could not be enqueued
        """
        kind = parse_trigger_kind(trigger_kind)

        definition = await self._database.load_workflow(workflow_id)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)
        if not definition.active:
            raise WorkflowInactiveError(workflow_id)

        expected = definition.trigger_config.kind
        if kind is not TriggerKind.MANUAL and kind is not expected:
            raise TriggerMismatchError(workflow_id, kind.value, expected.value)

        graph = self._graphs.get(definition)
        start_node = graph.start_node_for(kind)
        if start_node is None:
            raise ValidationError(
                f"Workflow {workflow_id} has no trigger node for {kind.value} runs",
                field="trigger_config",
            )

        context = ExecutionContext.create(
            workflow=definition,
            mode=kind,
            start_node_id=start_node,
            payload=to_items(payload),
        )

        # Reject before persisting when the pool cannot take the run
        self._pool.ensure_accepting()
        await self._database.save_execution(context)

        status = context.status
        try:
            self._pool.submit(context)
        except WorkflowEngineError as e:
            context.fail(ExecutionError.from_exception(e))
            await self._database.save_execution(context)
            raise

        logger.info(
            f"Dispatched execution {context.execution_id} of workflow {workflow_id} "
            f"({kind.value}, start node {start_node})"
        )
        return TriggerResult(execution_id=context.execution_id, status=status)
