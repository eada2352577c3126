"""
Workflow runner - drives one execution batch by batch.

Each batch is awaited as a whole before the next one is computed, so a
node's outputs only become visible downstream once its batch has settled.
Cancellation and shutdown are observed between batches. The first node of a
batch to fail stops its siblings from starting further retry attempts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..core.exceptions import NodeExecutionError
from .executor import NodeExecutor, NodeOutcome
from .graph import WorkflowGraph
from .scheduler import DEFAULT_MAX_LOOP_ITERATIONS, GraphScheduler, ScheduledNode
from .types import ExecutionContext, ExecutionError

logger = logging.getLogger(__name__)


class WorkflowRunner:
    """Executes a validated workflow graph for one ExecutionContext."""

    def __init__(
        self,
        graph: WorkflowGraph,
        executor: NodeExecutor,
        max_loop_iterations: int = DEFAULT_MAX_LOOP_ITERATIONS,
    ) -> None:
        self.graph = graph
        self.executor = executor
        limit = graph.definition.settings.get("maxLoopIterations")
        self.scheduler = GraphScheduler(graph, int(limit) if limit else max_loop_iterations)

    async def run(
        self,
        context: ExecutionContext,
        stop_requested: Callable[[], bool] | None = None,
    ) -> ExecutionContext:
        """
        Run the execution until it is terminal.

        Returns the context once it has succeeded or was cancelled.

        Raises:
            NodeExecutionError: a node failed after exhausting its retries
            LoopLimitExceeded: a loop controller exceeded its iteration bound
        """
        context.mark_running()

        while True:
            if self._halted(context, stop_requested):
                return context

            batch = self.scheduler.next_batch(context)
            if not batch:
                unresolved = self.scheduler.unresolved_nodes(context)
                if unresolved:
                    logger.warning(
                        f"Execution {context.execution_id} finished with unresolved nodes: {unresolved}"
                    )
                context.succeed()
                logger.info(f"Execution {context.execution_id} succeeded")
                return context

            abort = asyncio.Event()
            failures: list[NodeOutcome] = []
            outcomes = await asyncio.gather(
                *(self._execute(context, item, abort, failures) for item in batch)
            )

            if context.cancel_requested:
                # Results of the in-flight batch are discarded
                self._discard(context, batch)
                self._halted(context, stop_requested)
                return context

            for outcome in outcomes:
                if outcome.attempts:
                    context.node_attempts[outcome.node_id] = outcome.attempts

            if failures:
                # The first failure to land is the cause, later ones were aborted by it
                failed = failures[0]
                self._discard(context, batch)
                error = failed.error or NodeExecutionError("Node failed", node_id=failed.node_id)
                raise error.for_node(failed.node_id)

            for item, outcome in zip(batch, outcomes):
                self.scheduler.complete(context, item.node_id, outcome.result)

    async def _execute(
        self,
        context: ExecutionContext,
        item: ScheduledNode,
        abort: asyncio.Event,
        failures: list[NodeOutcome],
    ) -> NodeOutcome:
        node = self.graph.capability(item.node_id)
        output_ports = sorted({c.source_output for c in self.graph.outbound[item.node_id]}) or [
            "main"
        ]
        outcome = await self.executor.execute(
            item.spec,
            node,
            item.input_data,
            output_ports=output_ports,
            workflow_settings=context.workflow.settings,
            abort=abort,
        )
        if not outcome.success:
            failures.append(outcome)
            abort.set()
        return outcome

    @staticmethod
    def _discard(context: ExecutionContext, batch: list[ScheduledNode]) -> None:
        for item in batch:
            context.pending_nodes.discard(item.node_id)

    @staticmethod
    def _halted(
        context: ExecutionContext,
        stop_requested: Callable[[], bool] | None,
    ) -> bool:
        if context.cancel_requested:
            context.cancel(ExecutionError(message="Execution was cancelled", code="Cancelled"))
            logger.info(f"Execution {context.execution_id} cancelled")
            return True
        if stop_requested is not None and stop_requested():
            context.cancel(
                ExecutionError(
                    message="Execution halted because the worker pool stopped",
                    code="WorkerPoolStopped",
                )
            )
            logger.info(f"Execution {context.execution_id} halted by worker pool shutdown")
            return True
        return False
