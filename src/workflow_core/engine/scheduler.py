"""
Graph scheduler - computes runnable batches from a graph and a context.

Each connection of a run carries an edge state. Completing a node marks
its outbound edges active (selected ports) or skipped (everything else).
A node becomes runnable when all of its inbound edges are settled and at
least one is active; when all of them are skipped the node is skipped too
and the skip propagates downstream.

Loop controllers are the exception. A loop head is first entered through
its ordinary inbound edges and re-entered when its back edges settle with
at least one active. Re-entry resets the loop body so it can run again.
While a loop can still iterate, skipped edges that leave it are held open
so that nodes after the loop wait for its final iteration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from ..core.exceptions import LoopLimitExceeded
from .graph import WorkflowGraph
from .types import Connection, EdgeState, ExecutionContext, NodeData, NodeResult, NodeSpec

logger = logging.getLogger(__name__)

DEFAULT_MAX_LOOP_ITERATIONS = 1000


class _Decision(Enum):
    WAIT = "wait"
    READY = "ready"
    REENTER = "reenter"
    SKIP = "skip"


@dataclass
class ScheduledNode:
    """A node selected for the next batch, with its gathered inputs."""

    node_id: str
    spec: NodeSpec
    input_data: dict[str, list[NodeData]] = field(default_factory=dict)
    reentry: bool = False


class GraphScheduler:
    """Stateless over runs: all run state lives in the ExecutionContext."""

    def __init__(
        self,
        graph: WorkflowGraph,
        max_loop_iterations: int = DEFAULT_MAX_LOOP_ITERATIONS,
    ) -> None:
        self.graph = graph
        self.max_loop_iterations = max_loop_iterations
        self._order = list(graph.nodes)

    # --- Batches ---

    def next_batch(self, context: ExecutionContext) -> list[ScheduledNode]:
        """
        Compute the next batch of runnable nodes.

        Returns an empty list when the run is exhausted.

        Raises:
            LoopLimitExceeded: if a loop controller would exceed its bound
        """
        if not context.started:
            return [self._schedule_start(context)]

        while True:
            ready: list[tuple[str, _Decision]] = []
            progressed = False
            for node_id in self._order:
                if node_id in context.pending_nodes:
                    continue
                decision = self._evaluate(context, node_id)
                if decision is _Decision.SKIP:
                    self._skip(context, node_id)
                    progressed = True
                elif decision is not _Decision.WAIT:
                    ready.append((node_id, decision))

            if ready:
                batch = [self._schedule(context, node_id, decision) for node_id, decision in ready]
                logger.debug(
                    f"Execution {context.execution_id}: batch {[n.node_id for n in batch]}"
                )
                return batch
            if not progressed:
                return []

    def complete(self, context: ExecutionContext, node_id: str, result: NodeResult) -> None:
        """Fold a successful node result into the context."""
        context.node_outputs[node_id] = dict(result.output_data)
        context.pending_nodes.discard(node_id)
        context.visited_nodes.add(node_id)
        context.node_run_counts[node_id] = context.node_run_counts.get(node_id, 0) + 1

        selected = result.selected_ports()
        for conn in self.graph.outbound[node_id]:
            state = EdgeState.ACTIVE if conn.source_output in selected else EdgeState.SKIPPED
            context.edge_states[conn.key] = state

    def unresolved_nodes(self, context: ExecutionContext) -> list[str]:
        """Nodes that were neither run nor skipped."""
        return [
            node_id
            for node_id in self._order
            if node_id not in context.visited_nodes and node_id not in context.skipped_nodes
        ]

    # --- Scheduling ---

    def _schedule_start(self, context: ExecutionContext) -> ScheduledNode:
        start = context.start_node_id
        context.pending_nodes.add(start)
        seeded = context.node_outputs.get(start) or {}
        return ScheduledNode(
            node_id=start,
            spec=self.graph.nodes[start],
            input_data={"main": list(seeded.get("main") or [])},
        )

    def _schedule(
        self, context: ExecutionContext, node_id: str, decision: _Decision
    ) -> ScheduledNode:
        reentry = decision is _Decision.REENTER
        if self.graph.is_loop_controller(node_id):
            self._count_iteration(context, node_id)

        edges = (
            self.graph.loop_back_edges(node_id) if reentry else self.graph.entry_edges(node_id)
        )
        # Inputs must be gathered before a re-entry resets the loop body
        input_data = self._gather(context, edges)
        if reentry:
            self._reset_loop(context, node_id)

        context.pending_nodes.add(node_id)
        return ScheduledNode(
            node_id=node_id,
            spec=self.graph.nodes[node_id],
            input_data=input_data,
            reentry=reentry,
        )

    def _count_iteration(self, context: ExecutionContext, node_id: str) -> None:
        count = context.loop_iterations.get(node_id, 0) + 1
        if count > self.max_loop_iterations:
            raise LoopLimitExceeded(node_id, self.max_loop_iterations)
        context.loop_iterations[node_id] = count

    def _reset_loop(self, context: ExecutionContext, head: str) -> None:
        body = self.graph.loop_bodies.get(head, frozenset())
        for node_id in body:
            context.visited_nodes.discard(node_id)
            context.skipped_nodes.discard(node_id)
        for node_id in body | {head}:
            for conn in self.graph.outbound[node_id]:
                context.edge_states.pop(conn.key, None)

    def _gather(
        self, context: ExecutionContext, edges: list[Connection]
    ) -> dict[str, list[NodeData]]:
        input_data: dict[str, list[NodeData]] = {}
        for conn in edges:
            if self._state(context, conn) is not EdgeState.ACTIVE:
                continue
            ports = context.node_outputs.get(conn.source_node) or {}
            items = ports.get(conn.source_output) or []
            input_data.setdefault(conn.target_input, []).extend(items)
        return input_data

    # --- Readiness ---

    def _evaluate(self, context: ExecutionContext, node_id: str) -> _Decision:
        if node_id in context.skipped_nodes:
            return _Decision.WAIT

        if node_id in context.visited_nodes:
            if not self.graph.is_loop_controller(node_id):
                return _Decision.WAIT
            back_edges = self.graph.loop_back_edges(node_id)
            if not back_edges:
                return _Decision.WAIT
            states = [self._state(context, conn) for conn in back_edges]
            if EdgeState.PENDING in states or EdgeState.ACTIVE not in states:
                return _Decision.WAIT
            return _Decision.REENTER

        states = [self._state(context, conn) for conn in self.graph.entry_edges(node_id)]
        if EdgeState.PENDING in states:
            return _Decision.WAIT
        if EdgeState.ACTIVE in states:
            return _Decision.READY
        return _Decision.SKIP

    def _skip(self, context: ExecutionContext, node_id: str) -> None:
        context.skipped_nodes.add(node_id)
        for conn in self.graph.outbound[node_id]:
            context.edge_states[conn.key] = EdgeState.SKIPPED

    def _state(self, context: ExecutionContext, conn: Connection) -> EdgeState:
        state = context.edge_states.get(conn.key, EdgeState.PENDING)
        if state is EdgeState.SKIPPED and self._held_by_open_loop(context, conn):
            return EdgeState.PENDING
        return state

    def _held_by_open_loop(self, context: ExecutionContext, conn: Connection) -> bool:
        """True when `conn` leaves a loop that may still iterate."""
        for head, body in self.graph.loop_bodies.items():
            members = body | {head}
            if conn.source_node not in members or conn.target_node in members:
                continue
            if self._loop_open(context, head):
                return True
        return False

    def _loop_open(self, context: ExecutionContext, head: str) -> bool:
        if head not in context.visited_nodes:
            return False
        return any(
            context.edge_states.get(conn.key, EdgeState.PENDING) is not EdgeState.SKIPPED
            for conn in self.graph.loop_back_edges(head)
        )
