"""
Workflow graph model.

Indexes a WorkflowDefinition, resolves its node types against the registry
once, and validates its structure. Validation collects every violation
before failing so an author can fix them all in one pass.

Loops are only allowed through loop-controller nodes. A connection u -> h
is a back edge when h dominates u, i.e. every path from a trigger to u
passes through h. Every back edge must target a loop controller, and the
graph with back edges removed must be acyclic.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..core.exceptions import GraphValidationError, GraphViolation, NodeNotFoundError, ValidationError
from .cron import parse_cron_expression
from .types import Connection, NodeKind, NodeSpec, TriggerKind, WorkflowDefinition

if TYPE_CHECKING:
    from ..nodes.base import BaseNode
    from .node_registry import NodeRegistry

logger = logging.getLogger(__name__)

EdgeKey = tuple[str, str, str, str]

_ROOT = "\0root"


@dataclass
class WorkflowGraph:
    """Validated, indexed view of a workflow definition."""

    definition: WorkflowDefinition
    nodes: dict[str, NodeSpec]
    capabilities: dict[str, BaseNode]
    inbound: dict[str, list[Connection]]
    outbound: dict[str, list[Connection]]
    trigger_nodes: list[str]
    back_edges: frozenset[EdgeKey] = frozenset()
    loop_bodies: dict[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, definition: WorkflowDefinition, registry: NodeRegistry) -> WorkflowGraph:
        """
        Build and validate a graph.

        Raises:
            GraphValidationError: listing every structural violation found
        """
        builder = _GraphBuilder(definition, registry)
        graph = builder.build()
        if builder.violations:
            raise GraphValidationError(definition.id, builder.violations)
        logger.debug(
            f"Graph for workflow {definition.id}: {len(graph.nodes)} nodes, "
            f"{len(graph.back_edges)} back edges, loops: {sorted(graph.loop_bodies)}"
        )
        return graph

    # --- Queries ---

    def capability(self, node_id: str) -> BaseNode:
        return self.capabilities[node_id]

    def is_loop_controller(self, node_id: str) -> bool:
        return self.capabilities[node_id].kind is NodeKind.LOOP

    def entry_edges(self, node_id: str) -> list[Connection]:
        """Inbound connections that are not loop back edges."""
        return [c for c in self.inbound[node_id] if c.key not in self.back_edges]

    def loop_back_edges(self, node_id: str) -> list[Connection]:
        return [c for c in self.inbound[node_id] if c.key in self.back_edges]

    def start_node_for(self, trigger_kind: TriggerKind) -> str | None:
        """Pick the trigger node a run of the given kind starts at."""
        configured = self.definition.trigger_config.node_id
        if configured is not None:
            return configured if configured in self.trigger_nodes else None

        for node_id in self.trigger_nodes:
            if self.capabilities[node_id].trigger_kind is trigger_kind:
                return node_id

        # Manual runs may start at any trigger
        if trigger_kind is TriggerKind.MANUAL and self.trigger_nodes:
            return self.trigger_nodes[0]
        return None


class _GraphBuilder:
    """Collects violations while indexing a definition."""

    def __init__(self, definition: WorkflowDefinition, registry: NodeRegistry) -> None:
        self.definition = definition
        self.registry = registry
        self.violations: list[GraphViolation] = []

    def _violation(
        self,
        code: str,
        message: str,
        node_id: str | None = None,
        connection: Connection | None = None,
    ) -> None:
        self.violations.append(
            GraphViolation(
                code=code,
                message=message,
                node_id=node_id,
                connection=connection.key if connection else None,
            )
        )

    def build(self) -> WorkflowGraph:
        definition = self.definition
        if not definition.nodes:
            self._violation("empty_workflow", "Workflow must have at least one node")

        nodes = self._index_nodes()
        capabilities = self._resolve_types(nodes)
        inbound, outbound = self._index_connections(nodes, capabilities)

        trigger_nodes = [
            node_id for node_id, cap in capabilities.items() if cap.kind is NodeKind.TRIGGER
        ]
        if nodes and not trigger_nodes:
            self._violation("no_trigger", "Workflow has no trigger node")

        self._check_trigger_config(nodes, capabilities)

        roots = trigger_nodes or [n for n in nodes if not inbound[n]] or list(nodes)
        reachable = self._reachable(roots, outbound)
        if trigger_nodes:
            for node_id in nodes:
                if node_id not in reachable:
                    self._violation(
                        "unreachable_node",
                        f'Node "{node_id}" is not reachable from any trigger',
                        node_id=node_id,
                    )

        back_edges, loop_bodies = self._analyze_loops(
            nodes, capabilities, inbound, outbound, roots, reachable
        )

        return WorkflowGraph(
            definition=definition,
            nodes=nodes,
            capabilities=capabilities,
            inbound=inbound,
            outbound=outbound,
            trigger_nodes=trigger_nodes,
            back_edges=frozenset(back_edges),
            loop_bodies={h: frozenset(body) for h, body in loop_bodies.items()},
        )

    def _index_nodes(self) -> dict[str, NodeSpec]:
        nodes: dict[str, NodeSpec] = {}
        for spec in self.definition.nodes:
            if spec.id in nodes:
                self._violation(
                    "duplicate_node", f'Duplicate node id "{spec.id}"', node_id=spec.id
                )
                continue
            nodes[spec.id] = spec
        return nodes

    def _resolve_types(self, nodes: dict[str, NodeSpec]) -> dict[str, BaseNode]:
        capabilities: dict[str, BaseNode] = {}
        for node_id, spec in nodes.items():
            try:
                capabilities[node_id] = self.registry.resolve(spec.type)
            except NodeNotFoundError:
                self._violation(
                    "unknown_node_type",
                    f'Node "{node_id}" has unknown type "{spec.type}"',
                    node_id=node_id,
                )
        return capabilities

    def _index_connections(
        self,
        nodes: dict[str, NodeSpec],
        capabilities: dict[str, BaseNode],
    ) -> tuple[dict[str, list[Connection]], dict[str, list[Connection]]]:
        inbound: dict[str, list[Connection]] = {node_id: [] for node_id in nodes}
        outbound: dict[str, list[Connection]] = {node_id: [] for node_id in nodes}
        seen: set[EdgeKey] = set()

        for conn in self.definition.connections:
            if conn.key in seen:
                continue
            seen.add(conn.key)

            missing = [n for n in (conn.source_node, conn.target_node) if n not in nodes]
            if missing:
                for node_id in missing:
                    self._violation(
                        "dangling_connection",
                        f'Connection {conn} references unknown node "{node_id}"',
                        connection=conn,
                    )
                continue

            source = capabilities.get(conn.source_node)
            if source is not None:
                ports = source.output_ports()
                if ports is not None and conn.source_output not in ports:
                    self._violation(
                        "unknown_output_port",
                        f'Connection {conn}: node "{conn.source_node}" has no output "{conn.source_output}"',
                        node_id=conn.source_node,
                        connection=conn,
                    )

            target = capabilities.get(conn.target_node)
            if target is not None:
                ports = target.input_ports()
                if target.kind is NodeKind.TRIGGER:
                    self._violation(
                        "trigger_has_inputs",
                        f'Connection {conn}: trigger node "{conn.target_node}" cannot have inputs',
                        node_id=conn.target_node,
                        connection=conn,
                    )
                elif ports is not None and conn.target_input not in ports:
                    self._violation(
                        "unknown_input_port",
                        f'Connection {conn}: node "{conn.target_node}" has no input "{conn.target_input}"',
                        node_id=conn.target_node,
                        connection=conn,
                    )

            inbound[conn.target_node].append(conn)
            outbound[conn.source_node].append(conn)

        return inbound, outbound

    def _check_trigger_config(
        self,
        nodes: dict[str, NodeSpec],
        capabilities: dict[str, BaseNode],
    ) -> None:
        config = self.definition.trigger_config
        if config.node_id is not None:
            cap = capabilities.get(config.node_id)
            if config.node_id not in nodes or (cap is not None and cap.kind is not NodeKind.TRIGGER):
                self._violation(
                    "invalid_trigger_config",
                    f'Trigger configuration names "{config.node_id}", which is not a trigger node',
                    node_id=config.node_id,
                )
        if config.kind is TriggerKind.CRON:
            if not config.cron_expression:
                self._violation(
                    "invalid_trigger_config", "Cron trigger configuration requires a cron expression"
                )
            else:
                try:
                    parse_cron_expression(config.cron_expression)
                except ValidationError as e:
                    self._violation("invalid_trigger_config", e.message)

    @staticmethod
    def _reachable(roots: list[str], outbound: dict[str, list[Connection]]) -> set[str]:
        seen = set(roots)
        queue = deque(roots)
        while queue:
            node_id = queue.popleft()
            for conn in outbound[node_id]:
                if conn.target_node not in seen:
                    seen.add(conn.target_node)
                    queue.append(conn.target_node)
        return seen

    def _analyze_loops(
        self,
        nodes: dict[str, NodeSpec],
        capabilities: dict[str, BaseNode],
        inbound: dict[str, list[Connection]],
        outbound: dict[str, list[Connection]],
        roots: list[str],
        reachable: set[str],
    ) -> tuple[set[EdgeKey], dict[str, set[str]]]:
        preds: dict[str, set[str]] = {n: set() for n in reachable}
        for node_id in reachable:
            for conn in inbound[node_id]:
                if conn.source_node in reachable:
                    preds[node_id].add(conn.source_node)
        for root in roots:
            preds[root].add(_ROOT)

        dominators = _dominators(reachable, preds)

        back_edges: set[EdgeKey] = set()
        loop_bodies: dict[str, set[str]] = {}
        for node_id in nodes:
            if node_id not in reachable:
                continue
            for conn in outbound[node_id]:
                head = conn.target_node
                if head not in dominators[node_id]:
                    continue
                back_edges.add(conn.key)
                cap = capabilities.get(head)
                if cap is not None and cap.kind is not NodeKind.LOOP:
                    self._violation(
                        "unsanctioned_cycle",
                        f'Connection {conn} closes a cycle at "{head}", which is not a loop controller',
                        node_id=head,
                        connection=conn,
                    )
                    continue
                body = loop_bodies.setdefault(head, set())
                body.update(_natural_loop(head, node_id, preds))

        # With back edges removed the reachable graph must be a DAG
        in_degree = {n: 0 for n in reachable}
        for node_id in reachable:
            for conn in outbound[node_id]:
                if conn.key not in back_edges and conn.target_node in reachable:
                    in_degree[conn.target_node] += 1
        queue = deque(n for n, d in in_degree.items() if d == 0)
        ordered = 0
        while queue:
            node_id = queue.popleft()
            ordered += 1
            for conn in outbound[node_id]:
                if conn.key in back_edges or conn.target_node not in reachable:
                    continue
                in_degree[conn.target_node] -= 1
                if in_degree[conn.target_node] == 0:
                    queue.append(conn.target_node)
        if ordered < len(reachable):
            cyclic = sorted(n for n, d in in_degree.items() if d > 0)
            self._violation(
                "unsanctioned_cycle",
                f"Cycle through {', '.join(cyclic)} is not entered through a loop controller",
                node_id=cyclic[0],
            )

        return back_edges, loop_bodies


def _dominators(nodes: set[str], preds: dict[str, set[str]]) -> dict[str, set[str]]:
    """Iterative dominator sets over `nodes`, rooted at the virtual root."""
    everything = set(nodes) | {_ROOT}
    dom: dict[str, set[str]] = {n: set(everything) for n in nodes}
    dom[_ROOT] = {_ROOT}
    changed = True
    while changed:
        changed = False
        for node_id in sorted(nodes):
            incoming = [dom[p] for p in preds[node_id] if p in dom]
            new = set.intersection(*incoming) if incoming else set()
            new = new | {node_id}
            if new != dom[node_id]:
                dom[node_id] = new
                changed = True
    return dom


def _natural_loop(head: str, tail: str, preds: dict[str, set[str]]) -> set[str]:
    """Nodes of the loop closed by tail -> head, excluding the head."""
    body: set[str] = set()
    stack = [tail]
    while stack:
        node_id = stack.pop()
        if node_id == head or node_id in body or node_id == _ROOT:
            continue
        body.add(node_id)
        stack.extend(preds.get(node_id, ()))
    return body


class GraphCache:
    """Compiled graphs keyed by (workflow id, version)."""

    def __init__(self, registry: NodeRegistry) -> None:
        self.registry = registry
        self._graphs: dict[tuple[str, int], WorkflowGraph] = {}

    def get(self, definition: WorkflowDefinition) -> WorkflowGraph:
        key = (definition.id, definition.version)
        graph = self._graphs.get(key)
        if graph is None or graph.definition != definition:
            graph = WorkflowGraph.build(definition, self.registry)
            self._graphs[key] = graph
        return graph

    def invalidate(self, workflow_id: str) -> None:
        for key in [k for k in self._graphs if k[0] == workflow_id]:
            del self._graphs[key]
