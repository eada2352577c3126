"""Shared fixtures: scripted test nodes, fast settings, engines."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from workflow_core.core.config import Settings
from workflow_core.core.exceptions import NodeExecutionError
from workflow_core.engine import (
    Connection,
    ExecutionEngine,
    NodeData,
    NodeRegistry,
    NodeResult,
    NodeSpec,
    TriggerConfig,
    WorkflowDefinition,
)
from workflow_core.nodes.base import BaseNode, NodeTypeDescription
from workflow_core.storage import InMemoryDatabaseService


class DoubleNode(BaseNode):
    """Doubles `field` (default "x") on every item."""

    node_description = NodeTypeDescription(name="Double", display_name="Double", description="x * 2")

    async def execute(self, input_data: dict[str, list[NodeData]], parameters: dict[str, Any]) -> NodeResult:
        field = parameters.get("field", "x")
        items = self.main_input(input_data)
        for item in items:
            item.json[field] = item.json.get(field, 0) * 2
        return self.output(items)


class AddOneNode(BaseNode):
    node_description = NodeTypeDescription(name="AddOne", display_name="Add One", description="x + 1")

    async def execute(self, input_data: dict[str, list[NodeData]], parameters: dict[str, Any]) -> NodeResult:
        field = parameters.get("field", "x")
        return self.output(
            [NodeData(json={**item.json, field: item.json.get(field, 0) + 1}) for item in self.main_input(input_data)]
        )


class FlakyNode(BaseNode):
    """Fails `failTimes` times with a retryable error, then passes its input through."""

    node_description = NodeTypeDescription(name="Flaky", display_name="Flaky", description="fails then succeeds")

    def __init__(self) -> None:
        self.calls = 0

    async def execute(self, input_data: dict[str, list[NodeData]], parameters: dict[str, Any]) -> NodeResult:
        self.calls += 1
        if self.calls <= parameters.get("failTimes", 0):
            raise NodeExecutionError(f"transient failure {self.calls}", retryable=True)
        return self.output(self.main_input(input_data))


class AlwaysFailNode(BaseNode):
    node_description = NodeTypeDescription(name="AlwaysFail", display_name="Always Fail", description="fails")

    def __init__(self) -> None:
        self.calls = 0

    async def execute(self, input_data: dict[str, list[NodeData]], parameters: dict[str, Any]) -> NodeResult:
        self.calls += 1
        raise NodeExecutionError("boom", retryable=parameters.get("retryable", True))


class SlowNode(BaseNode):
    """Sleeps `seconds`, then passes its input through."""

    node_description = NodeTypeDescription(name="Slow", display_name="Slow", description="sleeps")

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.calls = 0

    async def execute(self, input_data: dict[str, list[NodeData]], parameters: dict[str, Any]) -> NodeResult:
        self.calls += 1
        self.started.set()
        await asyncio.sleep(parameters.get("seconds", 0.1))
        return self.output(self.main_input(input_data))


class RecordNode(BaseNode):
    """Records the inputs it received, then mutates them."""

    node_description = NodeTypeDescription(name="Record", display_name="Record", description="records")

    def __init__(self) -> None:
        self.seen: list[list[dict[str, Any]]] = []

    async def execute(self, input_data: dict[str, list[NodeData]], parameters: dict[str, Any]) -> NodeResult:
        items = self.main_input(input_data)
        self.seen.append([dict(item.json) for item in items])
        for item in items:
            item.json["mutated"] = True
            item.json.setdefault("nested", {})["touched"] = True
        return self.output(items)


class Opaque:
    """A value outside the node data model."""


class EmitOpaqueNode(BaseNode):
    node_description = NodeTypeDescription(name="EmitOpaque", display_name="Emit Opaque", description="bad output")

    def __init__(self) -> None:
        self.calls = 0

    async def execute(self, input_data: dict[str, list[NodeData]], parameters: dict[str, Any]) -> NodeResult:
        self.calls += 1
        return self.output([NodeData(json={"obj": Opaque()})])


TEST_NODES = [DoubleNode, AddOneNode, FlakyNode, AlwaysFailNode, SlowNode, RecordNode, EmitOpaqueNode]


def make_workflow(
    nodes: list[tuple[str, str] | tuple[str, str, dict[str, Any]] | NodeSpec],
    connections: list[tuple[str, str] | tuple[str, str, str] | tuple[str, str, str, str] | Connection],
    workflow_id: str = "wf",
    **kwargs: Any,
) -> WorkflowDefinition:
    """Build a definition from compact node and connection tuples."""
    specs = []
    for node in nodes:
        if isinstance(node, NodeSpec):
            specs.append(node)
        else:
            node_id, node_type, *rest = node
            specs.append(NodeSpec(id=node_id, type=node_type, parameters=rest[0] if rest else {}))
    conns = []
    for conn in connections:
        if isinstance(conn, Connection):
            conns.append(conn)
        elif len(conn) == 2:
            conns.append(Connection(conn[0], conn[1]))
        elif len(conn) == 3:
            conns.append(Connection(conn[0], conn[1], source_output=conn[2]))
        else:
            conns.append(Connection(conn[0], conn[1], source_output=conn[2], target_input=conn[3]))
    kwargs.setdefault("trigger_config", TriggerConfig(kind="manual"))
    return WorkflowDefinition(id=workflow_id, name=workflow_id, nodes=specs, connections=conns, **kwargs)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="memory://",
        worker_count=2,
        queue_max_size=50,
        run_retries=0,
        run_retry_delay=0,
        node_timeout=5.0,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        max_loop_iterations=1000,
    )


@pytest.fixture
def registry() -> NodeRegistry:
    registry = NodeRegistry()
    registry.register_default_nodes()
    registry.register_all(TEST_NODES)
    return registry


@pytest.fixture
def database() -> InMemoryDatabaseService:
    return InMemoryDatabaseService()


@pytest.fixture
async def engine(database, registry, settings):
    engine = ExecutionEngine(database, registry, settings)
    await engine.start_worker()
    yield engine
    await engine.stop_worker(timeout=5)


async def run_workflow(engine: ExecutionEngine, definition: WorkflowDefinition, payload: Any = None, kind: str = "manual"):
    """Publish, trigger and wait for the persisted record."""
    await engine.database.save_workflow(definition)
    result = await engine.trigger_workflow(definition.id, kind, payload)
    await asyncio.wait_for(engine.wait_until_idle(), timeout=10)
    return await engine.get_execution(result.execution_id)
