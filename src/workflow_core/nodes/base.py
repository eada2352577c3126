"""Base node class for all workflow nodes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..core.exceptions import NodeExecutionError
from ..engine.types import NodeData, NodeKind, NodeResult, TriggerKind

DYNAMIC = "dynamic"


@dataclass
class NodePropertyOption:
    """Option for a node property."""

    name: str
    value: str
    description: str | None = None


@dataclass
class NodeProperty:
    """Property definition for node schema."""

    display_name: str
    name: str
    type: str  # string, number, boolean, options, collection, json
    default: Any = None
    required: bool = False
    description: str | None = None
    options: list[NodePropertyOption] | None = None


@dataclass
class NodeInputDefinition:
    """Input definition for a node."""

    name: str
    display_name: str


@dataclass
class NodeOutputDefinition:
    """Output definition for a node."""

    name: str
    display_name: str


@dataclass
class NodeTypeDescription:
    """Full description of a node type."""

    name: str
    display_name: str
    description: str
    group: list[str] = field(default_factory=lambda: ["transform"])
    inputs: list[NodeInputDefinition] | str = field(
        default_factory=lambda: [NodeInputDefinition(name="main", display_name="Input")]
    )
    outputs: list[NodeOutputDefinition] | str = field(
        default_factory=lambda: [NodeOutputDefinition(name="main", display_name="Output")]
    )
    properties: list[NodeProperty] = field(default_factory=list)


class BaseNode(ABC):
    """
    Abstract base class for all workflow nodes.

    A node is a capability with a fixed variant (`kind`). `execute` must not
    touch engine state: it receives its own copy of the input items per
    input port plus its parameters, and returns a NodeResult. It may raise
    NodeExecutionError (optionally retryable) or return a failed result.
    """

    node_description: NodeTypeDescription
    kind: NodeKind = NodeKind.ACTION

    # Trigger nodes only: which trigger kind starts a run at this node
    trigger_kind: TriggerKind | None = None

    @property
    def type(self) -> str:
        """Node type identifier."""
        return self.node_description.name

    @property
    def description(self) -> str:
        return self.node_description.description

    def input_ports(self) -> set[str] | None:
        """Declared input port names, or None when any port is accepted."""
        inputs = self.node_description.inputs
        if inputs == DYNAMIC:
            return None
        return {i.name for i in inputs}

    def output_ports(self) -> set[str] | None:
        """Declared output port names, or None when any port is accepted."""
        outputs = self.node_description.outputs
        if outputs == DYNAMIC:
            return None
        return {o.name for o in outputs}

    @abstractmethod
    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        """Execute the node logic."""
        ...

    def get_parameter(self, parameters: dict[str, Any], key: str, default: Any = None) -> Any:
        """Get a parameter value, failing on missing required parameters."""
        value = parameters.get(key)
        if value is None:
            if default is None and self._is_required_parameter(key):
                raise NodeExecutionError(f'Missing required parameter "{key}"')
            return default
        return value

    def _is_required_parameter(self, key: str) -> bool:
        for prop in self.node_description.properties:
            if prop.name == key:
                return prop.required
        return False

    @staticmethod
    def main_input(input_data: dict[str, list[NodeData]]) -> list[NodeData]:
        return input_data.get("main", [])

    def output(self, data: list[NodeData]) -> NodeResult:
        """Helper to create single-output result."""
        return NodeResult(output_data={"main": data})

    def outputs(
        self,
        outputs: dict[str, list[NodeData] | None],
        next_ports: list[str] | None = None,
    ) -> NodeResult:
        """Helper to create multi-output result."""
        return NodeResult(output_data=outputs, next_ports=next_ports)

    def fail(self, message: str, retryable: bool = False) -> NodeResult:
        return NodeResult(
            success=False,
            error=NodeExecutionError(message, retryable=retryable),
        )


class TriggerNode(BaseNode):
    """Base for trigger nodes: no inputs, the dispatcher's payload is the output."""

    kind = NodeKind.TRIGGER

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        items = self.main_input(input_data)
        if items and any(item.json for item in items):
            return self.output(items)
        return self.output([NodeData(json=self.default_payload(parameters))])

    def default_payload(self, parameters: dict[str, Any]) -> dict[str, Any]:
        return {}


def get_nested_value(obj: dict[str, Any], path: str) -> Any:
    """Get value at nested dot path."""
    if not path:
        return obj
    current: Any = obj
    for key in path.split("."):
        if isinstance(current, dict):
            current = current.get(key)
        else:
            return None
    return current


def set_nested_value(obj: dict[str, Any], path: str, value: Any) -> None:
    """Set value at nested dot path, creating intermediate mappings."""
    keys = path.split(".")
    current = obj
    for key in keys[:-1]:
        nxt = current.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            current[key] = nxt
        current = nxt
    current[keys[-1]] = value
