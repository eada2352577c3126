"""Node registry for managing workflow node types."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from ..core.exceptions import NodeNotFoundError, WorkflowEngineError

if TYPE_CHECKING:
    from ..nodes.base import BaseNode

logger = logging.getLogger(__name__)


class NodeRegistry:
    """
    Registry of executable node types.

    Built once at startup and then frozen; after `freeze()` it is read-only
    and may be shared by every worker without locking.
    """

    def __init__(self) -> None:
        self._instances: dict[str, BaseNode] = {}
        self._frozen = False

    def register(self, node: BaseNode | type[BaseNode]) -> None:
        """Register a node class or instance if its type is not already registered."""
        if self._frozen:
            raise WorkflowEngineError("Node registry is frozen; register nodes before startup completes")
        instance = node() if isinstance(node, type) else node
        if instance.type in self._instances:
            logger.debug(f"Node type {instance.type} already registered, skipping")
            return
        self._instances[instance.type] = instance

    def register_all(self, nodes: Iterable[BaseNode | type[BaseNode]]) -> None:
        for node in nodes:
            self.register(node)

    def register_default_nodes(self) -> None:
        """Register all built-in nodes."""
        from ..nodes import DEFAULT_NODES

        self.register_all(DEFAULT_NODES)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve(self, node_type: str) -> BaseNode:
        """
        Get the node instance for a type.

        Raises:
            NodeNotFoundError: If node type is not registered
        """
        try:
            return self._instances[node_type]
        except KeyError:
            raise NodeNotFoundError(node_type) from None

    def count(self) -> int:
        return len(self._instances)

    def list(self) -> list[str]:
        """List all registered node types."""
        return list(self._instances.keys())
