"""NoOp node - pass items through unchanged."""

from __future__ import annotations

from typing import Any

from ...engine.types import NodeData, NodeResult
from ..base import BaseNode, NodeTypeDescription


class NoOpNode(BaseNode):
    node_description = NodeTypeDescription(
        name="NoOp",
        display_name="No Operation",
        description="Pass items through unchanged",
        group=["transform"],
    )

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        return self.output(self.main_input(input_data))
