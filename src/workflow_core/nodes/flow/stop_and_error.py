"""StopAndError node - fail the workflow with a custom message."""

from __future__ import annotations

from typing import Any

from ...core.exceptions import NodeExecutionError
from ...engine.types import NodeData, NodeResult
from ..base import BaseNode, NodeProperty, NodePropertyOption, NodeTypeDescription


class StopAndErrorNode(BaseNode):
    """Raise a non-retryable error, or tag items with a warning and continue."""

    node_description = NodeTypeDescription(
        name="StopAndError",
        display_name="Stop and Error",
        description="Stop workflow execution with a custom error message",
        group=["flow"],
        properties=[
            NodeProperty(
                display_name="Error Type",
                name="errorType",
                type="options",
                default="error",
                options=[
                    NodePropertyOption(name="Error", value="error"),
                    NodePropertyOption(name="Warning", value="warning"),
                ],
            ),
            NodeProperty(
                display_name="Error Message",
                name="message",
                type="string",
                default="Workflow stopped",
            ),
        ],
    )

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        error_type = self.get_parameter(parameters, "errorType", "error")
        message = str(self.get_parameter(parameters, "message", "Workflow stopped"))

        if error_type == "error":
            raise NodeExecutionError(message, retryable=False)

        items = self.main_input(input_data)
        results = [
            NodeData(json={**item.json, "_warning": message}, binary=item.binary)
            for item in items
        ]
        return self.output(results or [NodeData(json={"_warning": message})])
