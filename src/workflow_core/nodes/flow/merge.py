"""Merge node - combine data from multiple branches."""

from __future__ import annotations

from typing import Any

from ...engine.types import NodeData, NodeResult
from ..base import (
    DYNAMIC,
    BaseNode,
    NodeOutputDefinition,
    NodeProperty,
    NodePropertyOption,
    NodeTypeDescription,
    get_nested_value,
)


class MergeNode(BaseNode):
    """
    Merge node - combine items arriving on any number of input ports.

    The scheduler runs it once every inbound edge has settled, so a branch
    that was not taken simply contributes no port.
    """

    node_description = NodeTypeDescription(
        name="Merge",
        display_name="Merge",
        description="Combine data from multiple workflow branches",
        group=["flow"],
        inputs=DYNAMIC,
        outputs=[NodeOutputDefinition(name="main", display_name="Output")],
        properties=[
            NodeProperty(
                display_name="Mode",
                name="mode",
                type="options",
                default="append",
                options=[
                    NodePropertyOption(name="Append", value="append"),
                    NodePropertyOption(name="Wait For All", value="waitForAll"),
                    NodePropertyOption(name="Keep Matches", value="keepMatches"),
                    NodePropertyOption(name="Combine Pairs", value="combinePairs"),
                ],
            ),
            NodeProperty(
                display_name="Match Field",
                name="matchField",
                type="string",
                default="id",
            ),
        ],
    )

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        mode = self.get_parameter(parameters, "mode", "append")
        match_field = self.get_parameter(parameters, "matchField", "id")

        all_inputs = [input_data[port] for port in sorted(input_data) if input_data[port]]
        if not all_inputs:
            return self.output([])

        result: list[NodeData]

        if mode == "waitForAll":
            result = [NodeData(json={"inputs": [[item.json for item in inputs] for inputs in all_inputs]})]

        elif mode == "keepMatches":
            first_input, other_inputs = all_inputs[0], all_inputs[1:]
            result = [
                item
                for item in first_input
                if all(
                    any(
                        get_nested_value(other.json, match_field) == get_nested_value(item.json, match_field)
                        for other in other_input
                    )
                    for other_input in other_inputs
                )
            ]

        elif mode == "combinePairs":
            max_length = max(len(inputs) for inputs in all_inputs)
            result = []
            for i in range(max_length):
                combined: dict[str, Any] = {}
                for input_index, inputs in enumerate(all_inputs):
                    if i < len(inputs):
                        combined[f"input{input_index}"] = inputs[i].json
                result.append(NodeData(json=combined))

        else:
            result = [item for inputs in all_inputs for item in inputs]

        return self.output(result)
