"""Switch node - route items to different outputs based on rules."""

from __future__ import annotations

from typing import Any

from ...engine.types import NodeData, NodeKind, NodeResult
from ..base import (
    DYNAMIC,
    BaseNode,
    NodeInputDefinition,
    NodeProperty,
    NodePropertyOption,
    NodeTypeDescription,
    get_nested_value,
)
from .if_node import evaluate_condition


class SwitchNode(BaseNode):
    """
    Switch node - route each item to the output of the first matching rule.

    Outputs are `output0` .. `output{N-1}` plus `fallback` for items that
    match no rule. In `expression` mode every item goes to `outputIndex`.
    """

    kind = NodeKind.CONDITIONAL

    node_description = NodeTypeDescription(
        name="Switch",
        display_name="Switch",
        description="Route items to different outputs based on conditions",
        group=["flow"],
        inputs=[NodeInputDefinition(name="main", display_name="Input")],
        outputs=DYNAMIC,
        properties=[
            NodeProperty(
                display_name="Mode",
                name="mode",
                type="options",
                default="rules",
                options=[
                    NodePropertyOption(name="Rules", value="rules"),
                    NodePropertyOption(name="Expression", value="expression"),
                ],
            ),
            NodeProperty(
                display_name="Number of Outputs",
                name="numberOfOutputs",
                type="number",
                default=2,
            ),
            NodeProperty(
                display_name="Rules",
                name="rules",
                type="collection",
                default=[],
                description="List of {field, operation, value, output}",
            ),
            NodeProperty(
                display_name="Output Index",
                name="outputIndex",
                type="number",
                default=0,
            ),
        ],
    )

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        mode = self.get_parameter(parameters, "mode", "rules")
        num_outputs = int(self.get_parameter(parameters, "numberOfOutputs", 2))
        rules = self.get_parameter(parameters, "rules", [])
        items = self.main_input(input_data)

        outputs: dict[str, list[NodeData]] = {f"output{i}": [] for i in range(num_outputs)}
        outputs["fallback"] = []

        if mode == "expression":
            output_index = int(self.get_parameter(parameters, "outputIndex", 0))
            output_index = max(0, min(output_index, num_outputs - 1))
            outputs[f"output{output_index}"].extend(items)
        else:
            for item in items:
                for rule in rules:
                    field_value = get_nested_value(item.json, rule.get("field", ""))
                    if evaluate_condition(field_value, rule.get("operation", "equals"), rule.get("value")):
                        output_idx = max(0, min(int(rule.get("output", 0)), num_outputs - 1))
                        outputs[f"output{output_idx}"].append(item)
                        break
                else:
                    outputs["fallback"].append(item)

        return self.outputs({key: data if data else None for key, data in outputs.items()})
