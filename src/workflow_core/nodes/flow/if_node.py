"""If node - route items based on a condition (true/false outputs)."""

from __future__ import annotations

import re
from typing import Any

from ...engine.types import NodeData, NodeKind, NodeResult
from ..base import (
    BaseNode,
    NodeInputDefinition,
    NodeOutputDefinition,
    NodeProperty,
    NodePropertyOption,
    NodeTypeDescription,
    get_nested_value,
)

OPERATIONS = [
    NodePropertyOption(name="Equals", value="equals"),
    NodePropertyOption(name="Not Equals", value="notEquals"),
    NodePropertyOption(name="Contains", value="contains"),
    NodePropertyOption(name="Not Contains", value="notContains"),
    NodePropertyOption(name="Greater Than", value="gt"),
    NodePropertyOption(name="Greater or Equal", value="gte"),
    NodePropertyOption(name="Less Than", value="lt"),
    NodePropertyOption(name="Less or Equal", value="lte"),
    NodePropertyOption(name="Is Empty", value="isEmpty"),
    NodePropertyOption(name="Is Not Empty", value="isNotEmpty"),
    NodePropertyOption(name="Is True", value="isTrue"),
    NodePropertyOption(name="Is False", value="isFalse"),
    NodePropertyOption(name="Regex Match", value="regex"),
]


def evaluate_condition(field_value: Any, operation: str, compare_value: Any) -> bool:
    """Evaluate a field value against a comparison operation."""
    if operation == "equals":
        return field_value == compare_value
    elif operation == "notEquals":
        return field_value != compare_value
    elif operation == "contains":
        return str(compare_value) in str(field_value)
    elif operation == "notContains":
        return str(compare_value) not in str(field_value)
    elif operation in ("gt", "gte", "lt", "lte"):
        try:
            left, right = float(field_value), float(compare_value)
        except (ValueError, TypeError):
            return False
        if operation == "gt":
            return left > right
        if operation == "gte":
            return left >= right
        if operation == "lt":
            return left < right
        return left <= right
    elif operation == "isEmpty":
        return field_value is None or field_value == "" or field_value == [] or field_value == {}
    elif operation == "isNotEmpty":
        return not evaluate_condition(field_value, "isEmpty", None)
    elif operation == "isTrue":
        return field_value is True or field_value == "true" or field_value == 1
    elif operation == "isFalse":
        return field_value is False or field_value == "false" or field_value == 0
    elif operation == "regex":
        try:
            return bool(re.search(str(compare_value), str(field_value)))
        except re.error:
            return False
    else:
        return bool(field_value)


class IfNode(BaseNode):
    """If node - route items based on a condition with true/false outputs."""

    kind = NodeKind.CONDITIONAL

    node_description = NodeTypeDescription(
        name="If",
        display_name="If",
        description="Route items based on a condition (true/false outputs)",
        group=["flow"],
        inputs=[NodeInputDefinition(name="main", display_name="Input")],
        outputs=[
            NodeOutputDefinition(name="true", display_name="True"),
            NodeOutputDefinition(name="false", display_name="False"),
        ],
        properties=[
            NodeProperty(
                display_name="Field",
                name="field",
                type="string",
                default="",
                description="Field path to evaluate (supports dot notation). Leave empty to evaluate entire input.",
            ),
            NodeProperty(
                display_name="Operation",
                name="operation",
                type="options",
                default="isTrue",
                options=OPERATIONS,
            ),
            NodeProperty(
                display_name="Value",
                name="value",
                type="string",
                default="",
                description="Value to compare against",
            ),
        ],
    )

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        field = self.get_parameter(parameters, "field", "")
        operation = self.get_parameter(parameters, "operation", "isTrue")
        value = parameters.get("value")

        true_output: list[NodeData] = []
        false_output: list[NodeData] = []

        for item in self.main_input(input_data):
            field_value = get_nested_value(item.json, field)
            if evaluate_condition(field_value, operation, value):
                true_output.append(item)
            else:
                false_output.append(item)

        return self.outputs({
            "true": true_output if true_output else None,
            "false": false_output if false_output else None,
        })
