"""Set node - set, rename or delete fields on items."""

from __future__ import annotations

from typing import Any

from ...engine.types import NodeData, NodeResult
from ..base import (
    BaseNode,
    NodeProperty,
    NodePropertyOption,
    NodeTypeDescription,
    get_nested_value,
    set_nested_value,
)


class SetNode(BaseNode):
    """Set node - manipulate item fields."""

    node_description = NodeTypeDescription(
        name="Set",
        display_name="Set",
        description="Set, rename, or delete fields on items",
        group=["transform"],
        properties=[
            NodeProperty(
                display_name="Mode",
                name="mode",
                type="options",
                default="manual",
                options=[
                    NodePropertyOption(name="Manual", value="manual"),
                    NodePropertyOption(name="JSON", value="json"),
                ],
            ),
            NodeProperty(
                display_name="Fields",
                name="fields",
                type="collection",
                default=[],
                description="List of {name, value}; names support dot notation",
            ),
            NodeProperty(
                display_name="JSON Data",
                name="jsonData",
                type="json",
                default={},
                description="JSON object to merge into each item",
            ),
            NodeProperty(
                display_name="Keep Only Set",
                name="keepOnlySet",
                type="boolean",
                default=False,
            ),
            NodeProperty(
                display_name="Fields to Delete",
                name="deleteFields",
                type="collection",
                default=[],
            ),
            NodeProperty(
                display_name="Fields to Rename",
                name="renameFields",
                type="collection",
                default=[],
            ),
        ],
    )

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        mode = self.get_parameter(parameters, "mode", "manual")
        keep_only_set = self.get_parameter(parameters, "keepOnlySet", False)

        results: list[NodeData] = []
        items = self.main_input(input_data) or [NodeData(json={})]

        for item in items:
            new_json: dict[str, Any] = {} if keep_only_set else item.json

            if mode == "json":
                json_data = self.get_parameter(parameters, "jsonData", {})
                if isinstance(json_data, dict):
                    new_json.update(json_data)
            else:
                for field in self.get_parameter(parameters, "fields", []):
                    if field.get("name"):
                        set_nested_value(new_json, field["name"], field.get("value"))

            for field in self.get_parameter(parameters, "deleteFields", []):
                field_path = field.get("path") if isinstance(field, dict) else field
                if field_path:
                    _delete_nested_value(new_json, field_path)

            for rename in self.get_parameter(parameters, "renameFields", []):
                from_path = rename.get("from", "")
                to_path = rename.get("to", "")
                if from_path and to_path:
                    value = get_nested_value(new_json, from_path)
                    if value is not None:
                        _delete_nested_value(new_json, from_path)
                        set_nested_value(new_json, to_path, value)

            results.append(NodeData(json=new_json, binary=item.binary))

        return self.output(results)


def _delete_nested_value(obj: dict[str, Any], path: str) -> None:
    keys = path.split(".")
    current = obj
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], dict):
            return
        current = current[key]
    current.pop(keys[-1], None)
