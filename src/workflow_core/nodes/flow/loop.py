"""Loop node - loop controller that routes to `loop` until an exit condition holds."""

from __future__ import annotations

from typing import Any

from ...engine.types import NodeData, NodeKind, NodeResult
from ..base import (
    BaseNode,
    NodeInputDefinition,
    NodeOutputDefinition,
    NodeProperty,
    NodeTypeDescription,
    get_nested_value,
)


class LoopNode(BaseNode):
    """
    Loop controller.

    The iteration number travels with the items in `counterField`, so the
    node itself keeps no state between visits. Items go to `loop` while the
    exit field is falsy and fewer than `maxIterations` iterations ran,
    otherwise to `done`. The scheduler separately bounds how often a loop
    controller may be revisited in one run.
    """

    kind = NodeKind.LOOP

    node_description = NodeTypeDescription(
        name="Loop",
        display_name="Loop",
        description="Iterate until condition is met or max iterations reached",
        group=["flow"],
        inputs=[NodeInputDefinition(name="main", display_name="Input")],
        outputs=[
            NodeOutputDefinition(name="loop", display_name="Loop"),
            NodeOutputDefinition(name="done", display_name="Done"),
        ],
        properties=[
            NodeProperty(
                display_name="Max Iterations",
                name="maxIterations",
                type="number",
                default=10,
                description="Maximum number of loop iterations",
            ),
            NodeProperty(
                display_name="Exit Field",
                name="exitField",
                type="string",
                default="",
                description="Field path; the loop exits once it is truthy on the first item",
            ),
            NodeProperty(
                display_name="Counter Field",
                name="counterField",
                type="string",
                default="_loopIteration",
                description="Field name to store current iteration number in output",
            ),
        ],
    )

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        max_iterations = int(self.get_parameter(parameters, "maxIterations", 10))
        exit_field = self.get_parameter(parameters, "exitField", "")
        counter_field = self.get_parameter(parameters, "counterField", "_loopIteration")

        items = self.main_input(input_data) or [NodeData(json={})]
        previous = items[0].json.get(counter_field, 0)
        current_iteration = (previous if isinstance(previous, int) else 0) + 1

        condition_met = bool(exit_field) and bool(get_nested_value(items[0].json, exit_field))
        max_reached = current_iteration > max_iterations

        if condition_met or max_reached:
            done = [
                NodeData(json={**item.json, "_loopMaxReached": max_reached}, binary=item.binary)
                for item in items
            ]
            return self.outputs({"loop": None, "done": done}, next_ports=["done"])

        looped = [
            NodeData(json={**item.json, counter_field: current_iteration}, binary=item.binary)
            for item in items
        ]
        return self.outputs({"loop": looped, "done": None}, next_ports=["loop"])
