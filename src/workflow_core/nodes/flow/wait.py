"""Wait node - pause execution for a duration."""

from __future__ import annotations

import asyncio
from typing import Any

from ...engine.types import NodeData, NodeResult
from ..base import BaseNode, NodeProperty, NodePropertyOption, NodeTypeDescription

MAX_WAIT_SECONDS = 300


class WaitNode(BaseNode):
    """Wait node - sleeps, then passes its input through."""

    node_description = NodeTypeDescription(
        name="Wait",
        display_name="Wait",
        description="Pause execution for a specified duration",
        group=["flow"],
        properties=[
            NodeProperty(
                display_name="Unit",
                name="unit",
                type="options",
                default="seconds",
                options=[
                    NodePropertyOption(name="Seconds", value="seconds"),
                    NodePropertyOption(name="Minutes", value="minutes"),
                ],
            ),
            NodeProperty(
                display_name="Duration",
                name="duration",
                type="number",
                default=1,
                description="How long to wait",
            ),
        ],
    )

    async def execute(
        self,
        input_data: dict[str, list[NodeData]],
        parameters: dict[str, Any],
    ) -> NodeResult:
        unit = self.get_parameter(parameters, "unit", "seconds")
        duration = float(self.get_parameter(parameters, "duration", 1))

        seconds = duration * 60 if unit == "minutes" else duration
        await asyncio.sleep(max(0.0, min(seconds, MAX_WAIT_SECONDS)))

        return self.output(self.main_input(input_data))
