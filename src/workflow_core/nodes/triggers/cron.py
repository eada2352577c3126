"""Cron node - scheduled execution trigger."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ...engine.types import TriggerKind
from ..base import (
    NodeOutputDefinition,
    NodeProperty,
    NodeTypeDescription,
    TriggerNode,
)


class CronNode(TriggerNode):
    """Cron trigger node - executes on a schedule."""

    trigger_kind = TriggerKind.CRON

    node_description = NodeTypeDescription(
        name="Cron",
        display_name="Cron",
        description="Trigger workflow on a schedule",
        group=["trigger"],
        inputs=[],
        outputs=[NodeOutputDefinition(name="main", display_name="Output")],
        properties=[
            NodeProperty(
                display_name="Cron Expression",
                name="cronExpression",
                type="string",
                default="0 * * * *",
                description="Standard cron expression (minute hour day month weekday)",
            ),
        ],
    )

    def default_payload(self, parameters: dict[str, Any]) -> dict[str, Any]:
        return {
            "triggeredAt": datetime.now(timezone.utc).isoformat(),
            "mode": TriggerKind.CRON.value,
            "schedule": self.get_parameter(parameters, "cronExpression", "0 * * * *"),
        }
