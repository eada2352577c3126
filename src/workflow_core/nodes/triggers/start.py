"""Start node - manual trigger entry point."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ...engine.types import TriggerKind
from ..base import NodeOutputDefinition, NodeTypeDescription, TriggerNode


class StartNode(TriggerNode):
    """Manual trigger node - entry point for workflow execution."""

    trigger_kind = TriggerKind.MANUAL

    node_description = NodeTypeDescription(
        name="Start",
        display_name="Start",
        description="Manual trigger to start workflow execution",
        group=["trigger"],
        inputs=[],  # No inputs - this is a trigger
        outputs=[NodeOutputDefinition(name="main", display_name="Output")],
    )

    def default_payload(self, parameters: dict[str, Any]) -> dict[str, Any]:
        return {
            "triggeredAt": datetime.now(timezone.utc).isoformat(),
            "mode": TriggerKind.MANUAL.value,
        }
