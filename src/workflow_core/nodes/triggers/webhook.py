"""Webhook node - HTTP trigger entry point."""

from __future__ import annotations

from ...engine.types import TriggerKind
from ..base import (
    NodeOutputDefinition,
    NodeProperty,
    NodeTypeDescription,
    TriggerNode,
)


class WebhookNode(TriggerNode):
    """Webhook trigger node. The request body arrives as the trigger payload."""

    trigger_kind = TriggerKind.WEBHOOK

    node_description = NodeTypeDescription(
        name="Webhook",
        display_name="Webhook",
        description="Trigger workflow via HTTP webhook",
        group=["trigger"],
        inputs=[],
        outputs=[NodeOutputDefinition(name="main", display_name="Output")],
        properties=[
            NodeProperty(
                display_name="Path",
                name="path",
                type="string",
                default="",
                description="Informational; requests arrive on /webhook/{workflowId}",
            ),
        ],
    )
