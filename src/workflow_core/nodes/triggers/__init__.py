"""Trigger nodes - entry points of a workflow run."""

from .start import StartNode
from .webhook import WebhookNode
from .cron import CronNode

__all__ = ["StartNode", "WebhookNode", "CronNode"]
