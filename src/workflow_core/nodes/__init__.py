"""Workflow node implementations."""

from .base import BaseNode, TriggerNode
from .triggers import StartNode, WebhookNode, CronNode
from .flow import IfNode, SwitchNode, LoopNode, MergeNode, WaitNode, StopAndErrorNode
from .data import SetNode, NoOpNode
from .integrations import HttpRequestNode

DEFAULT_NODES: list[type[BaseNode]] = [
    # Triggers
    StartNode,
    WebhookNode,
    CronNode,
    # Flow control
    IfNode,
    SwitchNode,
    LoopNode,
    MergeNode,
    WaitNode,
    StopAndErrorNode,
    # Transform
    SetNode,
    NoOpNode,
    HttpRequestNode,
]

__all__ = [
    "BaseNode",
    "TriggerNode",
    "StartNode",
    "WebhookNode",
    "CronNode",
    "IfNode",
    "SwitchNode",
    "LoopNode",
    "MergeNode",
    "WaitNode",
    "StopAndErrorNode",
    "SetNode",
    "NoOpNode",
    "HttpRequestNode",
    "DEFAULT_NODES",
]
