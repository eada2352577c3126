"""Flow control nodes."""

from .if_node import IfNode
from .switch import SwitchNode
from .loop import LoopNode
from .merge import MergeNode
from .wait import WaitNode
from .stop_and_error import StopAndErrorNode

__all__ = [
    "IfNode",
    "SwitchNode",
    "LoopNode",
    "MergeNode",
    "WaitNode",
    "StopAndErrorNode",
]
