"""Data transformation nodes."""

from .set_node import SetNode
from .no_op import NoOpNode

__all__ = ["SetNode", "NoOpNode"]
