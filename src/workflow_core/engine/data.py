"""
Structural deep copy of node data.

Every node receives its own copy of its inputs and parameters so that no
two nodes share mutable structure. The copy walks the engine's data-value
representation explicitly (JSON-like containers, scalars, bytes and
NodeData items) instead of round-tripping through a serializer.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from .types import NodeData

# Immutable leaves are shared, everything else is rebuilt.
_IMMUTABLE_TYPES = (
    str,
    int,
    float,
    bool,
    bytes,
    Decimal,
    datetime,
    date,
    time,
    timedelta,
    UUID,
    type(None),
)


class DataCloneError(TypeError):
    """Raised when a value outside the supported data model is copied."""


def clone_value(value: Any) -> Any:
    """Return a structurally independent copy of `value`."""
    if isinstance(value, _IMMUTABLE_TYPES):
        return value
    if isinstance(value, dict):
        return {_clone_key(k): clone_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [clone_value(v) for v in value]
    if isinstance(value, tuple):
        return tuple(clone_value(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return type(value)(clone_value(v) for v in value)
    if isinstance(value, bytearray):
        return bytearray(value)
    if isinstance(value, NodeData):
        return clone_item(value)
    raise DataCloneError(f"Cannot copy value of type {type(value).__name__}")


def _clone_key(key: Any) -> Any:
    if isinstance(key, _IMMUTABLE_TYPES) or isinstance(key, tuple):
        return key
    raise DataCloneError(f"Unsupported mapping key type {type(key).__name__}")


def clone_item(item: NodeData) -> NodeData:
    return NodeData(
        json=clone_value(item.json),
        binary=dict(item.binary) if item.binary is not None else None,
    )


def clone_items(items: list[NodeData] | None) -> list[NodeData]:
    if not items:
        return []
    return [clone_item(item) for item in items]


def clone_port_data(data: dict[str, list[NodeData] | None]) -> dict[str, list[NodeData]]:
    """Copy per-port input data."""
    return {port: clone_items(items) for port, items in data.items()}


def clone_output_data(data: dict[str, list[NodeData] | None]) -> dict[str, list[NodeData] | None]:
    """
    Copy a node's per-port output, checking it against the data model.

    Ports without output stay None. Raises DataCloneError for anything that
    is not a list of NodeData items with mapping payloads.
    """
    copied: dict[str, list[NodeData] | None] = {}
    for port, items in data.items():
        if items is None:
            copied[port] = None
            continue
        if not isinstance(items, list):
            raise DataCloneError(f"Output of port {port!r} is {type(items).__name__}, not a list")
        for item in items:
            if not isinstance(item, NodeData) or not isinstance(item.json, dict):
                raise DataCloneError(f"Output of port {port!r} contains {type(item).__name__}")
        copied[port] = clone_items(items)
    return copied


def to_items(payload: Any) -> list[NodeData]:
    """
    Normalize an arbitrary JSON payload into node items.

    A mapping becomes one item, a list becomes one item per element
    (non-mappings are wrapped as {"value": ...}), None becomes one empty
    item and any other scalar is wrapped as {"value": ...}.
    """
    if payload is None:
        return [NodeData(json={})]
    if isinstance(payload, NodeData):
        return [clone_item(payload)]
    if isinstance(payload, dict):
        return [NodeData(json=clone_value(payload))]
    if isinstance(payload, (list, tuple)):
        items = [_wrap(element) for element in payload]
        return items or [NodeData(json={})]
    return [NodeData(json={"value": clone_value(payload)})]


def _wrap(element: Any) -> NodeData:
    if isinstance(element, NodeData):
        return clone_item(element)
    if isinstance(element, dict):
        return NodeData(json=clone_value(element))
    return NodeData(json={"value": clone_value(element)})
