"""Tests for structural copying and payload normalization."""

from datetime import datetime, timezone

import pytest

from workflow_core.engine.data import DataCloneError, clone_items, clone_value, to_items
from workflow_core.engine.types import NodeData


def test_clone_value_shares_no_mutable_structure():
    original = {"a": [1, {"b": 2}], "c": {"d": (3, [4])}, "e": {5, 6}}
    copy = clone_value(original)

    assert copy == original
    copy["a"][1]["b"] = 99
    copy["c"]["d"][1].append(5)
    assert original["a"][1]["b"] == 2
    assert original["c"]["d"][1] == [4]
    assert copy["a"] is not original["a"]


def test_clone_value_shares_immutable_leaves():
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    data = {"s": "text", "when": stamp, "raw": b"bytes"}
    copy = clone_value(data)
    assert copy["when"] is stamp
    assert copy["raw"] is data["raw"]


def test_clone_value_rejects_unsupported_types():
    with pytest.raises(DataCloneError):
        clone_value({"obj": object()})


def test_clone_items_copies_json_and_binary_mapping():
    items = [NodeData(json={"x": [1]}, binary={"file": b"data"})]
    copies = clone_items(items)
    copies[0].json["x"].append(2)
    copies[0].binary["other"] = b""
    assert items[0].json == {"x": [1]}
    assert items[0].binary == {"file": b"data"}


def test_clone_items_of_none_is_empty():
    assert clone_items(None) == []


@pytest.mark.parametrize(
    "payload, expected",
    [
        (None, [{}]),
        ({"x": 1}, [{"x": 1}]),
        ([{"a": 1}, {"b": 2}], [{"a": 1}, {"b": 2}]),
        ([1, "two"], [{"value": 1}, {"value": "two"}]),
        ([], [{}]),
        (42, [{"value": 42}]),
    ],
)
def test_to_items(payload, expected):
    assert [item.json for item in to_items(payload)] == expected


def test_to_items_copies_the_payload():
    payload = {"nested": {"x": 1}}
    items = to_items(payload)
    items[0].json["nested"]["x"] = 2
    assert payload["nested"]["x"] == 1
