"""Tests for the built-in node types."""

import httpx
import pytest

from workflow_core.core.exceptions import NodeExecutionError
from workflow_core.engine.types import NodeData
from workflow_core.nodes import (
    HttpRequestNode,
    IfNode,
    LoopNode,
    MergeNode,
    NoOpNode,
    SetNode,
    StartNode,
    StopAndErrorNode,
    SwitchNode,
    WaitNode,
)


def items(*values):
    return [NodeData(json=v) for v in values]


def as_json(result, port="main"):
    data = result.output_data[port]
    return None if data is None else [item.json for item in data]


async def test_start_passes_payload_or_default():
    node = StartNode()
    result = await node.execute({"main": items({"a": 1})}, {})
    assert as_json(result) == [{"a": 1}]

    result = await node.execute({"main": items({})}, {})
    assert as_json(result)[0]["mode"] == "manual"


@pytest.mark.parametrize(
    "operation, value, expected",
    [
        ("equals", 3, [True, False]),
        ("gt", 2, [True, False]),
        ("lt", 2, [False, True]),
        ("contains", "1", [False, True]),
    ],
)
async def test_if_splits_items(operation, value, expected):
    result = await IfNode().execute(
        {"main": items({"n": 3}, {"n": 1})},
        {"field": "n", "operation": operation, "value": value},
    )
    true_items = as_json(result, "true") or []
    assert [{"n": 3} in true_items, {"n": 1} in true_items] == expected


async def test_if_leaves_empty_branch_unset():
    result = await IfNode().execute({"main": items({"ok": True})}, {"field": "ok", "operation": "isTrue"})
    assert as_json(result, "true") == [{"ok": True}]
    assert result.output_data["false"] is None
    assert result.selected_ports() == {"true"}


async def test_switch_routes_by_rule():
    rules = [
        {"field": "kind", "operation": "equals", "value": "a", "output": 0},
        {"field": "kind", "operation": "equals", "value": "b", "output": 1},
    ]
    result = await SwitchNode().execute(
        {"main": items({"kind": "a"}, {"kind": "b"}, {"kind": "c"})},
        {"rules": rules},
    )
    assert as_json(result, "output0") == [{"kind": "a"}]
    assert as_json(result, "output1") == [{"kind": "b"}]
    assert as_json(result, "fallback") == [{"kind": "c"}]


async def test_switch_expression_mode_clamps_index():
    result = await SwitchNode().execute(
        {"main": items({"x": 1})},
        {"mode": "expression", "numberOfOutputs": 2, "outputIndex": 7},
    )
    assert as_json(result, "output1") == [{"x": 1}]
    assert result.selected_ports() == {"output1"}


async def test_loop_counts_iterations_then_exits():
    node = LoopNode()
    result = await node.execute({"main": items({"v": 1})}, {"maxIterations": 2})
    assert result.next_ports == ["loop"]
    assert as_json(result, "loop") == [{"v": 1, "_loopIteration": 1}]

    result = await node.execute({"main": items({"v": 1, "_loopIteration": 2})}, {"maxIterations": 2})
    assert result.next_ports == ["done"]
    assert as_json(result, "done") == [{"v": 1, "_loopIteration": 2, "_loopMaxReached": True}]


async def test_loop_exit_field():
    result = await LoopNode().execute({"main": items({"finished": True})}, {"exitField": "finished"})
    assert result.next_ports == ["done"]
    assert as_json(result, "done")[0]["_loopMaxReached"] is False


async def test_merge_modes():
    inputs = {"input1": items({"id": 1}, {"id": 2}), "input2": items({"id": 2})}
    node = MergeNode()

    result = await node.execute(inputs, {})
    assert as_json(result) == [{"id": 1}, {"id": 2}, {"id": 2}]

    result = await node.execute(inputs, {"mode": "keepMatches"})
    assert as_json(result) == [{"id": 2}]

    result = await node.execute(inputs, {"mode": "combinePairs"})
    assert as_json(result) == [{"input0": {"id": 1}, "input1": {"id": 2}}, {"input0": {"id": 2}}]

    result = await node.execute(inputs, {"mode": "waitForAll"})
    assert as_json(result) == [{"inputs": [[{"id": 1}, {"id": 2}], [{"id": 2}]]}]


async def test_set_fields():
    result = await SetNode().execute(
        {"main": items({"a": 1, "old": 2, "drop": 3})},
        {
            "fields": [{"name": "nested.b", "value": 5}],
            "renameFields": [{"from": "old", "to": "new"}],
            "deleteFields": ["drop"],
        },
    )
    assert as_json(result) == [{"a": 1, "nested": {"b": 5}, "new": 2}]


async def test_set_json_mode_keep_only_set():
    result = await SetNode().execute(
        {"main": items({"a": 1})},
        {"mode": "json", "jsonData": {"b": 2}, "keepOnlySet": True},
    )
    assert as_json(result) == [{"b": 2}]


async def test_stop_and_error():
    with pytest.raises(NodeExecutionError) as exc_info:
        await StopAndErrorNode().execute({"main": items({})}, {"message": "halt"})
    assert exc_info.value.message == "halt"
    assert not exc_info.value.retryable

    result = await StopAndErrorNode().execute({"main": items({"a": 1})}, {"errorType": "warning", "message": "careful"})
    assert as_json(result) == [{"a": 1, "_warning": "careful"}]


async def test_wait_and_noop_pass_through():
    result = await WaitNode().execute({"main": items({"a": 1})}, {"duration": 0})
    assert as_json(result) == [{"a": 1}]
    result = await NoOpNode().execute({"main": items({"a": 1})}, {})
    assert as_json(result) == [{"a": 1}]


def http_node(handler):
    return HttpRequestNode(transport=httpx.MockTransport(handler))


async def test_http_request_json_response():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    result = await http_node(handler).execute(
        {"main": items({})},
        {"url": "https://example.test/items", "method": "POST", "body": {"q": 1}, "headers": {"X-Test": "1"}},
    )

    assert as_json(result)[0]["statusCode"] == 200
    assert as_json(result)[0]["body"] == {"ok": True}
    assert seen[0].method == "POST"
    assert seen[0].headers["X-Test"] == "1"
    assert seen[0].content == b'{"q":1}' or seen[0].content == b'{"q": 1}'


async def test_http_request_server_error_is_retryable():
    node = http_node(lambda request: httpx.Response(503))
    with pytest.raises(NodeExecutionError) as exc_info:
        await node.execute({"main": items({})}, {"url": "https://example.test"})
    assert exc_info.value.retryable


async def test_http_request_client_error_is_not_retryable():
    node = http_node(lambda request: httpx.Response(404))
    with pytest.raises(NodeExecutionError) as exc_info:
        await node.execute({"main": items({})}, {"url": "https://example.test"})
    assert not exc_info.value.retryable

    result = await node.execute({"main": items({})}, {"url": "https://example.test", "ignoreHttpErrors": True})
    assert as_json(result)[0]["statusCode"] == 404


async def test_http_request_connection_error_is_retryable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(NodeExecutionError) as exc_info:
        await http_node(handler).execute({"main": items({})}, {"url": "https://example.test"})
    assert exc_info.value.retryable


async def test_http_request_requires_url():
    with pytest.raises(NodeExecutionError):
        await http_node(lambda request: httpx.Response(200)).execute({"main": items({})}, {})
