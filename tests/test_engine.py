"""End-to-end runs through the execution engine."""

import asyncio

import pytest

from conftest import make_workflow, run_workflow
from workflow_core.core.exceptions import ExecutionNotFoundError, GraphValidationError, ValidationError
from workflow_core.engine import ExecutionEngine, NodeSpec, TriggerConfig
from workflow_core.engine.types import ExecutionStatus


def outputs(record, node_id, port="main"):
    return [item.json for item in record.node_outputs[node_id][port]]


async def test_linear_workflow(engine):
    definition = make_workflow(
        [("A", "Start"), ("B", "Double"), ("C", "AddOne")],
        [("A", "B"), ("B", "C")],
    )
    record = await run_workflow(engine, definition, {"x": 1})

    assert record.status is ExecutionStatus.SUCCEEDED
    assert outputs(record, "C") == [{"x": 3}]
    assert outputs(record, "B") == [{"x": 2}]
    assert record.error is None
    assert record.started_at is not None
    assert record.finished_at is not None


async def test_list_payload_becomes_items(engine):
    definition = make_workflow([("A", "Start"), ("B", "Double")], [("A", "B")])
    record = await run_workflow(engine, definition, [{"x": 1}, {"x": 5}])
    assert outputs(record, "B") == [{"x": 2}, {"x": 10}]


async def test_flaky_node_succeeds_after_retries(engine, registry):
    definition = make_workflow(
        [
            ("A", "Start"),
            NodeSpec(id="B", type="Flaky", parameters={"failTimes": 2}, max_retries=3),
        ],
        [("A", "B")],
    )
    record = await run_workflow(engine, definition, {"x": 1})

    assert record.status is ExecutionStatus.SUCCEEDED
    assert record.node_attempts["B"] == 3
    assert registry.resolve("Flaky").calls == 3


async def test_node_failure_fails_the_execution(engine, registry):
    definition = make_workflow(
        [
            ("A", "Start"),
            NodeSpec(id="B", type="AlwaysFail", max_retries=2),
            ("C", "NoOp"),
        ],
        [("A", "B"), ("B", "C")],
    )
    record = await run_workflow(engine, definition, {"x": 1})

    assert record.status is ExecutionStatus.FAILED
    assert record.error.node_id == "B"
    assert record.error.code == "NodeExecutionError"
    assert record.error.message == "boom"
    assert registry.resolve("AlwaysFail").calls == 3
    assert "C" not in record.node_outputs
    assert "A" in record.node_outputs


async def test_failure_discards_sibling_outputs(engine):
    definition = make_workflow(
        [
            ("A", "Start"),
            NodeSpec(id="B", type="AlwaysFail", max_retries=0),
            ("C", "AddOne"),
        ],
        [("A", "B"), ("A", "C")],
    )
    record = await run_workflow(engine, definition, {"x": 1})

    assert record.status is ExecutionStatus.FAILED
    assert record.error.node_id == "B"
    assert "C" not in record.node_outputs


async def test_failure_stops_sibling_retries(database, registry, settings):
    settings = settings.model_copy(update={"retry_base_delay": 5.0, "retry_max_delay": 5.0})
    engine = ExecutionEngine(database, registry, settings)
    await engine.start_worker()
    try:
        definition = make_workflow(
            [
                ("A", "Start"),
                NodeSpec(id="B", type="AlwaysFail", parameters={"retryable": False}, max_retries=0),
                NodeSpec(id="C", type="Flaky", parameters={"failTimes": 10}, max_retries=3),
            ],
            [("A", "B"), ("A", "C")],
        )
        record = await asyncio.wait_for(run_workflow(engine, definition, {"x": 1}), timeout=3)
    finally:
        await engine.stop_worker(timeout=5)

    assert record.status is ExecutionStatus.FAILED
    assert record.error.node_id == "B"
    assert registry.resolve("Flaky").calls == 1
    assert "C" not in record.node_outputs


async def test_unsupported_output_fails_and_is_persisted(engine, registry):
    definition = make_workflow(
        [("A", "Start"), NodeSpec(id="E", type="EmitOpaque", max_retries=3), ("C", "NoOp")],
        [("A", "E"), ("E", "C")],
    )
    record = await run_workflow(engine, definition, {"x": 1})

    assert record.status is ExecutionStatus.FAILED
    assert record.error.node_id == "E"
    assert record.error.code == "NodeExecutionError"
    assert record.node_attempts["E"] == 1
    assert registry.resolve("EmitOpaque").calls == 1
    assert "E" not in record.node_outputs
    assert "C" not in record.node_outputs


    assert "C" not in record.node_outputs


async def test_stop_and_error_fails_without_retry(engine):
    definition = make_workflow(
        [("A", "Start"), ("S", "StopAndError", {"message": "nope"})],
        [("A", "S")],
    )
    record = await run_workflow(engine, definition)

    assert record.status is ExecutionStatus.FAILED
    assert record.error.message == "nope"
    assert record.node_attempts == {"A": 1, "S": 1}


async def test_conditional_routing(engine):
    definition = make_workflow(
        [
            ("A", "Start"),
            ("If", "If", {"field": "x", "operation": "gt", "value": 5}),
            ("T", "Set", {"fields": [{"name": "big", "value": True}]}),
            ("F", "NoOp"),
        ],
        [("A", "If"), ("If", "T", "true"), ("If", "F", "false")],
    )
    record = await run_workflow(engine, definition, {"x": 10})

    assert record.status is ExecutionStatus.SUCCEEDED
    assert outputs(record, "T") == [{"x": 10, "big": True}]
    assert "F" not in record.node_outputs
    assert set(record.node_outputs["If"]) == {"true"}


async def test_loop_node_iterates_until_done(engine):
    definition = make_workflow(
        [
            ("A", "Start"),
            ("L", "Loop", {"maxIterations": 3}),
            ("B", "AddOne", {"field": "n"}),
            ("D", "NoOp"),
        ],
        [("A", "L"), ("L", "B", "loop"), ("B", "L"), ("L", "D", "done")],
    )
    record = await run_workflow(engine, definition, {"n": 0})

    assert record.status is ExecutionStatus.SUCCEEDED
    assert outputs(record, "D") == [{"n": 3, "_loopIteration": 3, "_loopMaxReached": True}]


async def test_loop_limit_fails_the_execution(engine):
    definition = make_workflow(
        [
            ("A", "Start"),
            ("L", "Loop", {"maxIterations": 100}),
            ("B", "NoOp"),
            ("D", "NoOp"),
        ],
        [("A", "L"), ("L", "B", "loop"), ("B", "L"), ("L", "D", "done")],
        settings={"maxLoopIterations": 3},
    )
    record = await run_workflow(engine, definition)

    assert record.status is ExecutionStatus.FAILED
    assert record.error.code == "LoopLimitExceeded"
    assert record.error.node_id == "L"
    assert "D" not in record.node_outputs


async def test_disabled_node_passes_data_through(engine, registry):
    definition = make_workflow(
        [
            ("A", "Start"),
            NodeSpec(id="B", type="AlwaysFail", disabled=True),
            ("C", "AddOne"),
        ],
        [("A", "B"), ("B", "C")],
    )
    record = await run_workflow(engine, definition, {"x": 1})

    assert record.status is ExecutionStatus.SUCCEEDED
    assert outputs(record, "C") == [{"x": 2}]
    assert "B" not in record.node_attempts
    assert registry.resolve("AlwaysFail").calls == 0


async def test_nodes_do_not_share_data(engine, registry):
    definition = make_workflow(
        [("A", "Start"), ("R", "Record"), ("B", "NoOp")],
        [("A", "R"), ("A", "B")],
    )
    record = await run_workflow(engine, definition, {"x": 1})

    assert record.status is ExecutionStatus.SUCCEEDED
    assert registry.resolve("Record").seen == [[{"x": 1}]]
    assert outputs(record, "B") == [{"x": 1}]
    assert outputs(record, "A") == [{"x": 1}]


async def test_cancel_between_batches(engine, registry):
    definition = make_workflow(
        [("A", "Start"), ("S", "Slow", {"seconds": 0.3}), ("C", "NoOp")],
        [("A", "S"), ("S", "C")],
    )
    await engine.database.save_workflow(definition)
    result = await engine.trigger_workflow(definition.id, "manual", {"x": 1})

    await asyncio.wait_for(registry.resolve("Slow").started.wait(), timeout=5)
    assert await engine.cancel_execution(result.execution_id) is True
    await asyncio.wait_for(engine.wait_until_idle(), timeout=10)

    record = await engine.get_execution(result.execution_id)
    assert record.status is ExecutionStatus.CANCELLED
    assert record.error.code == "Cancelled"
    assert outputs(record, "A") == [{"x": 1}]
    assert "S" not in record.node_outputs
    assert "C" not in record.node_outputs

    # Finished executions can no longer be cancelled
    assert await engine.cancel_execution(result.execution_id) is False


async def test_unknown_execution(engine):
    with pytest.raises(ExecutionNotFoundError):
        await engine.get_execution("exec_missing")
    with pytest.raises(ExecutionNotFoundError):
        await engine.cancel_execution("exec_missing")


async def test_run_level_retry(database, registry, settings):
    settings = settings.model_copy(update={"run_retries": 1})
    engine = ExecutionEngine(database, registry, settings)
    await engine.start_worker()
    try:
        definition = make_workflow(
            [
                ("A", "Start"),
                NodeSpec(id="B", type="Flaky", parameters={"failTimes": 1}, max_retries=0),
            ],
            [("A", "B")],
        )
        record = await run_workflow(engine, definition, {"x": 1})
    finally:
        await engine.stop_worker(timeout=5)

    assert record.status is ExecutionStatus.SUCCEEDED
    assert registry.resolve("Flaky").calls == 2
    assert record.node_attempts["B"] == 1


async def test_publish_validates_and_bumps_version(engine):
    definition = make_workflow([("A", "Start"), ("B", "NoOp")], [("A", "B")])
    first = await engine.publish_workflow(definition)
    second = await engine.publish_workflow(definition)

    assert first.version == 1
    assert second.version == 2
    assert (await engine.database.load_workflow("wf")).version == 2

    with pytest.raises(GraphValidationError):
        await engine.publish_workflow(make_workflow([("A", "Start"), ("B", "Nope")], [("A", "B")]))


async def test_webhook_paths_resolve_to_one_workflow(engine):
    named = make_workflow(
        [("A", "Webhook")], [], workflow_id="orders", trigger_config=TriggerConfig(kind="webhook", webhook_path="in")
    )
    plain = make_workflow([("A", "Webhook")], [], workflow_id="refunds", trigger_config=TriggerConfig(kind="webhook"))
    await engine.publish_workflow(named)
    await engine.publish_workflow(plain)

    assert (await engine.resolve_webhook("in")).id == "orders"
    assert (await engine.resolve_webhook("refunds")).id == "refunds"
    assert await engine.resolve_webhook("orders") is None

    clash = make_workflow(
        [("A", "Webhook")], [], workflow_id="other", trigger_config=TriggerConfig(kind="webhook", webhook_path="refunds")
    )
    with pytest.raises(ValidationError):
        await engine.publish_workflow(clash)
    assert await engine.database.load_workflow("other") is None

    # Republishing keeps its own path
    assert (await engine.publish_workflow(named)).version == 2


async def test_concurrent_executions(engine):
    definition = make_workflow([("A", "Start"), ("B", "Double")], [("A", "B")])
    await engine.database.save_workflow(definition)

    results = [await engine.trigger_workflow("wf", "manual", {"x": n}) for n in range(5)]
    await asyncio.wait_for(engine.wait_until_idle(), timeout=10)

    for n, result in enumerate(results):
        record = await engine.get_execution(result.execution_id)
        assert record.status is ExecutionStatus.SUCCEEDED
        assert outputs(record, "B") == [{"x": n * 2}]
