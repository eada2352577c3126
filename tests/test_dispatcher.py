"""Tests for trigger dispatch: lookups, trigger-kind checks and enqueueing."""

import asyncio

import pytest

from conftest import make_workflow
from workflow_core.core.exceptions import (
    GraphValidationError,
    QueueFullError,
    TriggerMismatchError,
    ValidationError,
    WorkerPoolStoppedError,
    WorkflowInactiveError,
    WorkflowNotFoundError,
)
from workflow_core.engine import ExecutionEngine, TriggerConfig
from workflow_core.engine.dispatcher import parse_trigger_kind
from workflow_core.engine.types import ExecutionStatus, TriggerKind


def webhook_workflow(**kwargs):
    return make_workflow(
        [("W", "Webhook"), ("B", "NoOp")],
        [("W", "B")],
        trigger_config=TriggerConfig(kind="webhook"),
        **kwargs,
    )


@pytest.fixture
def idle_engine(database, registry, settings):
    """Engine whose pool is running but has no workers draining the queue."""
    settings = settings.model_copy(update={"worker_count": 1, "queue_max_size": 2})
    return ExecutionEngine(database, registry, settings)


def test_parse_trigger_kind():
    assert parse_trigger_kind("webhook") is TriggerKind.WEBHOOK
    assert parse_trigger_kind(TriggerKind.CRON) is TriggerKind.CRON
    with pytest.raises(ValidationError):
        parse_trigger_kind("email")


async def test_unknown_workflow(engine):
    with pytest.raises(WorkflowNotFoundError):
        await engine.trigger_workflow("missing", "manual")


async def test_inactive_workflow(engine):
    await engine.database.save_workflow(webhook_workflow(active=False))
    with pytest.raises(WorkflowInactiveError):
        await engine.trigger_workflow("wf", "webhook")
    assert await engine.database.list_executions() == []


async def test_trigger_kind_must_match_config(engine):
    await engine.database.save_workflow(webhook_workflow())
    with pytest.raises(TriggerMismatchError):
        await engine.trigger_workflow("wf", "cron")


async def test_manual_runs_bypass_trigger_config(engine):
    await engine.database.save_workflow(webhook_workflow())
    result = await engine.trigger_workflow("wf", "manual", {"a": 1})
    await asyncio.wait_for(engine.wait_until_idle(), timeout=10)

    record = await engine.get_execution(result.execution_id)
    assert record.status is ExecutionStatus.SUCCEEDED
    assert record.mode is TriggerKind.MANUAL
    assert [i.json for i in record.node_outputs["B"]["main"]] == [{"a": 1}]


async def test_returns_pending_and_persists_before_running(engine):
    await engine.database.save_workflow(webhook_workflow())
    result = await engine.trigger_workflow("wf", "webhook", {"a": 1})

    assert result.status is ExecutionStatus.PENDING
    assert result.execution_id.startswith("exec_")
    assert result.to_dict() == {"executionId": result.execution_id, "status": "pending"}
    assert await engine.database.get_execution(result.execution_id) is not None

    await asyncio.wait_for(engine.wait_until_idle(), timeout=10)
    record = await engine.database.get_execution(result.execution_id)
    assert record.status is ExecutionStatus.SUCCEEDED
    assert record.mode is TriggerKind.WEBHOOK


async def test_invalid_stored_workflow(engine):
    definition = make_workflow([("A", "Start"), ("B", "Missing")], [("A", "B")])
    await engine.database.save_workflow(definition)
    with pytest.raises(GraphValidationError):
        await engine.trigger_workflow("wf", "manual")


async def test_no_trigger_node_for_kind(engine):
    definition = make_workflow(
        [("A", "Start"), ("B", "NoOp")],
        [("A", "B")],
        trigger_config=TriggerConfig(kind="webhook"),
    )
    await engine.database.save_workflow(definition)
    with pytest.raises(ValidationError):
        await engine.trigger_workflow("wf", "webhook")


async def test_stopped_pool_rejects_triggers(idle_engine):
    await idle_engine.database.save_workflow(webhook_workflow())
    with pytest.raises(WorkerPoolStoppedError):
        await idle_engine.trigger_workflow("wf", "webhook")
    assert await idle_engine.database.list_executions() == []


async def test_full_queue_rejects_triggers(idle_engine, registry):
    definition = make_workflow(
        [("A", "Start"), ("S", "Slow", {"seconds": 5})],
        [("A", "S")],
    )
    await idle_engine.database.save_workflow(definition)
    await idle_engine.start_worker()
    try:
        await idle_engine.trigger_workflow("wf", "manual")
        # The single worker is busy with the first run, the rest wait in the queue
        await asyncio.wait_for(registry.resolve("Slow").started.wait(), timeout=5)
        await idle_engine.trigger_workflow("wf", "manual")
        await idle_engine.trigger_workflow("wf", "manual")
        with pytest.raises(QueueFullError):
            await idle_engine.trigger_workflow("wf", "manual")
        assert len(await idle_engine.database.list_executions()) == 3
    finally:
        await idle_engine.stop_worker(timeout=0.1)
