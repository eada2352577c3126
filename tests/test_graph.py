"""Tests for graph validation and loop analysis."""

import pytest

from conftest import make_workflow
from workflow_core.core.exceptions import GraphValidationError
from workflow_core.engine.graph import GraphCache, WorkflowGraph
from workflow_core.engine.types import TriggerConfig, TriggerKind


def build(registry, nodes, connections, **kwargs):
    return WorkflowGraph.build(make_workflow(nodes, connections, **kwargs), registry)


def violations(registry, nodes, connections, **kwargs):
    with pytest.raises(GraphValidationError) as exc_info:
        build(registry, nodes, connections, **kwargs)
    return exc_info.value


def test_valid_chain(registry):
    graph = build(
        registry,
        [("A", "Start"), ("B", "Double"), ("C", "AddOne")],
        [("A", "B"), ("B", "C")],
    )
    assert graph.trigger_nodes == ["A"]
    assert [c.target_node for c in graph.outbound["A"]] == ["B"]
    assert not graph.back_edges
    assert graph.loop_bodies == {}


def test_reports_every_violation(registry):
    error = violations(
        registry,
        [("A", "Start"), ("B", "Missing"), ("C", "NoOp")],
        [("A", "B"), ("A", "ghost")],
    )
    assert error.codes == {"unknown_node_type", "dangling_connection", "unreachable_node"}
    assert len(error.violations) == 3
    assert "violations" in error.details


def test_empty_workflow(registry):
    error = violations(registry, [], [])
    assert "empty_workflow" in error.codes


def test_duplicate_node_ids(registry):
    error = violations(registry, [("A", "Start"), ("A", "NoOp")], [])
    assert error.codes == {"duplicate_node"}


def test_unknown_ports(registry):
    error = violations(
        registry,
        [("A", "Start"), ("If", "If"), ("B", "NoOp")],
        [("A", "If"), ("If", "B", "maybe"), ("A", "B", "main", "side")],
    )
    assert error.codes == {"unknown_output_port", "unknown_input_port"}


def test_dynamic_ports_accept_any_name(registry):
    graph = build(
        registry,
        [("A", "Start"), ("S", "Switch"), ("M", "Merge")],
        [("A", "S"), ("S", "M", "output0", "input1"), ("S", "M", "fallback", "input2")],
    )
    assert len(graph.inbound["M"]) == 2


def test_trigger_cannot_have_inputs(registry):
    error = violations(
        registry,
        [("A", "Start"), ("W", "Webhook"), ("B", "NoOp")],
        [("A", "B"), ("B", "W")],
    )
    assert "trigger_has_inputs" in error.codes


def test_workflow_needs_a_trigger(registry):
    error = violations(registry, [("A", "NoOp"), ("B", "NoOp")], [("A", "B")])
    assert error.codes == {"no_trigger"}


def test_cycle_without_loop_controller_is_rejected(registry):
    error = violations(
        registry,
        [("A", "Start"), ("B", "NoOp"), ("C", "NoOp")],
        [("A", "B"), ("B", "C"), ("C", "B")],
    )
    assert error.codes == {"unsanctioned_cycle"}
    assert error.violations[0].node_id == "B"


def test_irreducible_cycle_is_rejected(registry):
    # The B/C cycle can be entered at either node, so neither dominates the other
    error = violations(
        registry,
        [("A", "Start"), ("If", "If"), ("B", "Loop"), ("C", "Loop")],
        [("A", "If"), ("If", "B", "true"), ("If", "C", "false"), ("B", "C", "loop"), ("C", "B", "loop")],
    )
    assert "unsanctioned_cycle" in error.codes


def test_loop_through_controller_is_accepted(registry):
    graph = build(
        registry,
        [("A", "Start"), ("L", "Loop"), ("B", "NoOp"), ("C", "NoOp"), ("D", "NoOp")],
        [("A", "L"), ("L", "B", "loop"), ("B", "C"), ("C", "L"), ("L", "D", "done")],
    )
    assert graph.back_edges == {("C", "main", "L", "main")}
    assert graph.loop_bodies == {"L": frozenset({"B", "C"})}
    assert [c.source_node for c in graph.entry_edges("L")] == ["A"]
    assert [c.source_node for c in graph.loop_back_edges("L")] == ["C"]


def test_nested_loops(registry):
    graph = build(
        registry,
        [("A", "Start"), ("Outer", "Loop"), ("Inner", "Loop"), ("B", "NoOp"), ("C", "NoOp")],
        [
            ("A", "Outer"),
            ("Outer", "Inner", "loop"),
            ("Inner", "B", "loop"),
            ("B", "Inner"),
            ("Inner", "C", "done"),
            ("C", "Outer"),
        ],
    )
    assert graph.loop_bodies["Inner"] == frozenset({"B"})
    assert graph.loop_bodies["Outer"] == frozenset({"Inner", "B", "C"})


def test_self_loop_on_controller(registry):
    graph = build(registry, [("A", "Start"), ("L", "Loop")], [("A", "L"), ("L", "L", "loop")])
    assert graph.loop_bodies == {"L": frozenset()}


def test_cron_trigger_config_requires_expression(registry):
    error = violations(
        registry,
        [("A", "Cron")],
        [],
        trigger_config=TriggerConfig(kind="cron"),
    )
    assert error.codes == {"invalid_trigger_config"}


def test_cron_trigger_config_rejects_bad_expression(registry):
    error = violations(
        registry,
        [("A", "Cron")],
        [],
        trigger_config=TriggerConfig(kind="cron", cron_expression="not a cron"),
    )
    assert error.codes == {"invalid_trigger_config"}
    assert "not a cron" in error.violations[0].message

    graph = build(
        registry, [("A", "Cron")], [], trigger_config=TriggerConfig(kind="cron", cron_expression="0 3 * * *")
    )
    assert graph.trigger_nodes == ["A"]


def test_trigger_config_node_must_be_a_trigger(registry):
    error = violations(
        registry,
        [("A", "Start"), ("B", "NoOp")],
        [("A", "B")],
        trigger_config=TriggerConfig(kind="manual", node_id="B"),
    )
    assert error.codes == {"invalid_trigger_config"}


def test_start_node_selection(registry):
    graph = build(
        registry,
        [("S", "Start"), ("W", "Webhook"), ("B", "NoOp")],
        [("S", "B"), ("W", "B")],
    )
    assert graph.start_node_for(TriggerKind.WEBHOOK) == "W"
    assert graph.start_node_for(TriggerKind.MANUAL) == "S"
    assert graph.start_node_for(TriggerKind.CRON) is None


def test_manual_falls_back_to_first_trigger(registry):
    graph = build(registry, [("W", "Webhook"), ("B", "NoOp")], [("W", "B")])
    assert graph.start_node_for(TriggerKind.MANUAL) == "W"


def test_configured_start_node_wins(registry):
    graph = build(
        registry,
        [("S", "Start"), ("W", "Webhook"), ("B", "NoOp")],
        [("S", "B"), ("W", "B")],
        trigger_config=TriggerConfig(kind="webhook", node_id="S"),
    )
    assert graph.start_node_for(TriggerKind.WEBHOOK) == "S"


def test_graph_cache_reuses_compiled_graph(registry):
    cache = GraphCache(registry)
    definition = make_workflow([("A", "Start")], [])
    assert cache.get(definition) is cache.get(definition)
    cache.invalidate(definition.id)
    assert cache.get(definition) is not None
