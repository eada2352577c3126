"""JSON conversion of workflow definitions and execution records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..engine.types import (
    Connection,
    ExecutionError,
    ExecutionRecord,
    ExecutionStatus,
    NodeData,
    NodeSpec,
    TriggerConfig,
    TriggerKind,
    WorkflowDefinition,
)


def workflow_to_dict(definition: WorkflowDefinition) -> dict[str, Any]:
    config = definition.trigger_config
    return {
        "id": definition.id,
        "name": definition.name,
        "active": definition.active,
        "version": definition.version,
        "settings": dict(definition.settings),
        "triggerConfig": {
            "kind": config.kind.value,
            "webhookPath": config.webhook_path,
            "cronExpression": config.cron_expression,
            "nodeId": config.node_id,
            "secretHash": config.secret_hash,
        },
        "nodes": [
            {
                "id": node.id,
                "type": node.type,
                "parameters": node.parameters,
                "disabled": node.disabled,
                "timeout": node.timeout,
                "maxRetries": node.max_retries,
            }
            for node in definition.nodes
        ],
        "connections": [
            {
                "sourceNode": c.source_node,
                "targetNode": c.target_node,
                "sourceOutput": c.source_output,
                "targetInput": c.target_input,
            }
            for c in definition.connections
        ],
    }


def workflow_from_dict(data: dict[str, Any]) -> WorkflowDefinition:
    config = data.get("triggerConfig") or {}
    return WorkflowDefinition(
        id=data["id"],
        name=data.get("name", data["id"]),
        active=data.get("active", True),
        version=data.get("version", 1),
        settings=data.get("settings") or {},
        trigger_config=TriggerConfig(
            kind=config.get("kind", TriggerKind.NONE.value),
            webhook_path=config.get("webhookPath"),
            cron_expression=config.get("cronExpression"),
            node_id=config.get("nodeId"),
            secret_hash=config.get("secretHash"),
        ),
        nodes=tuple(
            NodeSpec(
                id=node["id"],
                type=node["type"],
                parameters=node.get("parameters") or {},
                disabled=node.get("disabled", False),
                timeout=node.get("timeout"),
                max_retries=node.get("maxRetries"),
            )
            for node in data.get("nodes", [])
        ),
        connections=tuple(
            Connection(
                source_node=c["sourceNode"],
                target_node=c["targetNode"],
                source_output=c.get("sourceOutput", "main"),
                target_input=c.get("targetInput", "main"),
            )
            for c in data.get("connections", [])
        ),
    )


def node_outputs_to_dict(
    node_outputs: dict[str, dict[str, list[NodeData]]],
) -> dict[str, dict[str, list[dict[str, Any]]]]:
    # Binary payloads are not persisted
    return {
        node_id: {port: [{"json": item.json} for item in items] for port, items in ports.items()}
        for node_id, ports in node_outputs.items()
    }


def node_outputs_from_dict(
    data: dict[str, dict[str, list[dict[str, Any]]]],
) -> dict[str, dict[str, list[NodeData]]]:
    return {
        node_id: {
            port: [NodeData(json=item.get("json", {})) for item in items]
            for port, items in ports.items()
        }
        for node_id, ports in data.items()
    }


def error_to_dict(error: ExecutionError | None) -> dict[str, Any] | None:
    return error.to_dict() if error is not None else None


def error_from_dict(data: dict[str, Any] | None) -> ExecutionError | None:
    if not data:
        return None
    return ExecutionError(
        message=data["message"],
        code=data["code"],
        node_id=data.get("nodeId"),
        timestamp=datetime.fromisoformat(data["timestamp"]),
    )


def record_from_row(
    *,
    execution_id: str,
    workflow_id: str,
    workflow_name: str,
    status: str,
    mode: str,
    started_at: datetime | None,
    finished_at: datetime | None,
    created_at: datetime,
    node_outputs: dict[str, Any],
    node_attempts: dict[str, int],
    error: dict[str, Any] | None,
) -> ExecutionRecord:
    return ExecutionRecord(
        execution_id=execution_id,
        workflow_id=workflow_id,
        workflow_name=workflow_name,
        status=ExecutionStatus(status),
        mode=TriggerKind(mode),
        started_at=started_at,
        finished_at=finished_at,
        created_at=created_at,
        node_outputs=node_outputs_from_dict(node_outputs or {}),
        node_attempts=dict(node_attempts or {}),
        error=error_from_dict(error),
    )
