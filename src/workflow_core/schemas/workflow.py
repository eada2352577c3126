"""Workflow-related Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field

from ..engine.types import (
    Connection,
    NodeSpec,
    TriggerConfig,
    TriggerKind,
    WorkflowDefinition,
)


class NodeSpecSchema(BaseModel):
    """Schema for node definition in a workflow."""

    id: str = Field(..., min_length=1, description="Unique id for this node in the workflow")
    type: str = Field(..., description="Node type identifier")
    parameters: dict[str, Any] = Field(default_factory=dict, description="Node parameters")
    disabled: bool = Field(False, description="Disabled nodes pass their input through")
    timeout: float | None = Field(None, gt=0, description="Per-node timeout in seconds")
    max_retries: int | None = Field(None, ge=0, description="Retries for retryable failures")

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "http_request_1",
                "type": "HttpRequest",
                "parameters": {"url": "https://api.example.com", "method": "GET"},
            }
        }
    }


class ConnectionSchema(BaseModel):
    """Schema for connection between nodes."""

    source_node: str = Field(..., description="Source node id")
    target_node: str = Field(..., description="Target node id")
    source_output: str = Field("main", description="Source output port")
    target_input: str = Field("main", description="Target input port")


class TriggerConfigSchema(BaseModel):
    """How the workflow may be started from the outside."""

    kind: TriggerKind = TriggerKind.NONE
    webhook_path: str | None = Field(
        None,
        min_length=1,
        pattern=r"^[A-Za-z0-9._~-]+$",
        description="Path under /webhook/ that triggers the workflow; defaults to its id",
    )
    cron_expression: str | None = None
    node_id: str | None = None
    webhook_secret: str | None = Field(
        None, description="Plain-text webhook secret; stored only as a hash"
    )


class WorkflowPublishRequest(BaseModel):
    """Request schema for publishing a workflow."""

    id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255, description="Workflow name")
    nodes: list[NodeSpecSchema] = Field(default_factory=list, description="List of nodes")
    connections: list[ConnectionSchema] = Field(
        default_factory=list, description="List of connections"
    )
    trigger_config: TriggerConfigSchema = Field(default_factory=TriggerConfigSchema)
    active: bool = True
    settings: dict[str, Any] = Field(default_factory=dict, description="Workflow settings")

    def to_definition(self, secret_hash: str | None = None) -> WorkflowDefinition:
        config = self.trigger_config
        return WorkflowDefinition(
            id=self.id,
            name=self.name,
            active=self.active,
            settings=self.settings,
            trigger_config=TriggerConfig(
                kind=config.kind,
                webhook_path=config.webhook_path,
                cron_expression=config.cron_expression,
                node_id=config.node_id,
                secret_hash=secret_hash,
            ),
            nodes=tuple(
                NodeSpec(
                    id=n.id,
                    type=n.type,
                    parameters=n.parameters,
                    disabled=n.disabled,
                    timeout=n.timeout,
                    max_retries=n.max_retries,
                )
                for n in self.nodes
            ),
            connections=tuple(
                Connection(
                    source_node=c.source_node,
                    target_node=c.target_node,
                    source_output=c.source_output,
                    target_input=c.target_input,
                )
                for c in self.connections
            ),
        )


class WorkflowResponse(BaseModel):
    """Stored workflow."""

    id: str
    name: str
    active: bool
    version: int
    trigger_kind: str
    webhook_url: str
    has_webhook_secret: bool = False
    definition: dict[str, Any]


class ValidationResponse(BaseModel):
    """Result of validating a workflow without storing it."""

    valid: bool
    violations: list[dict[str, Any]] = Field(default_factory=list)
