"""SQLModel database models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlmodel import Column, Field, SQLModel
from sqlalchemy import JSON

from ..engine.types import utcnow


class WorkflowModel(SQLModel, table=True):
    """Published workflow definition."""

    __tablename__ = "workflows"

    id: str = Field(primary_key=True)
    name: str = Field(index=True)
    active: bool = Field(default=True, index=True)
    version: int = Field(default=1)
    trigger_kind: str = Field(default="none", index=True)

    # Full definition: nodes, connections, trigger config, settings
    definition: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ExecutionModel(SQLModel, table=True):
    """Execution record."""

    __tablename__ = "executions"

    id: str = Field(primary_key=True)
    workflow_id: str = Field(index=True)
    workflow_name: str

    status: str = Field(index=True)  # pending, running, succeeded, failed, cancelled
    mode: str  # manual, webhook, cron

    # Node outputs per port: {node_id: {port: [{"json": ...}]}}
    node_outputs: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    node_attempts: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    error: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON, nullable=True))

    created_at: datetime = Field(default_factory=utcnow, index=True)
    started_at: datetime | None = Field(default=None)
    finished_at: datetime | None = Field(default=None)
