"""SQL storage on SQLAlchemy's asyncio engine (SQLite via aiosqlite by default)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlmodel import select

from ..db.models import ExecutionModel, WorkflowModel
from ..db.session import create_engine, create_session_factory, init_db
from ..engine.types import utcnow
from .base import DatabaseService
from .serialization import (
    error_to_dict,
    node_outputs_to_dict,
    record_from_row,
    workflow_from_dict,
    workflow_to_dict,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine
    from sqlalchemy.orm import sessionmaker

    from ..engine.types import ExecutionContext, ExecutionRecord, WorkflowDefinition

logger = logging.getLogger(__name__)


class SqlDatabaseService(DatabaseService):
    """Workflow and execution persistence in a SQL database."""

    def __init__(self, database_url: str, echo: bool = False, max_records: int = 100) -> None:
        self.database_url = database_url
        self._echo = echo
        self._max_records = max_records
        self._engine: AsyncEngine | None = None
        self._session_factory: sessionmaker | None = None

    async def connect(self) -> None:
        self._engine = create_engine(self.database_url, echo=self._echo)
        self._session_factory = create_session_factory(self._engine)
        await init_db(self._engine)
        logger.info(f"Connected to database {self._engine.url.render_as_string(hide_password=True)}")

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def _session(self):
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        return self._session_factory()

    # --- Workflows ---

    async def load_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        async with self._session() as session:
            db_workflow = await session.get(WorkflowModel, workflow_id)
            if not db_workflow:
                return None
            return workflow_from_dict(db_workflow.definition)

    async def save_workflow(self, definition: WorkflowDefinition) -> None:
        async with self._session() as session:
            db_workflow = await session.get(WorkflowModel, definition.id)
            if not db_workflow:
                db_workflow = WorkflowModel(id=definition.id, name=definition.name)
                session.add(db_workflow)

            db_workflow.name = definition.name
            db_workflow.active = definition.active
            db_workflow.version = definition.version
            db_workflow.trigger_kind = definition.trigger_config.kind.value
            db_workflow.definition = workflow_to_dict(definition)
            db_workflow.updated_at = utcnow()
            await session.commit()

    async def list_workflows(self) -> list[WorkflowDefinition]:
        async with self._session() as session:
            result = await session.execute(select(WorkflowModel).order_by(WorkflowModel.name))
            return [workflow_from_dict(w.definition) for w in result.scalars().all()]

    async def delete_workflow(self, workflow_id: str) -> bool:
        async with self._session() as session:
            db_workflow = await session.get(WorkflowModel, workflow_id)
            if not db_workflow:
                return False
            await session.delete(db_workflow)
            await session.commit()
            return True

    # --- Executions ---

    async def save_execution(self, context: ExecutionContext) -> None:
        record = context.to_record()
        async with self._session() as session:
            db_execution = await session.get(ExecutionModel, record.execution_id)
            created = db_execution is None
            if created:
                db_execution = ExecutionModel(
                    id=record.execution_id,
                    workflow_id=record.workflow_id,
                    workflow_name=record.workflow_name,
                    status=record.status.value,
                    mode=record.mode.value,
                    created_at=record.created_at,
                )
                session.add(db_execution)

            db_execution.status = record.status.value
            db_execution.started_at = record.started_at
            db_execution.finished_at = record.finished_at
            db_execution.node_outputs = node_outputs_to_dict(record.node_outputs)
            db_execution.node_attempts = dict(record.node_attempts)
            db_execution.error = error_to_dict(record.error)
            await session.commit()

        if created:
            await self._cleanup()

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        async with self._session() as session:
            db_execution = await session.get(ExecutionModel, execution_id)
            if not db_execution:
                return None
            return self._to_execution_record(db_execution)

    async def list_executions(self, workflow_id: str | None = None) -> list[ExecutionRecord]:
        statement = select(ExecutionModel).order_by(ExecutionModel.created_at.desc())
        if workflow_id:
            statement = statement.where(ExecutionModel.workflow_id == workflow_id)
        async with self._session() as session:
            result = await session.execute(statement)
            return [self._to_execution_record(e) for e in result.scalars().all()]

    async def _cleanup(self) -> None:
        """Remove the oldest finished records if over max."""
        async with self._session() as session:
            statement = (
                select(ExecutionModel)
                .where(ExecutionModel.status.in_(["succeeded", "failed", "cancelled"]))
                .order_by(ExecutionModel.created_at.desc())
            )
            result = await session.execute(statement)
            executions = result.scalars().all()
            if len(executions) <= self._max_records:
                return
            for execution in executions[self._max_records:]:
                await session.delete(execution)
            await session.commit()

    @staticmethod
    def _to_execution_record(db_execution: ExecutionModel) -> ExecutionRecord:
        return record_from_row(
            execution_id=db_execution.id,
            workflow_id=db_execution.workflow_id,
            workflow_name=db_execution.workflow_name,
            status=db_execution.status,
            mode=db_execution.mode,
            started_at=db_execution.started_at,
            finished_at=db_execution.finished_at,
            created_at=db_execution.created_at,
            node_outputs=db_execution.node_outputs,
            node_attempts=db_execution.node_attempts,
            error=db_execution.error,
        )
