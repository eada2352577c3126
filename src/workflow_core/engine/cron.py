"""Cron trigger service - periodic timer that fires cron workflows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..core.exceptions import ValidationError, WorkflowEngineError
from .types import TriggerKind, WorkflowDefinition, utcnow

if TYPE_CHECKING:
    from ..storage.base import DatabaseService
    from .engine import ExecutionEngine

logger = logging.getLogger(__name__)


def parse_cron_expression(expression: str) -> CronTrigger:
    """
    Parse a standard 5-field crontab expression.

    Raises:
        ValidationError: if the expression is invalid
    """
    try:
        return CronTrigger.from_crontab(expression, timezone="UTC")
    except ValueError as e:
        raise ValidationError(f"Invalid cron expression {expression!r}: {e}", field="cron_expression") from None


class CronTriggerService:
    """
    One APScheduler job per active cron workflow.

    Each tick synthesizes a `trigger_workflow(id, "cron", payload)` call;
    dispatch errors are logged and the schedule keeps running.
    """

    def __init__(
        self,
        engine: ExecutionEngine,
        database: DatabaseService,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._engine = engine
        self._database = database
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")

    @staticmethod
    def job_id(workflow_id: str) -> str:
        return f"cron:{workflow_id}"

    async def start(self) -> None:
        for definition in await self._database.list_workflows():
            try:
                self.sync(definition)
            except ValidationError as e:
                logger.warning(f"Not scheduling workflow {definition.id}: {e.message}")
        self._scheduler.start()
        logger.info(f"Cron trigger service started with {len(self.scheduled_workflows())} jobs")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def sync(self, definition: WorkflowDefinition) -> None:
        """Schedule or unschedule a workflow to match its trigger configuration."""
        config = definition.trigger_config
        if not definition.active or config.kind is not TriggerKind.CRON or not config.cron_expression:
            self.unschedule(definition.id)
            return
        trigger = parse_cron_expression(config.cron_expression)
        self._scheduler.add_job(
            self.fire,
            trigger,
            args=[definition.id, config.cron_expression],
            id=self.job_id(definition.id),
            replace_existing=True,
        )
        logger.debug(f"Scheduled workflow {definition.id} with cron {config.cron_expression!r}")

    def unschedule(self, workflow_id: str) -> None:
        if self._scheduler.get_job(self.job_id(workflow_id)) is not None:
            self._scheduler.remove_job(self.job_id(workflow_id))

    def scheduled_workflows(self) -> list[str]:
        return [job.id.split(":", 1)[1] for job in self._scheduler.get_jobs()]

    async def fire(self, workflow_id: str, cron_expression: str) -> None:
        payload = {"triggeredAt": utcnow().isoformat(), "cronExpression": cron_expression}
        try:
            result = await self._engine.trigger_workflow(workflow_id, TriggerKind.CRON, payload)
        except WorkflowEngineError as e:
            logger.warning(f"Cron trigger for workflow {workflow_id} failed: {e.message}")
            return
        logger.debug(f"Cron trigger for workflow {workflow_id} started {result.execution_id}")
