"""FastAPI dependency injection for the workflow engine."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Request

from ..engine.cron import CronTriggerService
from ..engine.engine import ExecutionEngine


def get_engine(request: Request) -> ExecutionEngine:
    """Execution engine created by the application lifespan."""
    return request.app.state.engine


def get_cron_service(request: Request) -> CronTriggerService | None:
    return getattr(request.app.state, "cron", None)


# Type aliases for dependency injection
EngineDep = Annotated[ExecutionEngine, Depends(get_engine)]
CronDep = Annotated[Optional[CronTriggerService], Depends(get_cron_service)]
