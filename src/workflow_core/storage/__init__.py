"""Storage layer for workflows and executions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import DatabaseService
from .memory import InMemoryDatabaseService
from .sql import SqlDatabaseService

if TYPE_CHECKING:
    from ..core.config import Settings

MEMORY_URL = "memory://"


def create_database(settings: Settings) -> DatabaseService:
    """Storage backend for the configured database URL."""
    url = settings.resolved_database_url
    if url == MEMORY_URL:
        return InMemoryDatabaseService(max_records=settings.max_execution_records)
    return SqlDatabaseService(url, echo=settings.debug, max_records=settings.max_execution_records)


__all__ = [
    "DatabaseService",
    "InMemoryDatabaseService",
    "SqlDatabaseService",
    "MEMORY_URL",
    "create_database",
]
