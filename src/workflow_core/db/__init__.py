"""Database configuration and models."""

from .session import create_engine, create_session_factory, init_db
from .models import WorkflowModel, ExecutionModel

__all__ = [
    "create_engine",
    "create_session_factory",
    "init_db",
    "WorkflowModel",
    "ExecutionModel",
]
