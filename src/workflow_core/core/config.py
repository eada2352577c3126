"""Application configuration using pydantic-settings."""

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="WORKFLOW_",
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 5678
    reload: bool = False
    log_level: Literal["debug", "info", "warning", "error"] = "info"

    # Application settings
    app_name: str = "Workflow Core"
    app_version: str = "0.1.0"
    debug: bool = False

    # CORS settings
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Storage
    database_url: str | None = None
    max_execution_records: int = 100

    # Worker pool / queue
    worker_count: int = Field(default_factory=lambda: os.cpu_count() or 4, ge=1)
    queue_max_size: int = Field(1000, ge=1)
    run_retries: int = Field(1, ge=0)
    run_retry_delay: float = Field(1.0, ge=0)

    # Node execution
    node_timeout: float = Field(30.0, gt=0)
    max_retries: int = Field(3, ge=0)
    retry_base_delay: float = Field(1.0, ge=0)
    retry_backoff_factor: float = Field(2.0, ge=1)
    retry_max_delay: float = Field(30.0, ge=0)

    # Scheduling
    max_loop_iterations: int = Field(1000, ge=1)

    @property
    def resolved_database_url(self) -> str:
        return self.database_url or "sqlite+aiosqlite:///./workflows.db"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
