"""Main entry point for the workflow engine server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Settings, get_settings
from .engine.cron import CronTriggerService
from .engine.engine import ExecutionEngine
from .engine.node_registry import NodeRegistry
from .routes import api_router, webhook_router
from .schemas.common import HealthResponse, RootResponse
from .storage import DatabaseService, create_database

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    database: DatabaseService | None = None,
    registry: NodeRegistry | None = None,
    enable_cron: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        db = database or create_database(settings)
        await db.connect()

        node_registry = registry
        if node_registry is None:
            node_registry = NodeRegistry()
            node_registry.register_default_nodes()

        engine = ExecutionEngine(db, node_registry, settings)
        await engine.start_worker()
        app.state.engine = engine
        logger.info(f"Registered {node_registry.count()} node types")

        cron = None
        if enable_cron:
            cron = CronTriggerService(engine, db)
            await cron.start()
        app.state.cron = cron

        logger.info(f"{settings.app_name} v{settings.app_version} started")
        try:
            yield
        finally:
            if cron is not None:
                cron.shutdown()
            await engine.stop_worker()
            await db.disconnect()
            logger.info(f"{settings.app_name} stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Workflow execution core - graph scheduling, triggers and workers",
        version=settings.app_version,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Include routers
    app.include_router(api_router)
    app.include_router(webhook_router, tags=["Webhooks"])

    # Root endpoints
    @app.get("/", response_model=RootResponse)
    async def root() -> RootResponse:
        """Root endpoint."""
        return RootResponse(
            name=settings.app_name,
            version=settings.app_version,
            status="running",
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        engine: ExecutionEngine | None = getattr(app.state, "engine", None)
        return HealthResponse(
            status="healthy",
            version=settings.app_version,
            workers_running=engine is not None and engine.pool.running,
            queue_size=engine.pool.queue_size if engine else 0,
            in_flight=engine.pool.in_flight if engine else 0,
        )

    return app


def main() -> None:
    """Run the server."""
    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(
        "workflow_core.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
