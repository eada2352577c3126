"""Common schemas used across the API."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    workers_running: bool = False
    queue_size: int = 0
    in_flight: int = 0


class RootResponse(BaseModel):
    """Root endpoint response."""

    name: str
    version: str
    status: str
