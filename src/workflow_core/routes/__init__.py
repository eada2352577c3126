"""API routes."""

from .api import router as api_router
from .webhooks import router as webhook_router

__all__ = ["api_router", "webhook_router"]
