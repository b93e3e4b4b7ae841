"""API route modules."""

from .cron import router as cron_router
from .health import router as health_router
from .webhook import router as webhook_router

__all__ = ["health_router", "webhook_router", "cron_router"]
