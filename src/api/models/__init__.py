"""API Pydantic models."""

from .responses import (
    CronRunResponse,
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    LineEvent,
    LineWebhookRequest,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "CronRunResponse",
    "LineEvent",
    "LineWebhookRequest",
]
