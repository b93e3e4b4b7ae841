"""Pydantic models for API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class CronRunResponse(BaseModel):
    """Scheduled run summary."""

    status: str
    message: str
    year: int
    month: int
    succeeded: list[str] = []
    failed: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    NO_TEACHERS = "NO_TEACHERS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# LINE WEBHOOK
# =============================================================================


class LineSource(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = "user"
    user_id: str | None = Field(default=None, alias="userId")


class LineMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    text: str | None = None


class LinePostback(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: str = ""


class LineEvent(BaseModel):
    """One entry of a LINE webhook's `events` array."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str
    reply_token: str | None = Field(default=None, alias="replyToken")
    source: LineSource | None = None
    message: LineMessage | None = None
    postback: LinePostback | None = None


class LineWebhookRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    destination: str | None = None
    events: list[LineEvent] = []
