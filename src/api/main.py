"""FastAPI application entry point."""

import logging
import warnings
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import cron_router, health_router, webhook_router
from core.config import API_DEBUG, API_VERSION, LINE_ACCESS_TOKEN, LOG_LEVEL

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup: verify critical settings exist
    from core.config import DB_PATH

    if not DB_PATH.exists():
        warnings.warn(f"Database not found at {DB_PATH}; run scripts/init_db.py")
    if not LINE_ACCESS_TOKEN:
        warnings.warn("LINE_ACCESS_TOKEN is not set; replies will be rejected")

    yield


app = FastAPI(
    title="Tutoring Billing Notifier",
    description="Monthly tutoring fees from a calendar feed, delivered over LINE",
    version=API_VERSION,
    debug=API_DEBUG,
    lifespan=lifespan,
)


# Global exception handler for unexpected errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with standard error format."""
    logger.error("Handler Error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code=ErrorCodes.INTERNAL_ERROR,
            details=[],
        ).model_dump(),
    )


# Include routers
app.include_router(health_router)
app.include_router(webhook_router)
app.include_router(cron_router)


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_DEBUG,
    )
