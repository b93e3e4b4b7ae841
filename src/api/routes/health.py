"""Health check endpoint."""

from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_db_path
from api.models.responses import HealthResponse
from core.config import API_VERSION

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(db_path: Path = Depends(get_db_path)):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if the database has not been initialised.
    """
    database_available = db_path.exists()
    timestamp = datetime.now(timezone.utc).isoformat()

    if database_available:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            database_available=True,
            timestamp=timestamp,
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                database_available=False,
                timestamp=timestamp,
                error="Database not found",
            ).model_dump(),
        )
