"""Scheduled monthly billing endpoint."""

from pathlib import Path

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_db_path, get_http_client
from api.models.responses import CronRunResponse, ErrorCodes, ErrorResponse
from services.runner import run_scheduled

router = APIRouter(prefix="/v1")


@router.get("/cron/monthly", response_model=CronRunResponse)
async def monthly_billing(
    client: httpx.AsyncClient = Depends(get_http_client),
    db_path: Path = Depends(get_db_path),
):
    """
    Bill last month for every registered teacher.

    Individual teacher failures are reported to that teacher and listed in
    the response; the endpoint itself only fails when nobody is registered.
    """
    summary = await run_scheduled(client=client, db_path=db_path)

    if summary.teacher_count == 0:
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="No teachers registered for scheduled run.",
                code=ErrorCodes.NO_TEACHERS,
                details=[],
            ).model_dump(),
        )

    return CronRunResponse(
        status="Success",
        message=f"Scheduled run for {summary.month}/{summary.year} completed.",
        year=summary.year,
        month=summary.month,
        succeeded=summary.succeeded,
        failed=summary.failed,
    )
