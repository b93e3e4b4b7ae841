"""
Billing runs: calculate, deliver, and record the outcome.

A failed fetch or parse aborts the run before anything is sent, so a teacher
never receives a partial bill. Translating that into a failure notice is done
here, per trigger.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import httpx

from api.logging import RunLog, log_run
from core.database import get_connection, list_teachers
from core.errors import BillingError, DeliveryError
from core.http_client import create_http_client
from core.period import previous_month, resolve_command_year
from models.events import AggregationResult, TeacherConfig
from services.billing import calculate
from services.line import (
    MANUAL_FAILURE_TEXT,
    SCHEDULED_FAILURE_TEXT,
    deliver,
    reply,
    reply_text,
)
from services.notifications import compose_messages, text_message

logger = logging.getLogger(__name__)


@dataclass
class ScheduledRunSummary:
    """Per-teacher outcome of a scheduled run."""

    year: int
    month: int
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def teacher_count(self) -> int:
        return len(self.succeeded) + len(self.failed)


def _write_log(run_log: RunLog, db_path: Path | None) -> None:
    try:
        log_run(run_log, db_path)
    except Exception:
        # Run outcome stands even if the log write fails
        logger.exception("Failed to record calculation run %s", run_log.run_id)


async def run_calculation_and_notify(
    teacher: TeacherConfig,
    year: int,
    month: int,
    reply_token: str | None = None,
    trigger: str = "manual",
    client: httpx.AsyncClient | None = None,
    db_path: Path | None = None,
) -> AggregationResult:
    """
    Calculate one teacher's month and send the messages.

    Uses the reply token when the run answers a webhook event, otherwise
    pushes to the teacher's LINE user.
    """
    if client is None:
        async with create_http_client() as own_client:
            return await run_calculation_and_notify(
                teacher, year, month, reply_token, trigger, own_client, db_path
            )

    start_time = time.time()
    run_log = RunLog(trigger=trigger, line_user_id=teacher.line_user_id, year=year, month=month)

    try:
        result = await calculate(
            teacher.ical_url,
            teacher.sheet_csv_url,
            teacher.teacher_email,
            year,
            month,
            client,
        )
        messages = compose_messages(result, month, year)

        if reply_token:
            await reply(reply_token, messages, fallback_target=teacher.line_user_id, client=client)
        else:
            await deliver(teacher.line_user_id, messages, client=client)

        run_log.status = "success"
        run_log.messages_sent = len(messages)
        run_log.students_billed = len(result.billing_lines)
        run_log.ambiguous_events = len(result.ambiguous_events)
        run_log.unresolved_emails = len(result.unresolved_emails)
        return result

    except Exception as e:
        run_log.status = "failed"
        run_log.error_type = type(e).__name__
        run_log.error_message = str(e)
        raise

    finally:
        run_log.processing_time_ms = int((time.time() - start_time) * 1000)
        _write_log(run_log, db_path)


async def run_manual_calculation(
    teacher: TeacherConfig,
    month: int,
    reply_token: str,
    now: datetime | None = None,
    client: httpx.AsyncClient | None = None,
    db_path: Path | None = None,
) -> bool:
    """
    Handle a "計算N月" command from a registered teacher.

    Returns False when the calculation failed and a retry notice was replied
    instead. Delivery failures propagate.
    """
    if client is None:
        async with create_http_client() as own_client:
            return await run_manual_calculation(teacher, month, reply_token, now, own_client, db_path)

    year = resolve_command_year(month, now)
    try:
        await run_calculation_and_notify(
            teacher, year, month, reply_token, "manual", client, db_path
        )
    except DeliveryError:
        raise
    except BillingError as e:
        logger.warning("Manual calc failed for %s: %s", teacher.line_user_id, e)
        await reply_text(reply_token, MANUAL_FAILURE_TEXT, client=client)
        return False
    return True


async def run_scheduled(
    now: datetime | None = None,
    client: httpx.AsyncClient | None = None,
    db_path: Path | None = None,
) -> ScheduledRunSummary:
    """
    Bill the previous month for every registered teacher.

    Each teacher runs in isolation: a failure is reported to that teacher and
    the loop moves on.
    """
    if client is None:
        async with create_http_client() as own_client:
            return await run_scheduled(now, own_client, db_path)

    year, month = previous_month(now)
    summary = ScheduledRunSummary(year=year, month=month)

    conn = get_connection(db_path)
    try:
        teachers = list_teachers(conn)
    finally:
        conn.close()

    for teacher in teachers:
        try:
            await run_calculation_and_notify(
                teacher, year, month, trigger="scheduled", client=client, db_path=db_path
            )
            summary.succeeded.append(teacher.line_user_id)
        except Exception as e:
            logger.error("Scheduled calc failed for %s: %s", teacher.line_user_id, e)
            summary.failed.append(teacher.line_user_id)
            try:
                await deliver(
                    teacher.line_user_id, [text_message(SCHEDULED_FAILURE_TEXT)], client=client
                )
            except DeliveryError:
                logger.exception("Failed to send failure notice to %s", teacher.line_user_id)

    return summary
