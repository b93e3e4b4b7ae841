"""SQLite logging of billing calculation runs."""

import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from core.config import DB_PATH


@dataclass
class RunLog:
    """Captured outcome of one billing calculation."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    trigger: str = "manual"  # "scheduled", "manual" or "cli"
    line_user_id: str | None = None
    year: int = 0
    month: int = 0
    status: str = "failed"
    messages_sent: int | None = None
    students_billed: int | None = None
    ambiguous_events: int | None = None
    unresolved_emails: int | None = None
    error_type: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0


def log_run(log: RunLog, db_path: Path | None = None) -> None:
    """Write run log to SQLite database."""
    conn = sqlite3.connect(db_path or DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            INSERT INTO calculation_runs (
                run_id, timestamp, trigger, line_user_id, year, month,
                status, messages_sent, students_billed, ambiguous_events,
                unresolved_emails, error_type, error_message, processing_time_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                log.run_id,
                log.timestamp,
                log.trigger,
                log.line_user_id,
                log.year,
                log.month,
                log.status,
                log.messages_sent,
                log.students_billed,
                log.ambiguous_events,
                log.unresolved_emails,
                log.error_type,
                log.error_message,
                log.processing_time_ms,
            ),
        )
        conn.commit()
    finally:
        conn.close()
