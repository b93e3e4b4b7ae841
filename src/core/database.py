"""
SQLite database operations for teacher configuration.
"""

import sqlite3
from pathlib import Path

from core.config import DB_PATH
from models.events import TeacherConfig

TEACHER_COLUMNS = "line_user_id, ical_url, sheet_csv_url, teacher_email"


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """Get a database connection."""
    return sqlite3.connect(db_path or DB_PATH)


def create_tables(conn: sqlite3.Connection) -> None:
    """Create teacher and run-log tables if they don't exist."""
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS teachers (
            line_user_id TEXT PRIMARY KEY,
            ical_url TEXT NOT NULL,
            sheet_csv_url TEXT NOT NULL,
            teacher_email TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS calculation_runs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            run_id TEXT UNIQUE NOT NULL,
            timestamp TEXT NOT NULL,
            trigger TEXT NOT NULL CHECK(trigger IN ('scheduled', 'manual', 'cli')),
            line_user_id TEXT,
            year INTEGER NOT NULL,
            month INTEGER NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('success', 'failed')),
            messages_sent INTEGER,
            students_billed INTEGER,
            ambiguous_events INTEGER,
            unresolved_emails INTEGER,
            error_type TEXT,
            error_message TEXT,
            processing_time_ms INTEGER NOT NULL
        )
    """)

    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_calculation_runs_timestamp ON calculation_runs(timestamp)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_calculation_runs_teacher ON calculation_runs(line_user_id)"
    )

    conn.commit()


def _row_to_teacher(row: tuple) -> TeacherConfig:
    line_user_id, ical_url, sheet_csv_url, teacher_email = row
    return TeacherConfig(
        line_user_id=line_user_id,
        ical_url=ical_url,
        sheet_csv_url=sheet_csv_url,
        teacher_email=teacher_email,
    )


def get_teacher(conn: sqlite3.Connection, line_user_id: str) -> TeacherConfig | None:
    """Look up a registered teacher. None when not registered."""
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT {TEACHER_COLUMNS} FROM teachers WHERE line_user_id = ?",
        (line_user_id,),
    )
    row = cursor.fetchone()
    return _row_to_teacher(row) if row else None


def list_teachers(conn: sqlite3.Connection) -> list[TeacherConfig]:
    """All registered teachers, oldest registration first."""
    cursor = conn.cursor()
    cursor.execute(f"SELECT {TEACHER_COLUMNS} FROM teachers ORDER BY rowid")
    return [_row_to_teacher(row) for row in cursor.fetchall()]


def upsert_teacher(conn: sqlite3.Connection, teacher: TeacherConfig) -> None:
    """Insert or update a teacher keyed by LINE user id."""
    cursor = conn.cursor()
    cursor.execute(
        f"""
        INSERT INTO teachers ({TEACHER_COLUMNS}, updated_at)
        VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
        ON CONFLICT(line_user_id) DO UPDATE SET
            ical_url = excluded.ical_url,
            sheet_csv_url = excluded.sheet_csv_url,
            teacher_email = excluded.teacher_email,
            updated_at = CURRENT_TIMESTAMP
        """,
        (
            teacher.line_user_id,
            teacher.ical_url,
            teacher.sheet_csv_url,
            teacher.teacher_email.strip().lower(),
        ),
    )
    conn.commit()
