#!/usr/bin/env python3
"""
Register or update a teacher without going through LINE.

Usage:
    uv run python src/scripts/register_teacher.py <line_user_id> \
        --feed https://calendar.example/basic.ics \
        --roster https://docs.example/roster.csv \
        --teacher-email teacher@example.com
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DEFAULT_CSV_URL, DEFAULT_ICAL_URL, TEACHER_EMAIL_EXCLUDE
from core.database import create_tables, get_connection, upsert_teacher
from models.events import TeacherConfig


def main():
    parser = argparse.ArgumentParser(description="Register a teacher for billing notifications")
    parser.add_argument("line_user_id", help="LINE user id that receives the notifications")
    parser.add_argument("--feed", default=DEFAULT_ICAL_URL, help="iCalendar feed URL")
    parser.add_argument("--roster", default=DEFAULT_CSV_URL, help="Roster CSV URL")
    parser.add_argument(
        "--teacher-email",
        default=TEACHER_EMAIL_EXCLUDE,
        help="Teacher's own calendar email (excluded from attendees)",
    )
    args = parser.parse_args()

    if not (args.feed and args.roster and args.teacher_email):
        parser.error("feed, roster and teacher email are required (or set the DEFAULT_* env vars)")

    teacher = TeacherConfig(
        line_user_id=args.line_user_id,
        ical_url=args.feed,
        sheet_csv_url=args.roster,
        teacher_email=args.teacher_email,
    )

    conn = get_connection()
    try:
        create_tables(conn)
        upsert_teacher(conn, teacher)
    finally:
        conn.close()
    print(f"Registered teacher {teacher.line_user_id} ({teacher.teacher_email})")


if __name__ == "__main__":
    main()
