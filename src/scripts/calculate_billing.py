#!/usr/bin/env python3
"""
Calculate monthly tutoring fees and print (or push) the LINE messages.

Usage:
    uv run python src/scripts/calculate_billing.py --month 2025-11
    uv run python src/scripts/calculate_billing.py --teacher U1234 --push
"""

import argparse
import asyncio
import sys
import traceback
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DEFAULT_CSV_URL, DEFAULT_ICAL_URL, TEACHER_EMAIL_EXCLUDE
from core.database import get_connection, get_teacher
from core.errors import BillingError, InvalidArgument
from core.period import previous_month
from models.events import TeacherConfig
from services.billing import compute
from services.runner import run_calculation_and_notify


def parse_month(month_str: str | None) -> tuple[int, int]:
    """
    Parse YYYY-MM into (year, month).

    Defaults to the previous month in UTC+8.
    """
    if not month_str:
        return previous_month()
    try:
        year, month = map(int, month_str.split("-"))
    except ValueError:
        raise InvalidArgument(f"Expected YYYY-MM, got {month_str!r}") from None
    if not 1 <= month <= 12:
        raise InvalidArgument(f"Month must be between 1 and 12, got {month}")
    return year, month


async def main(args: argparse.Namespace) -> int:
    year, month = parse_month(args.month)

    if args.teacher:
        conn = get_connection()
        try:
            teacher = get_teacher(conn, args.teacher)
        finally:
            conn.close()
        if teacher is None:
            print(f"Teacher {args.teacher} is not registered")
            return 1
    else:
        teacher = TeacherConfig(
            line_user_id="",
            ical_url=args.feed,
            sheet_csv_url=args.roster,
            teacher_email=args.teacher_email,
        )

    print(f"Calculating billing for {year}/{month}")

    if args.push:
        if not teacher.line_user_id:
            print("--push needs --teacher")
            return 1
        result = await run_calculation_and_notify(teacher, year, month, trigger="cli")
        print(f"Pushed billing for {len(result.billing_lines)} student(s) to {teacher.line_user_id}")
        return 0

    messages = await compute(
        teacher.ical_url, teacher.sheet_csv_url, teacher.teacher_email, year, month
    )
    for message in messages:
        print("-" * 40)
        print(message["text"])
    print("-" * 40)
    print(f"{len(messages)} message(s)")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Calculate monthly tutoring billing")
    parser.add_argument("--month", help="Target month (YYYY-MM). Defaults to previous month.")
    parser.add_argument("--teacher", help="Registered LINE user id to load sources from")
    parser.add_argument("--feed", default=DEFAULT_ICAL_URL, help="iCalendar feed URL")
    parser.add_argument("--roster", default=DEFAULT_CSV_URL, help="Roster CSV URL")
    parser.add_argument("--teacher-email", default=TEACHER_EMAIL_EXCLUDE)
    parser.add_argument("--push", action="store_true", help="Push messages over LINE")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(main(args)))
    except BillingError as e:
        print(f"\nError: {e}")
        traceback.print_exc()
        sys.exit(1)
