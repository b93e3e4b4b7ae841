"""
Billing Calculation Service

Turns a teacher's calendar feed and student roster into per-student totals for
one month. Events attended by exactly one student are billed at that
student's hourly fee; everything else is routed to the teacher for manual
review, either as an ambiguous event or as an email missing from the roster.
"""

import asyncio
import logging
import math
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

import httpx

from core.classification import classify_events
from core.http_client import create_http_client
from core.period import month_window
from models.events import (
    AggregationResult,
    Ambiguous,
    Billable,
    BillingLine,
    Classification,
    RosterEntry,
)
from services.calendar import fetch_calendar_events
from services.notifications import compose_messages
from services.roster import fetch_roster

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


# =============================================================================
# ROUNDING
# =============================================================================


def round2(value: float) -> float:
    """
    Round half away from zero to two decimals.

    Works on the shortest decimal repr of the float, so 1.005 rounds to 1.01
    as written rather than to the binary value just below it.
    """
    quantized = Decimal(repr(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    return float(quantized)


def bill_line(email: str, total_hours: float, entry: RosterEntry) -> BillingLine:
    """
    Billing line for one student.

    Hours and fee are rounded separately: the fee is the rounded hours times
    the hourly fee, rounded again, so both numbers match what the student sees.
    """
    hours = round2(total_hours)
    fee = round2(hours * entry.hourly_fee)
    return BillingLine(
        student_email=email,
        display_name=entry.display_name,
        hours=hours,
        fee=fee,
    )


# =============================================================================
# AGGREGATION
# =============================================================================


def aggregate(
    classifications: Iterable[Classification], roster: dict[str, RosterEntry]
) -> AggregationResult:
    """
    Sum billable hours per student and join against the roster.

    Durations are totalled with math.fsum, so the order of events never
    changes a student's hours.
    """
    durations: dict[str, list[float]] = {}
    ambiguous_events = []

    for item in classifications:
        if isinstance(item, Billable):
            durations.setdefault(item.student_email, []).append(item.duration_hours)
        elif isinstance(item, Ambiguous):
            ambiguous_events.append(item.event_start)
        else:
            raise TypeError(f"Unexpected classification: {item!r}")

    student_hours = {email: math.fsum(hours) for email, hours in durations.items()}

    billing_lines = []
    unresolved_emails = []
    for email, hours in student_hours.items():
        entry = roster.get(email)
        if entry is None:
            unresolved_emails.append(email)
            continue
        billing_lines.append(bill_line(email, hours, entry))

    return AggregationResult(
        per_student_hours=student_hours,
        billing_lines=tuple(billing_lines),
        unresolved_emails=tuple(unresolved_emails),
        ambiguous_events=tuple(ambiguous_events),
    )


# =============================================================================
# PIPELINE
# =============================================================================


async def calculate(
    feed_url: str,
    roster_url: str,
    teacher_email: str,
    year: int,
    month: int,
    client: httpx.AsyncClient | None = None,
) -> AggregationResult:
    """
    Fetch both documents and aggregate one month.

    The feed and roster downloads run concurrently; either failing aborts the
    whole calculation and cancels the other download.

    Raises:
        InvalidArgument: month/year out of range
        NetworkError: feed or roster could not be fetched
        ParseError: feed or roster is unreadable
    """
    window = month_window(year, month)

    if client is None:
        async with create_http_client() as own_client:
            return await calculate(feed_url, roster_url, teacher_email, year, month, own_client)

    feed_task = asyncio.ensure_future(fetch_calendar_events(client, feed_url))
    roster_task = asyncio.ensure_future(fetch_roster(client, roster_url))
    try:
        events, roster = await asyncio.gather(feed_task, roster_task)
    except BaseException:
        # The surviving download must not outlive the caller's client
        for task in (feed_task, roster_task):
            task.cancel()
        await asyncio.gather(feed_task, roster_task, return_exceptions=True)
        raise

    result = aggregate(classify_events(events, window, teacher_email), roster)
    logger.info(
        "Billing %d/%d: %d billed, %d ambiguous, %d unresolved",
        month,
        year,
        len(result.billing_lines),
        len(result.ambiguous_events),
        len(result.unresolved_emails),
    )
    return result


async def compute(
    feed_url: str,
    roster_url: str,
    teacher_email: str,
    year: int,
    month: int,
    client: httpx.AsyncClient | None = None,
) -> list[dict]:
    """Run the billing calculation and return the LINE message payloads."""
    result = await calculate(feed_url, roster_url, teacher_email, year, month, client)
    return compose_messages(result, month, year)
