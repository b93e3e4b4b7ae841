"""
Calendar feed fetching and parsing (iCalendar).
"""

import logging
from collections.abc import Iterator
from datetime import date, datetime, timedelta

import httpx
from icalendar import Calendar

from core.errors import ParseError
from core.http_client import fetch_text
from core.period import BILLING_TZ
from models.events import CalendarEvent

logger = logging.getLogger(__name__)

MAILTO_PREFIX = "mailto:"


async def fetch_calendar_events(client: httpx.AsyncClient, ical_url: str) -> Iterator[CalendarEvent]:
    """
    Fetch the teacher's calendar feed and parse it.

    Raises:
        NetworkError: feed could not be downloaded
        ParseError: feed is not an iCalendar document
    """
    ical_text = await fetch_text(client, ical_url)
    return parse_calendar(ical_text)


def parse_calendar(ical_text: str) -> Iterator[CalendarEvent]:
    """
    Parse an iCalendar document into events.

    The document itself is parsed eagerly so syntax errors surface here; the
    returned iterator then yields one CalendarEvent per usable VEVENT.
    Events without an end or with unreadable dates are skipped.
    """
    try:
        calendar = Calendar.from_ical(ical_text)
    except (ValueError, IndexError, KeyError) as e:
        raise ParseError(f"Calendar feed is not valid iCalendar: {e}") from e

    if calendar.name != "VCALENDAR":
        raise ParseError(f"Expected a VCALENDAR document, got {calendar.name!r}")

    return _iter_events(calendar)


def _iter_events(calendar: Calendar) -> Iterator[CalendarEvent]:
    for component in calendar.walk("VEVENT"):
        event = parse_event(component)
        if event is None:
            logger.debug("Skipping unusable event %s", component.get("UID", "<no uid>"))
            continue
        yield event


def parse_event(component) -> CalendarEvent | None:
    """Parse a VEVENT component, or None when it lacks a start or end."""
    try:
        start = _as_instant(component.decoded("DTSTART"))
        if "DTEND" in component:
            end = _as_instant(component.decoded("DTEND"))
        elif "DURATION" in component:
            duration = component.decoded("DURATION")
            if not isinstance(duration, timedelta):
                return None
            end = start + duration
        else:
            return None
    except (KeyError, ValueError, TypeError, AttributeError):
        return None

    return CalendarEvent(
        start=start,
        end=end,
        attendee_emails=tuple(parse_attendees(component)),
    )


def parse_attendees(component) -> list[str]:
    """Attendee emails with the mailto: scheme removed, lower-cased."""
    raw = component.get("ATTENDEE")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raw = [raw]

    emails = []
    for value in raw:
        email = normalize_email(str(value))
        if email:
            emails.append(email)
    return emails


def normalize_email(value: str) -> str:
    email = value.strip()
    if email.lower().startswith(MAILTO_PREFIX):
        email = email[len(MAILTO_PREFIX):]
    return email.strip().lower()


def _as_instant(value) -> datetime:
    """
    Convert a decoded DTSTART/DTEND to an aware datetime.

    Floating times and all-day dates are read in the UTC+8 civil calendar.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=BILLING_TZ)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=BILLING_TZ)
    raise TypeError(f"Unsupported date value: {value!r}")
