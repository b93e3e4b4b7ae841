"""
Data models for calendar events, roster entries and billing results.

Everything here is a frozen dataclass built by an explicit parse step, so the
raw iCalendar components and CSV rows never travel past the parsers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union


@dataclass(frozen=True)
class BillingWindow:
    """Inclusive billing period, both ends as aware datetimes."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Window start {self.start} is after end {self.end}")

    def contains(self, start: datetime, end: datetime) -> bool:
        """True when [start, end] lies fully inside the window."""
        return start >= self.start and end <= self.end


@dataclass(frozen=True)
class CalendarEvent:
    """Parsed calendar event."""
    start: datetime
    end: datetime
    attendee_emails: tuple[str, ...] = ()


@dataclass(frozen=True)
class Billable:
    """Event attended by exactly one student besides the teacher."""
    student_email: str
    duration_hours: float


@dataclass(frozen=True)
class Ambiguous:
    """Event with zero or several non-teacher attendees; needs manual review."""
    event_start: datetime


Classification = Union[Billable, Ambiguous]


@dataclass(frozen=True)
class RosterEntry:
    """Student row from the roster sheet."""
    display_name: str
    hourly_fee: float


@dataclass(frozen=True)
class BillingLine:
    """Rounded totals shown to one student."""
    student_email: str
    display_name: str
    hours: float
    fee: float


@dataclass(frozen=True)
class AggregationResult:
    """Outcome of one billing run, consumed by the notification composer."""
    per_student_hours: dict[str, float] = field(default_factory=dict)
    billing_lines: tuple[BillingLine, ...] = ()
    unresolved_emails: tuple[str, ...] = ()
    ambiguous_events: tuple[datetime, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.billing_lines or self.unresolved_emails or self.ambiguous_events)


@dataclass(frozen=True)
class TeacherConfig:
    """Registered teacher and the sources used for their billing."""
    line_user_id: str
    ical_url: str
    sheet_csv_url: str
    teacher_email: str
