"""
Attendee resolution: decide which student, if any, an event is billed to.
"""

from collections.abc import Iterable, Iterator

from models.events import (
    Ambiguous,
    Billable,
    BillingWindow,
    CalendarEvent,
    Classification,
)


def duration_hours(event: CalendarEvent) -> float:
    """Event length in fractional hours. Zero or negative values pass through."""
    return (event.end - event.start).total_seconds() / 3600


def student_attendees(event: CalendarEvent, teacher_email: str) -> list[str]:
    """Attendees other than the teacher."""
    teacher = teacher_email.strip().lower()
    return [email for email in event.attendee_emails if email.lower() != teacher]


def classify_event(
    event: CalendarEvent, window: BillingWindow, teacher_email: str
) -> Classification | None:
    """
    Classify one event.

    Returns None for events not fully inside the window. Partial overlap is
    dropped, not clipped. Co-taught or unassigned sessions are never guessed
    at: anything but exactly one student is Ambiguous.
    """
    if not window.contains(event.start, event.end):
        return None

    students = student_attendees(event, teacher_email)
    if len(students) != 1:
        return Ambiguous(event_start=event.start)

    return Billable(student_email=students[0], duration_hours=duration_hours(event))


def classify_events(
    events: Iterable[CalendarEvent], window: BillingWindow, teacher_email: str
) -> Iterator[Classification]:
    """Classify events in encounter order, skipping those outside the window."""
    for event in events:
        result = classify_event(event, window, teacher_email)
        if result is not None:
            yield result
