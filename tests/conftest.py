"""
Pytest configuration and shared fixtures.
"""

import json
import sqlite3
import sys
from pathlib import Path

import httpx
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import create_tables  # noqa: E402
from models.events import TeacherConfig  # noqa: E402

TEACHER_EMAIL = "teacher@example.com"
FEED_URL = "https://calendar.example.com/basic.ics"
ROSTER_URL = "https://sheets.example.com/roster.csv"


class FakeHttp:
    """
    httpx mock transport serving documents and recording LINE calls.

    Documents are keyed by URL; LINE requests are recorded as
    (endpoint, json_body) tuples.
    """

    def __init__(self):
        self.documents: dict[str, tuple[int, str]] = {}
        self.unreachable: set[str] = set()
        self.line_requests: list[tuple[str, dict]] = []
        self.line_status = 200

    def serve(self, url: str, text: str, status: int = 200):
        self.documents[url] = (status, text)

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.line.me":
            endpoint = request.url.path.rsplit("/", 1)[-1]
            self.line_requests.append((endpoint, json.loads(request.content)))
            return httpx.Response(self.line_status, json={})

        url = str(request.url)
        if url in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if url in self.documents:
            status, text = self.documents[url]
            return httpx.Response(status, text=text)
        return httpx.Response(404, text="not found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def sent_texts(self) -> list[str]:
        """Text of every message sent over LINE, in order."""
        return [
            message.get("text", "")
            for _, body in self.line_requests
            for message in body["messages"]
        ]


@pytest.fixture
def fake_http():
    return FakeHttp()


def _ics_event(start: str, end: str | None, attendees: list[str], extra: list[str]) -> list[str]:
    lines = ["BEGIN:VEVENT", f"UID:{start}-{len(attendees)}@example.com", f"DTSTART:{start}"]
    if end:
        lines.append(f"DTEND:{end}")
    lines.extend(extra)
    for email in attendees:
        lines.append(f"ATTENDEE;CN={email.split('@')[0]}:mailto:{email}")
    lines.append("END:VEVENT")
    return lines


@pytest.fixture
def make_ics():
    """
    Build an iCalendar document.

    Each event is a dict with start, end (iCalendar date-time strings,
    end may be None), attendees and optional extra property lines.
    """

    def build(events: list[dict]) -> str:
        lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//tutor-billing//tests//EN"]
        for event in events:
            lines.extend(
                _ics_event(
                    event["start"],
                    event.get("end"),
                    event.get("attendees", []),
                    event.get("extra", []),
                )
            )
        lines.append("END:VCALENDAR")
        return "\r\n".join(lines) + "\r\n"

    return build


@pytest.fixture
def roster_csv():
    """Roster sheet with Alice and Bob."""
    return (
        "姓名,Email,每小時費用\n"
        "Alice,student@x.com,500\n"
        "Bob, BOB@x.com ,650\n"
    )


@pytest.fixture
def db_path(tmp_path):
    """Initialised SQLite database in a temp directory."""
    path = tmp_path / "billing.db"
    conn = sqlite3.connect(path)
    create_tables(conn)
    conn.close()
    return path


@pytest.fixture
def teacher():
    return TeacherConfig(
        line_user_id="U-teacher",
        ical_url=FEED_URL,
        sheet_csv_url=ROSTER_URL,
        teacher_email=TEACHER_EMAIL,
    )
