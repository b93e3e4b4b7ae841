"""Tests for billing runs: delivery, failure notices and run logging."""

import asyncio
import sqlite3
from datetime import datetime

import pytest

from conftest import FEED_URL, ROSTER_URL, TEACHER_EMAIL
from core.database import get_connection, upsert_teacher
from core.errors import NetworkError
from core.period import BILLING_TZ
from models.events import TeacherConfig
from services.line import MANUAL_FAILURE_TEXT, SCHEDULED_FAILURE_TEXT
from services.runner import run_calculation_and_notify, run_manual_calculation, run_scheduled

APRIL_10 = datetime(2025, 4, 10, 9, 0, tzinfo=BILLING_TZ)


@pytest.fixture
def march_feed(fake_http, make_ics, roster_csv):
    fake_http.serve(FEED_URL, make_ics([
        {"start": "20250305T070000Z", "end": "20250305T083000Z",
         "attendees": [TEACHER_EMAIL, "student@x.com"]},
    ]))
    fake_http.serve(ROSTER_URL, roster_csv)


def run_rows(db_path):
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(
            "SELECT trigger, line_user_id, status, messages_sent, students_billed, error_type "
            "FROM calculation_runs ORDER BY id"
        ).fetchall()
    finally:
        conn.close()


def test_run_pushes_messages_and_logs(fake_http, march_feed, teacher, db_path):
    async def run():
        async with fake_http.client() as client:
            return await run_calculation_and_notify(
                teacher, 2025, 3, trigger="cli", client=client, db_path=db_path
            )

    result = asyncio.run(run())

    assert len(result.billing_lines) == 1
    endpoint, body = fake_http.line_requests[0]
    assert endpoint == "push" and body["to"] == "U-teacher"
    assert "費用是750元" in body["messages"][0]["text"]
    assert run_rows(db_path) == [("cli", "U-teacher", "success", 1, 1, None)]


def test_failed_run_sends_nothing_and_logs_failure(fake_http, teacher, db_path):
    fake_http.unreachable.add(FEED_URL)

    async def run():
        async with fake_http.client() as client:
            await run_calculation_and_notify(teacher, 2025, 3, client=client, db_path=db_path)

    with pytest.raises(NetworkError):
        asyncio.run(run())

    assert fake_http.line_requests == []
    assert run_rows(db_path) == [("manual", "U-teacher", "failed", None, None, "NetworkError")]


def test_manual_failure_replies_retry_notice(fake_http, teacher, db_path):
    fake_http.unreachable.add(ROSTER_URL)

    async def run():
        async with fake_http.client() as client:
            return await run_manual_calculation(
                teacher, 3, "token-1", now=APRIL_10, client=client, db_path=db_path
            )

    assert asyncio.run(run()) is False
    assert fake_http.line_requests == [
        ("reply", {"replyToken": "token-1", "messages": [{"type": "text", "text": MANUAL_FAILURE_TEXT}]})
    ]


def test_manual_success_replies_billing(fake_http, march_feed, teacher, db_path):
    async def run():
        async with fake_http.client() as client:
            return await run_manual_calculation(
                teacher, 3, "token-1", now=APRIL_10, client=client, db_path=db_path
            )

    assert asyncio.run(run()) is True
    endpoint, body = fake_http.line_requests[0]
    assert endpoint == "reply"
    assert body["messages"][0]["text"].startswith("Alice繳費通知")


def test_scheduled_run_isolates_teacher_failures(fake_http, march_feed, teacher, db_path):
    broken = TeacherConfig(
        line_user_id="U-broken",
        ical_url="https://calendar.example.com/missing.ics",
        sheet_csv_url=ROSTER_URL,
        teacher_email=TEACHER_EMAIL,
    )
    conn = get_connection(db_path)
    upsert_teacher(conn, broken)
    upsert_teacher(conn, teacher)
    conn.close()

    async def run():
        async with fake_http.client() as client:
            return await run_scheduled(now=APRIL_10, client=client, db_path=db_path)

    summary = asyncio.run(run())

    assert (summary.year, summary.month) == (2025, 3)
    assert summary.failed == ["U-broken"]
    assert summary.succeeded == ["U-teacher"]
    pushes = [(body["to"], body["messages"][0]["text"]) for _, body in fake_http.line_requests]
    assert pushes[0] == ("U-broken", SCHEDULED_FAILURE_TEXT)
    assert pushes[1][0] == "U-teacher"
    assert pushes[1][1].startswith("Alice繳費通知")


def test_scheduled_run_without_teachers(fake_http, db_path):
    async def run():
        async with fake_http.client() as client:
            return await run_scheduled(now=APRIL_10, client=client, db_path=db_path)

    summary = asyncio.run(run())

    assert summary.teacher_count == 0
    assert fake_http.line_requests == []
