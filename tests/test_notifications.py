"""Tests for LINE message composition."""

from datetime import datetime, timezone

from models.events import AggregationResult, BillingLine
from services.notifications import (
    compose_messages,
    format_event_time,
    format_number,
)

UTC = timezone.utc


def texts(messages):
    assert all(m["type"] == "text" for m in messages)
    return [m["text"] for m in messages]


def test_billing_message_template():
    result = AggregationResult(
        per_student_hours={"student@x.com": 1.5},
        billing_lines=(BillingLine("student@x.com", "Alice", 1.5, 750.0),),
    )

    assert texts(compose_messages(result, 3, 2025)) == [
        "Alice繳費通知\n上個月的上課總時數為1.5小時，費用是750元\n再麻煩了~謝謝"
    ]


def test_one_message_per_student_in_order():
    result = AggregationResult(
        billing_lines=(
            BillingLine("b@x.com", "Bob", 2.0, 1300.0),
            BillingLine("a@x.com", "Alice", 1.25, 625.5),
        ),
    )

    messages = texts(compose_messages(result, 3, 2025))

    assert [m.split("繳費通知")[0] for m in messages] == ["Bob", "Alice"]
    assert "上課總時數為2小時，費用是1300元" in messages[0]
    assert "上課總時數為1.25小時，費用是625.5元" in messages[1]


def test_ambiguous_and_unresolved_are_consolidated():
    result = AggregationResult(
        ambiguous_events=(
            datetime(2025, 3, 5, 7, 0, tzinfo=UTC),
            datetime(2025, 3, 12, 1, 30, tzinfo=UTC),
        ),
        unresolved_emails=("x@y.com", "z@y.com"),
    )

    ambiguous, unresolved = texts(compose_messages(result, 3, 2025))

    assert ambiguous.startswith("🚨 2025年3月上課紀錄錯誤通知 🚨\n")
    assert "[2025/3/5 下午3:00:00]\n[2025/3/12 上午9:30:00]" in ambiguous
    assert unresolved == (
        "⚠️ 2025年3月資料庫錯誤通知 ⚠️\n以下郵件不存在學生資料表，請手動處理：\nx@y.com\nz@y.com"
    )


def test_no_activity_message_when_everything_empty():
    assert texts(compose_messages(AggregationResult(), 12, 2024)) == [
        "✅ 2024年12月計算完成，本月無上課紀錄。"
    ]


def test_event_time_is_shown_in_utc8():
    # 16:00 UTC on the 5th is midnight on the 6th in Taipei
    assert format_event_time(datetime(2025, 3, 5, 16, 0, tzinfo=UTC)) == "2025/3/6 上午12:00:00"
    assert format_event_time(datetime(2025, 3, 5, 4, 5, 9, tzinfo=UTC)) == "2025/3/5 下午12:05:09"


def test_format_number():
    assert format_number(750.0) == "750"
    assert format_number(1.5) == "1.5"
    assert format_number(442.89) == "442.89"
    assert format_number(0.0) == "0"
