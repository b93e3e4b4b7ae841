"""
LINE message composition for billing results.
"""

from datetime import datetime

from core.period import to_billing_tz
from models.events import AggregationResult, BillingLine

BILLING_TEMPLATE = "{name}繳費通知\n上個月的上課總時數為{hours}小時，費用是{fee}元\n再麻煩了~謝謝"


def text_message(text: str) -> dict:
    """LINE text message object."""
    return {"type": "text", "text": text}


def format_month(month: int, year: int) -> str:
    return f"{year}年{month}月"


def format_number(value: float) -> str:
    """Render without a trailing '.0' (750.0 -> '750', 1.5 -> '1.5')."""
    if value == int(value):
        return str(int(value))
    return repr(value)


def format_event_time(instant: datetime) -> str:
    """
    Format an event start in UTC+8 for manual review.

    Example: '2025/3/5 下午3:00:00' (zh-TW 12-hour clock).
    """
    local = to_billing_tz(instant)
    period = "上午" if local.hour < 12 else "下午"
    hour = local.hour % 12 or 12
    return f"{local.year}/{local.month}/{local.day} {period}{hour}:{local.minute:02d}:{local.second:02d}"


def format_billing_message(line: BillingLine) -> str:
    return BILLING_TEMPLATE.format(
        name=line.display_name,
        hours=format_number(line.hours),
        fee=format_number(line.fee),
    )


def format_ambiguous_message(events: tuple[datetime, ...], month_str: str) -> str:
    listing = "\n".join(f"[{format_event_time(start)}]" for start in events)
    return (
        f"🚨 {month_str}上課紀錄錯誤通知 🚨\n"
        f"以下課程有兩位以上非教師參與者，無法正確計算費用：\n"
        f"{listing}\n\n"
        f"處理方式：請老師重新確認會議時間後，重新送出計算費用指令。"
    )


def format_unresolved_message(emails: tuple[str, ...], month_str: str) -> str:
    listing = "\n".join(emails)
    return f"⚠️ {month_str}資料庫錯誤通知 ⚠️\n以下郵件不存在學生資料表，請手動處理：\n{listing}"


def format_no_activity_message(month_str: str) -> str:
    return f"✅ {month_str}計算完成，本月無上課紀錄。"


def compose_messages(result: AggregationResult, month: int, year: int) -> list[dict]:
    """
    Build the ordered message payloads for one billing run.

    One message per billed student, then one consolidated message for
    ambiguous events and one for unknown emails. Always returns at least one
    message.
    """
    month_str = format_month(month, year)
    messages = [text_message(format_billing_message(line)) for line in result.billing_lines]

    if result.ambiguous_events:
        messages.append(text_message(format_ambiguous_message(result.ambiguous_events, month_str)))

    if result.unresolved_emails:
        messages.append(text_message(format_unresolved_message(result.unresolved_emails, month_str)))

    if not messages:
        messages.append(text_message(format_no_activity_message(month_str)))

    return messages
