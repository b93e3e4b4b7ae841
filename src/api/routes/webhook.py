"""LINE webhook endpoint: registration and manual calculation commands."""

import logging
import re
import sqlite3
from pathlib import Path
from urllib.parse import parse_qs

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from api.dependencies import get_db_path, get_http_client
from api.models.responses import LineEvent, LineWebhookRequest
from core.config import DEFAULT_CSV_URL, DEFAULT_ICAL_URL, TEACHER_EMAIL_EXCLUDE
from core.database import get_connection, get_teacher, upsert_teacher
from models.events import TeacherConfig
from services.line import reply, reply_text
from services.runner import run_manual_calculation

logger = logging.getLogger(__name__)

router = APIRouter()

REGISTER_COMMAND = "加入老師"
CALCULATE_PATTERN = re.compile(r"計算(\d+)月")

REGISTER_CONFIRM_ALT_TEXT = "請點擊「確認」按鈕完成老師註冊"
REGISTER_CONFIRM_TEXT = "確認將您的 LINE ID 設定為本系統的老師嗎？ (這將啟用自動排程通知)"
NOT_REGISTERED_TEXT = "請先輸入「加入老師」完成註冊，才能使用計算功能。"
INVALID_MONTH_TEXT = "月份請輸入 1 到 12，例如「計算3月」。"
REGISTER_SUCCESS_TEXT = "恭喜！老師註冊完成。您已啟用自動排程和手動計算功能。"
REGISTER_FAILED_TEXT = "註冊失敗，請檢查伺服器紀錄。"
REGISTER_CANCELLED_TEXT = "取消註冊。若需啟用，請再次輸入「加入老師」。"
USAGE_TEXT = "請輸入「加入老師」進行註冊，或輸入「計算<月份數字>月」來手動計算費用。"


def register_confirm_message() -> dict:
    """Confirm template asking the user to become the teacher."""
    return {
        "type": "template",
        "altText": REGISTER_CONFIRM_ALT_TEXT,
        "template": {
            "type": "confirm",
            "text": REGISTER_CONFIRM_TEXT,
            "actions": [
                {"type": "postback", "label": "確認", "data": "action=register&confirm=yes"},
                {"type": "postback", "label": "取消", "data": "action=register&confirm=no"},
            ],
        },
    }


def parse_postback(data: str) -> dict[str, str]:
    """Postback data 'a=1&b=2' as a flat dict."""
    return {key: values[0] for key, values in parse_qs(data).items() if values}


@router.post("/webhook", response_class=PlainTextResponse)
async def line_webhook(
    body: LineWebhookRequest,
    client: httpx.AsyncClient = Depends(get_http_client),
    db_path: Path = Depends(get_db_path),
):
    """
    Handle a LINE webhook delivery.

    Only the first event of the batch is processed.
    """
    if not body.events:
        return PlainTextResponse("No events in request", status_code=400)

    event = body.events[0]

    if event.type == "message" and event.message and event.message.type == "text":
        return await handle_text(event, client, db_path)

    if event.type == "postback" and event.postback:
        postback = parse_postback(event.postback.data)
        if postback.get("action") == "register":
            return await handle_register(event, postback.get("confirm") == "yes", client, db_path)

    return PlainTextResponse("Event not handled")


async def handle_text(event: LineEvent, client: httpx.AsyncClient, db_path: Path):
    text = (event.message.text or "").strip()
    user_id = event.source.user_id if event.source else None

    if text == REGISTER_COMMAND:
        await reply(event.reply_token, [register_confirm_message()], client=client)
        return PlainTextResponse("Registered prompt sent")

    match = CALCULATE_PATTERN.search(text)
    if match:
        conn = get_connection(db_path)
        try:
            teacher = get_teacher(conn, user_id) if user_id else None
        finally:
            conn.close()

        if teacher is None:
            await reply_text(event.reply_token, NOT_REGISTERED_TEXT, client=client)
            return PlainTextResponse("Not registered")

        month = int(match.group(1))
        if not 1 <= month <= 12:
            await reply_text(event.reply_token, INVALID_MONTH_TEXT, client=client)
            return PlainTextResponse("Invalid month")

        succeeded = await run_manual_calculation(
            teacher, month, event.reply_token, client=client, db_path=db_path
        )
        if not succeeded:
            return PlainTextResponse("Manual calculation failed")
        return PlainTextResponse("Manual calculation triggered")

    await reply_text(event.reply_token, USAGE_TEXT, client=client)
    return PlainTextResponse("Default response sent")


async def handle_register(
    event: LineEvent, confirmed: bool, client: httpx.AsyncClient, db_path: Path
):
    if not confirmed:
        await reply_text(event.reply_token, REGISTER_CANCELLED_TEXT, client=client)
        return PlainTextResponse("Postback handled")

    user_id = event.source.user_id if event.source else None
    if not user_id:
        return PlainTextResponse("No user id in postback", status_code=400)

    teacher = TeacherConfig(
        line_user_id=user_id,
        ical_url=DEFAULT_ICAL_URL,
        sheet_csv_url=DEFAULT_CSV_URL,
        teacher_email=TEACHER_EMAIL_EXCLUDE,
    )
    try:
        conn = get_connection(db_path)
        try:
            upsert_teacher(conn, teacher)
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("DB Register Error: %s", e)
        await reply_text(event.reply_token, REGISTER_FAILED_TEXT, client=client)
        return PlainTextResponse("DB error", status_code=500)

    await reply_text(event.reply_token, REGISTER_SUCCESS_TEXT, client=client)
    return PlainTextResponse("Postback handled")
