"""
LINE Messaging API delivery (reply and push).
"""

import logging

import httpx

from core.config import LINE_ACCESS_TOKEN, LINE_API_BASE, LINE_MAX_MESSAGES_PER_REQUEST
from core.errors import DeliveryError
from core.http_client import create_http_client
from services.notifications import text_message

logger = logging.getLogger(__name__)

SCHEDULED_FAILURE_TEXT = "本月自動排程計算費用失敗，請老師重新手動觸發流程。"
MANUAL_FAILURE_TEXT = "計算費用失敗，請稍後重新送出計算費用指令。"


def chunk_messages(messages: list[dict], size: int = LINE_MAX_MESSAGES_PER_REQUEST) -> list[list[dict]]:
    """Split payloads into request-sized batches, preserving order."""
    return [messages[i:i + size] for i in range(0, len(messages), size)]


async def send_line_message(
    client: httpx.AsyncClient,
    endpoint: str,
    target: str,
    messages: list[dict],
    token: str = LINE_ACCESS_TOKEN,
) -> None:
    """
    POST one reply or push request.

    Raises:
        DeliveryError: LINE returned a non-2xx status or was unreachable
    """
    if endpoint == "reply":
        payload = {"replyToken": target, "messages": messages}
    elif endpoint == "push":
        payload = {"to": target, "messages": messages}
    else:
        raise ValueError(f"Unknown LINE endpoint: {endpoint}")

    try:
        response = await client.post(
            f"{LINE_API_BASE}/{endpoint}",
            json=payload,
            headers={"Authorization": f"Bearer {token}"},
        )
    except httpx.HTTPError as e:
        raise DeliveryError(f"LINE API unreachable ({endpoint}): {e}") from e

    if response.is_error:
        logger.error(
            "LINE API Error (%s): %s %s", endpoint, response.status_code, response.text
        )
        raise DeliveryError(f"LINE API failed: {response.text}", status_code=response.status_code)


async def deliver(
    target: str, messages: list[dict], client: httpx.AsyncClient | None = None
) -> None:
    """Push all payloads to a LINE user, in batches."""
    if client is None:
        async with create_http_client() as own_client:
            return await deliver(target, messages, own_client)

    for batch in chunk_messages(messages):
        await send_line_message(client, "push", target, batch)


async def reply(
    reply_token: str,
    messages: list[dict],
    fallback_target: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> None:
    """
    Answer a webhook event.

    A reply token is single use, so batches after the first are pushed to
    `fallback_target`.
    """
    if client is None:
        async with create_http_client() as own_client:
            return await reply(reply_token, messages, fallback_target, own_client)

    first, *rest = chunk_messages(messages)
    await send_line_message(client, "reply", reply_token, first)

    if rest and not fallback_target:
        logger.warning("Dropping %d message batches: no push target", len(rest))
        return
    for batch in rest:
        await send_line_message(client, "push", fallback_target, batch)


async def reply_text(reply_token: str, text: str, client: httpx.AsyncClient | None = None) -> None:
    await reply(reply_token, [text_message(text)], client=client)
