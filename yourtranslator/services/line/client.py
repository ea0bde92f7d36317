"""LINE Messaging API reply client.

Replies are sent with the event's reply token. Transient failures
(transport errors, 5xx) are retried with exponential backoff; a 4xx means
the request itself is wrong (expired token, bad payload) and is not retried.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

import httpx
import structlog

from yourtranslator.core.exceptions import LineDeliveryError
from yourtranslator.schemas.messages import OutboundMessage

logger = structlog.get_logger(__name__)

# Platform limits
MAX_LABEL_CHARS = 20
MAX_PAYLOAD_CHARS = 300
MAX_TEXT_CHARS = 5000
MAX_QUICK_REPLY_ITEMS = 13
MAX_MESSAGES_PER_REPLY = 5

REPLY_PATH = "/v2/bot/message/reply"


def render_message(message: OutboundMessage) -> dict[str, Any]:
    """Render one OutboundMessage as a LINE text message object."""
    body: dict[str, Any] = {"type": "text", "text": message.text[:MAX_TEXT_CHARS]}
    if message.options:
        body["quickReply"] = {
            "items": [
                {
                    "type": "action",
                    "action": {
                        "type": "message",
                        "label": option.label[:MAX_LABEL_CHARS],
                        "text": option.payload[:MAX_PAYLOAD_CHARS],
                    },
                }
                for option in message.options[:MAX_QUICK_REPLY_ITEMS]
            ]
        }
    return body


class LineMessagingClient:
    """Sends reply messages through the LINE Messaging API."""

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.line.me",
        http_client: httpx.AsyncClient | None = None,
        max_attempts: int = 3,
        backoff_seconds: Sequence[float] = (1, 2),
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=10.0)
        self._max_attempts = max_attempts
        self._backoff = list(backoff_seconds)

    async def reply(self, reply_token: str, messages: Sequence[OutboundMessage]) -> None:
        """Send up to five messages in one reply call."""
        if not messages:
            return
        if len(messages) > MAX_MESSAGES_PER_REPLY:
            logger.warning(
                "line_reply_messages_truncated",
                requested=len(messages),
                sent=MAX_MESSAGES_PER_REPLY,
            )

        payload = {
            "replyToken": reply_token,
            "messages": [
                render_message(m) for m in messages[:MAX_MESSAGES_PER_REPLY]
            ],
        }
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }
        url = f"{self._base_url}{REPLY_PATH}"

        last_error = ""
        for attempt in range(self._max_attempts):
            try:
                response = await self._http.post(url, json=payload, headers=headers)
            except httpx.HTTPError as e:
                last_error = str(e)
                logger.warning(
                    "line_reply_attempt_failed", attempt=attempt + 1, error=last_error
                )
            else:
                if response.status_code < 400:
                    logger.debug(
                        "line_reply_sent",
                        status_code=response.status_code,
                        attempt=attempt + 1,
                        message_count=len(payload["messages"]),
                    )
                    return
                last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                if response.status_code < 500:
                    logger.error(
                        "line_reply_rejected",
                        status_code=response.status_code,
                        body=response.text[:200],
                    )
                    raise LineDeliveryError(f"LINE rejected reply: {last_error}")
                logger.warning(
                    "line_reply_attempt_failed", attempt=attempt + 1, error=last_error
                )

            if attempt < self._max_attempts - 1:
                await asyncio.sleep(self._backoff[min(attempt, len(self._backoff) - 1)])

        logger.error("line_reply_all_retries_failed", attempts=self._max_attempts)
        raise LineDeliveryError(f"LINE reply failed after retries: {last_error}")

    async def aclose(self) -> None:
        await self._http.aclose()
