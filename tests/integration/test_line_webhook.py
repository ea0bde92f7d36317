"""Integration tests for the LINE webhook endpoint and event dispatcher.

Tests cover:
  - Signature check: missing / wrong → 401, valid → 200
  - Malformed body → 400
  - Text events routed and replied; non-text and anonymous events ignored
  - One failing event does not affect the others
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from yourtranslator.api.deps import get_channel_secret, get_event_dispatcher
from yourtranslator.core.security import compute_line_signature
from yourtranslator.main import app
from yourtranslator.schemas.line import LineEvent
from yourtranslator.schemas.messages import OutboundMessage
from yourtranslator.services.line.dispatcher import EventDispatcher

_SECRET = "webhook-test-secret"


def _text_event(user_id: str | None, text: str, reply_token: str = "rt") -> dict:
    event = {
        "type": "message",
        "replyToken": reply_token,
        "message": {"id": "1", "type": "text", "text": text},
    }
    event["source"] = {"type": "user", "userId": user_id} if user_id else {"type": "user"}
    return event


def _make_dispatcher() -> tuple[EventDispatcher, MagicMock, MagicMock]:
    router = MagicMock()
    router.handle = AsyncMock(side_effect=lambda user_id, text: [OutboundMessage(text=f"re:{text}")])
    line = MagicMock()
    line.reply = AsyncMock()
    return EventDispatcher(router=router, line=line), router, line


@pytest.fixture
def dispatcher_parts():
    dispatcher, router, line = _make_dispatcher()
    app.dependency_overrides[get_channel_secret] = lambda: _SECRET
    app.dependency_overrides[get_event_dispatcher] = lambda: dispatcher
    yield router, line
    app.dependency_overrides.clear()


async def _post(body: bytes, signature: str | None) -> httpx.Response:
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["X-Line-Signature"] = signature
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/v1/line/webhook", content=body, headers=headers)


class TestWebhookEndpoint:
    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, dispatcher_parts) -> None:
        router, _ = dispatcher_parts
        response = await _post(b'{"events": []}', None)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"
        router.handle.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wrong_signature_rejected(self, dispatcher_parts) -> None:
        body = json.dumps({"events": [_text_event("U1", "こんにちは")]}).encode()
        response = await _post(body, compute_line_signature("other-secret", body))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_empty_event_list_ok(self, dispatcher_parts) -> None:
        body = b'{"destination": "Ubot", "events": []}'
        response = await _post(body, compute_line_signature(_SECRET, body))

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_malformed_body_rejected(self, dispatcher_parts) -> None:
        body = b"not json"
        response = await _post(body, compute_line_signature(_SECRET, body))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"

    @pytest.mark.asyncio
    async def test_text_event_routed_and_replied(self, dispatcher_parts) -> None:
        router, line = dispatcher_parts
        body = json.dumps(
            {"events": [_text_event("U1", "  こんにちは ", reply_token="rt-1")]},
            ensure_ascii=False,
        ).encode()
        response = await _post(body, compute_line_signature(_SECRET, body))

        assert response.status_code == 200
        router.handle.assert_awaited_once_with("U1", "  こんにちは ")
        line.reply.assert_awaited_once_with("rt-1", [OutboundMessage(text="re:  こんにちは ")])

    @pytest.mark.asyncio
    async def test_health(self) -> None:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/v1/health")
        assert response.json() == {"status": "ok"}


class TestEventDispatcher:
    @pytest.mark.asyncio
    async def test_ignores_non_text_and_anonymous_events(self) -> None:
        dispatcher, router, line = _make_dispatcher()
        events = [
            LineEvent.model_validate({"type": "follow", "replyToken": "a", "source": {"userId": "U1"}}),
            LineEvent.model_validate(
                {
                    "type": "message",
                    "replyToken": "b",
                    "source": {"userId": "U1"},
                    "message": {"id": "2", "type": "sticker"},
                }
            ),
            LineEvent.model_validate(_text_event(None, "hello")),
        ]

        handled = await dispatcher.dispatch(events)

        assert handled == 0
        router.handle.assert_not_awaited()
        line.reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_event_isolated(self) -> None:
        dispatcher, router, line = _make_dispatcher()
        line.reply = AsyncMock(side_effect=[RuntimeError("LINE down"), None])
        events = [
            LineEvent.model_validate(_text_event("U1", "one", reply_token="r1")),
            LineEvent.model_validate(_text_event("U2", "two", reply_token="r2")),
        ]

        handled = await dispatcher.dispatch(events)

        assert handled == 2
        assert router.handle.await_count == 2
        assert line.reply.await_count == 2
