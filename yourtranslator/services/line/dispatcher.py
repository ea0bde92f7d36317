"""Webhook event fan-out.

Each text event from a user is run through the conversation router and
answered with its reply token. Events are processed concurrently and
independently: one event failing never affects the others.
"""

from __future__ import annotations

import asyncio

import structlog

from yourtranslator.schemas.line import LineEvent
from yourtranslator.services.conversation.router import ConversationRouter
from yourtranslator.services.line.client import LineMessagingClient

logger = structlog.get_logger(__name__)


class EventDispatcher:
    def __init__(self, router: ConversationRouter, line: LineMessagingClient) -> None:
        self._router = router
        self._line = line

    async def dispatch(self, events: list[LineEvent]) -> int:
        """Process a webhook batch. Returns the number of events handled."""
        accepted = [e for e in events if self._accepts(e)]
        if len(accepted) < len(events):
            logger.debug("line_events_ignored", count=len(events) - len(accepted))
        if not accepted:
            return 0

        await asyncio.gather(*(self._process(e) for e in accepted))
        return len(accepted)

    @staticmethod
    def _accepts(event: LineEvent) -> bool:
        return (
            event.is_text_message
            and event.source is not None
            and bool(event.source.user_id)
            and bool(event.reply_token)
        )

    async def _process(self, event: LineEvent) -> None:
        user_id = event.source.user_id
        try:
            messages = await self._router.handle(user_id, event.message.text or "")
            await self._line.reply(event.reply_token, messages)
        except Exception as e:
            logger.error(
                "line_event_failed",
                user_id=user_id,
                error=str(e),
                exc_info=True,
            )
