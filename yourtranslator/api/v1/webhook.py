"""LINE webhook endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Header, Request
from pydantic import ValidationError

from yourtranslator.api.deps import get_channel_secret, get_event_dispatcher
from yourtranslator.core.exceptions import InvalidPayloadError, InvalidSignatureError
from yourtranslator.core.security import verify_line_signature
from yourtranslator.schemas.line import LineWebhookRequest, LineWebhookResponse
from yourtranslator.services.line.dispatcher import EventDispatcher

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/line", tags=["line"])


@router.post("/webhook", response_model=LineWebhookResponse)
async def line_webhook(
    request: Request,
    x_line_signature: str | None = Header(default=None, alias="X-Line-Signature"),
    channel_secret: str = Depends(get_channel_secret),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
) -> LineWebhookResponse:
    """Receive a batch of LINE events and answer every text message.

    The signature is checked against the raw body before anything is parsed.
    Individual event failures are logged by the dispatcher; the platform
    always gets 200 for a correctly signed request.
    """
    body = await request.body()
    if not verify_line_signature(channel_secret, body, x_line_signature):
        logger.warning("line_webhook_invalid_signature")
        raise InvalidSignatureError()

    try:
        payload = LineWebhookRequest.model_validate_json(body)
    except ValidationError as e:
        logger.warning("line_webhook_invalid_payload", error=str(e))
        raise InvalidPayloadError() from e

    handled = await dispatcher.dispatch(payload.events)
    logger.info(
        "line_webhook_processed",
        event_count=len(payload.events),
        handled=handled,
    )
    return LineWebhookResponse()
