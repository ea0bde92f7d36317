"""Outbound message payloads produced by the conversation router."""

from pydantic import BaseModel, ConfigDict


class QuickReplyOption(BaseModel):
    """A tappable option. ``payload`` is sent back as the user's next message."""

    model_config = ConfigDict(frozen=True)

    label: str
    payload: str


class OutboundMessage(BaseModel):
    """One reply message. ``options`` is None for a bare copy-ready message."""

    model_config = ConfigDict(frozen=True)

    text: str
    options: tuple[QuickReplyOption, ...] | None = None
