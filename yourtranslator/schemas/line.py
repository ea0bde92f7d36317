"""LINE Messaging API webhook request schemas.

Only the fields the bot reads are declared; everything else is ignored.
"""

from pydantic import BaseModel, ConfigDict, Field


class LineSource(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str = "user"
    user_id: str | None = Field(default=None, alias="userId")


class LineMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    type: str
    text: str | None = None


class LineEvent(BaseModel):
    """A single webhook event."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str
    reply_token: str | None = Field(default=None, alias="replyToken")
    source: LineSource | None = None
    message: LineMessage | None = None

    @property
    def is_text_message(self) -> bool:
        return (
            self.type == "message"
            and self.message is not None
            and self.message.type == "text"
        )


class LineWebhookRequest(BaseModel):
    """POST /v1/line/webhook request body."""

    model_config = ConfigDict(extra="ignore")

    destination: str | None = None
    events: list[LineEvent] = []


class LineWebhookResponse(BaseModel):
    status: str = "ok"
