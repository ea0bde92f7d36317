"""Per-user preference and last-turn context ORM model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from yourtranslator.db.postgres import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    line_user_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    level_type: Mapped[str] = mapped_column(
        Text, nullable=False, default="eiken"
    )  # 'eiken' | 'toeic' | 'rough'
    level_value: Mapped[str] = mapped_column(Text, nullable=False, default="2")
    english_style: Mapped[str] = mapped_column(
        Text, nullable=False, default="neutral"
    )  # 'neutral' | 'american' | 'british'
    usage_default: Mapped[str] = mapped_column(
        Text, nullable=False, default="chat_friend"
    )  # 'chat_friend' | 'mail_internal' | 'mail_external'
    tone_default: Mapped[str] = mapped_column(
        Text, nullable=False, default="polite"
    )  # 'casual' | 'polite' | 'business'

    # Last-turn context. Forward pair and reverse pair are written together.
    last_source_ja: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_output_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_source_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_output_ja: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_mode: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )  # 'ja_to_en' | 'en_to_ja'

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
