"""User profile domain model and the enums that constrain its fields."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LevelScheme(str, Enum):
    EIKEN = "eiken"
    TOEIC = "toeic"
    ROUGH = "rough"


class UsageScene(str, Enum):
    CHAT_FRIEND = "chat_friend"
    MAIL_INTERNAL = "mail_internal"
    MAIL_EXTERNAL = "mail_external"


class Tone(str, Enum):
    CASUAL = "casual"
    POLITE = "polite"
    BUSINESS = "business"


class StyleVariant(str, Enum):
    NEUTRAL = "neutral"
    AMERICAN = "american"
    BRITISH = "british"


class Mode(str, Enum):
    JA_TO_EN = "ja_to_en"
    EN_TO_JA = "en_to_ja"


# Allowed level_value codes per scheme, lowest to highest.
LEVEL_VALUES: dict[LevelScheme, tuple[str, ...]] = {
    LevelScheme.EIKEN: ("5", "4", "3", "pre2", "2", "pre1", "1"),
    LevelScheme.TOEIC: ("300", "400", "500", "600", "700", "800", "900"),
    LevelScheme.ROUGH: ("beginner", "intermediate", "advanced"),
}


def is_valid_level(scheme: LevelScheme, value: str) -> bool:
    return value in LEVEL_VALUES[scheme]


class UserProfile(BaseModel):
    """A user's stored preferences plus the last artifacts of each direction."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    level_scheme: LevelScheme = LevelScheme.EIKEN
    level_value: str = "2"
    usage_scene: UsageScene = UsageScene.CHAT_FRIEND
    tone_default: Tone = Tone.POLITE
    style_variant: StyleVariant = StyleVariant.NEUTRAL

    last_source_text: str | None = None
    last_generated_output: str | None = None
    last_reverse_source_text: str | None = None
    last_reverse_output: str | None = None
    last_mode: Mode | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def defaults(cls, user_id: str) -> UserProfile:
        """Profile a brand-new user starts with."""
        return cls(user_id=user_id)


class ProfilePatch(BaseModel):
    """Partial update. Only explicitly set fields are written."""

    level_scheme: LevelScheme | None = None
    level_value: str | None = None
    usage_scene: UsageScene | None = None
    tone_default: Tone | None = None
    style_variant: StyleVariant | None = None

    last_source_text: str | None = None
    last_generated_output: str | None = None
    last_reverse_source_text: str | None = None
    last_reverse_output: str | None = None
    last_mode: Mode | None = None

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)
