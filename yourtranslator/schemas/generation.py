"""Shapes the generation backend is asked to return as JSON."""

from typing import Any

import structlog
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

logger = structlog.get_logger(__name__)

MAX_GLOSSARY_ITEMS = 5


class GlossaryEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    term: str = ""
    meaning: str = Field(default="", validation_alias=AliasChoices("meaning", "meaning_ja"))
    note: str | None = Field(default=None, validation_alias=AliasChoices("note", "note_ja"))

    @field_validator("term", "meaning", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ReverseResult(BaseModel):
    """English → Japanese translation with a short glossary."""

    model_config = ConfigDict(extra="ignore")

    translation: str = Field(min_length=1, validation_alias=AliasChoices("translation", "ja"))
    glossary: list[GlossaryEntry] = []

    @field_validator("glossary", mode="before")
    @classmethod
    def _coerce_glossary(cls, value: Any) -> Any:
        """Keep the well-formed items; one bad item never sinks the translation."""
        if not isinstance(value, list):
            return []
        entries: list[GlossaryEntry] = []
        for item in value:
            if not isinstance(item, dict):
                continue
            try:
                entries.append(GlossaryEntry.model_validate(item))
            except ValidationError as e:
                logger.debug("glossary_item_dropped", error_count=e.error_count())
            if len(entries) == MAX_GLOSSARY_ITEMS:
                break
        return entries


class UpgradeSuggestion(BaseModel):
    """One better phrasing of an accepted sentence plus a Japanese rationale."""

    model_config = ConfigDict(extra="ignore")

    upgraded: str = Field(min_length=1)
    explanation: str = ""
