"""Generation client: the only way conversation code talks to an LLM.

``generate`` returns plain text. ``generate_structured`` validates the reply
against a pydantic model and never raises on a malformed reply: it returns a
``ParseFailure`` carrying the raw text so the caller can pick a fallback.
Backend failures (timeout, API error, empty reply) raise ``GenerationError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from yourtranslator.core.exceptions import GenerationError
from yourtranslator.services.llm.base import LLMProvider, LLMResponse, ResponseFormat

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

_OPENING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")


@dataclass(frozen=True)
class StructuredPrompt:
    """Everything the backend needs for one call."""

    system: str
    user: str
    temperature: float = 0.3
    max_tokens: int = 800
    response_format: ResponseFormat = "text"


@dataclass(frozen=True)
class ParsedResult(Generic[T]):
    value: T
    raw: str


@dataclass(frozen=True)
class ParseFailure:
    raw: str
    error: str


def strip_fences(raw: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```), if any."""
    text = raw.strip()
    if text.startswith("```"):
        text = _OPENING_FENCE.sub("", text, count=1).rstrip()
        if text.endswith("```"):
            text = text[:-3]
    return text.strip()


class GenerationClient:
    """Sends StructuredPrompts to an LLMProvider."""

    def __init__(self, llm: LLMProvider) -> None:
        self._llm = llm

    async def _call(self, prompt: StructuredPrompt) -> LLMResponse:
        try:
            return await self._llm.generate(
                prompt=prompt.user,
                system_prompt=prompt.system,
                max_tokens=prompt.max_tokens,
                temperature=prompt.temperature,
                response_format=prompt.response_format,
            )
        except Exception as e:
            logger.warning(
                "generation_backend_failed",
                error=str(e),
                response_format=prompt.response_format,
            )
            raise GenerationError(f"Generation backend failed: {e}") from e

    async def generate(self, prompt: StructuredPrompt) -> str:
        """Return the backend's text, stripped. Empty output is a failure."""
        result = await self._call(prompt)
        text = result.text.strip()
        if not text:
            logger.warning("generation_empty_output")
            raise GenerationError("Generation backend returned empty text")
        return text

    async def generate_structured(
        self, prompt: StructuredPrompt, shape: type[T]
    ) -> ParsedResult[T] | ParseFailure:
        """Return the reply parsed as ``shape``, or a ParseFailure."""
        result = await self._call(prompt)
        cleaned = strip_fences(result.text)
        try:
            value = shape.model_validate_json(cleaned)
        except ValidationError as e:
            logger.warning(
                "structured_parse_failed",
                shape=shape.__name__,
                raw_len=len(cleaned),
                error_count=e.error_count(),
            )
            return ParseFailure(raw=cleaned, error=str(e))
        return ParsedResult(value=value, raw=cleaned)
