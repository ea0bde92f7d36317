"""Fallback LLM provider: tries primary, falls back to secondary on failure.

OpenAI (primary) handles every call; Gemini (secondary) is only tried
when the primary raises.
"""

import structlog

from yourtranslator.services.llm.base import LLMProvider, LLMResponse, ResponseFormat

logger = structlog.get_logger(__name__)


class FallbackLLMProvider(LLMProvider):
    """Tries primary provider first; falls back to secondary on any error."""

    def __init__(self, primary: LLMProvider, secondary: LLMProvider) -> None:
        self._primary = primary
        self._secondary = secondary
        logger.info(
            "fallback_provider_initialized",
            primary=type(primary).__name__,
            secondary=type(secondary).__name__,
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.3,
        response_format: ResponseFormat = "text",
    ) -> LLMResponse:
        """Try primary generate(); fall back to secondary on failure."""
        try:
            return await self._primary.generate(
                prompt, system_prompt, max_tokens, temperature, response_format
            )
        except Exception as primary_err:
            logger.warning(
                "primary_generate_failed_falling_back",
                primary=type(self._primary).__name__,
                error=str(primary_err),
            )
            return await self._secondary.generate(
                prompt, system_prompt, max_tokens, temperature, response_format
            )
