"""OpenAI chat-completions provider.

Works against api.openai.com or any OpenAI-compatible base URL.
Default model: gpt-4o-mini.
All external calls have a timeout and structured error logging.
"""

import asyncio

import structlog
from openai import AsyncOpenAI

from yourtranslator.services.llm.base import LLMProvider, LLMResponse, ResponseFormat

logger = structlog.get_logger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 20.0


class OpenAIProvider(LLMProvider):
    """Chat completions via the official openai SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._model = model
        self._timeout = timeout_seconds
        logger.info("openai_provider_initialized", model=model, base_url=base_url)

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.3,
        response_format: ResponseFormat = "text",
    ) -> LLMResponse:
        """Generate a complete response using chat completions."""
        extra: dict = {}
        if response_format == "json_object":
            extra["response_format"] = {"type": "json_object"}
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    max_tokens=max_tokens,
                    temperature=temperature,
                    **extra,
                ),
                timeout=self._timeout,
            )
            text = response.choices[0].message.content or ""
            usage = response.usage
            result = LLMResponse(
                text=text,
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
            )
            logger.debug(
                "openai_generate_ok",
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                prompt_len=len(prompt),
            )
            return result
        except asyncio.TimeoutError as e:
            logger.error(
                "openai_generate_timeout",
                prompt_len=len(prompt),
                timeout_seconds=self._timeout,
            )
            raise RuntimeError("OpenAI generate timed out") from e
        except Exception as e:
            logger.error(
                "openai_generate_failed",
                error=str(e),
                model=self._model,
                prompt_len=len(prompt),
            )
            raise RuntimeError(f"OpenAI generate failed: {e}") from e
