"""Abstract LLM provider interface.

All LLM implementations must inherit from this class.
Business logic never imports a concrete provider directly; it goes through
``GenerationClient`` (yourtranslator/services/llm/client.py).
The concrete provider is instantiated once in the FastAPI lifespan
and injected via app.state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

ResponseFormat = Literal["text", "json_object"]


@dataclass(frozen=True)
class LLMResponse:
    """Structured response from an LLM call, including token usage."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.3,
        response_format: ResponseFormat = "text",
    ) -> LLMResponse:
        """Generate a complete response from the LLM.

        Args:
            prompt: The user/input prompt text.
            system_prompt: System-level instructions for the model.
            max_tokens: Maximum tokens in the generated response.
            temperature: Sampling temperature (0.0–1.0).
            response_format: "json_object" asks the backend for a single
                JSON object, where the backend supports it.

        Returns:
            LLMResponse with text content and token usage counts.

        Raises:
            RuntimeError: If the LLM call fails after timeout or API error.
        """
        ...
