"""Generative text providers used for query analysis and perspective generation."""

from typing import Any, Optional, Protocol

from google import genai
from google.genai import types
from loguru import logger

from prompt_commons.providers.errors import GenerationError
from prompt_commons.providers.retry import provider_retrying


class GenerativeProvider(Protocol):
    """Contract for text generation backends."""

    model_name: str

    async def generate(self, prompt: str) -> str:
        """Return the model's text reply. Raises GenerationError on failure."""
        ...


class GeminiGenerativeProvider:
    """Gemini text generation client with retry on transient failures."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = "gemini-2.0-flash",
        max_attempts: int = 2,
        retry_base_delay: float = 1.0,
        temperature: float = 0.2,
        max_output_tokens: int = 512,
        client: Any = None,
    ):
        self.model_name = model_name
        self._max_attempts = max_attempts
        self._retry_base_delay = retry_base_delay
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._client = client if client is not None else genai.Client(api_key=api_key)

    async def generate(self, prompt: str) -> str:
        try:
            async for attempt in provider_retrying(self._max_attempts, self._retry_base_delay):
                with attempt:
                    response = await self._client.aio.models.generate_content(
                        model=self.model_name,
                        contents=prompt,
                        config=types.GenerateContentConfig(
                            temperature=self._temperature,
                            max_output_tokens=self._max_output_tokens,
                        ),
                    )
        except Exception as e:
            logger.warning(f"Generation failed ({self.model_name}): {e}")
            raise GenerationError(f"Generation request failed: {e}") from e

        reply = getattr(response, "text", None)
        if not reply:
            raise GenerationError("Generation response contained no text")
        return reply
