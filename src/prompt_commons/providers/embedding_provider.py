"""Embedding providers that turn text into fixed-length dense vectors."""

from typing import Any, Optional, Protocol

from google import genai
from google.genai import types
from loguru import logger

from prompt_commons.providers.errors import EmbeddingError
from prompt_commons.providers.retry import provider_retrying


class EmbeddingProvider(Protocol):
    """Contract for text embedding backends."""

    model_name: str
    dimensions: int

    async def embed(self, text: str) -> list[float]:
        """Embed text into a vector of exactly `dimensions` floats.

        Raises EmbeddingError when no complete vector can be produced.
        """
        ...


class GeminiEmbeddingProvider:
    """Gemini embedding client.

    Transient failures are retried with exponential backoff; after the last
    attempt, or on a malformed response, EmbeddingError is raised.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = "text-embedding-004",
        dimensions: int = 768,
        max_attempts: int = 3,
        retry_base_delay: float = 1.0,
        client: Any = None,
    ):
        self.model_name = model_name
        self.dimensions = dimensions
        self._max_attempts = max_attempts
        self._retry_base_delay = retry_base_delay
        self._client = client if client is not None else genai.Client(api_key=api_key)

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        try:
            async for attempt in provider_retrying(self._max_attempts, self._retry_base_delay):
                with attempt:
                    response = await self._client.aio.models.embed_content(
                        model=self.model_name,
                        contents=text,
                        config=types.EmbedContentConfig(output_dimensionality=self.dimensions),
                    )
        except Exception as e:
            logger.error(f"Embedding failed after retries ({self.model_name}): {e}")
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        embeddings = getattr(response, "embeddings", None)
        values = list(embeddings[0].values or []) if embeddings else []
        if not values:
            raise EmbeddingError("Embedding response contained no vector")
        if len(values) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(values)} dimensions, expected {self.dimensions}"
            )
        return [float(value) for value in values]
