"""Factories that build providers from configuration, once per process."""

from typing import Optional

from loguru import logger

from prompt_commons.config import PromptCommonsConfig
from prompt_commons.providers.embedding_provider import EmbeddingProvider, GeminiEmbeddingProvider
from prompt_commons.providers.errors import ProviderConfigurationError
from prompt_commons.providers.generative_provider import (
    GeminiGenerativeProvider,
    GenerativeProvider,
)


def create_embedding_provider(app_config: PromptCommonsConfig) -> Optional[EmbeddingProvider]:
    """Create the embedding provider, or None when semantic search is disabled.

    Fails fast when semantic search is enabled without an API key.
    """
    if not app_config.semantic_search_enabled:
        logger.info("Semantic search disabled, no embedding provider")
        return None

    api_key = app_config.resolved_gemini_api_key
    if not api_key:
        raise ProviderConfigurationError(
            "Semantic search is enabled but no Gemini API key is configured. "
            "Set PROMPT_COMMONS_GEMINI_API_KEY (or GEMINI_API_KEY), "
            "or set PROMPT_COMMONS_SEMANTIC_SEARCH_ENABLED=false."
        )

    return GeminiEmbeddingProvider(
        api_key=api_key,
        model_name=app_config.embedding_model,
        dimensions=app_config.embedding_dimensions,
        max_attempts=app_config.embedding_max_attempts,
        retry_base_delay=app_config.embedding_retry_base_delay,
    )


def create_generative_provider(app_config: PromptCommonsConfig) -> Optional[GenerativeProvider]:
    """Create the generative provider, or None when no API key is configured.

    Without it, query analysis and perspective generation use their fallbacks.
    """
    api_key = app_config.resolved_gemini_api_key
    if not api_key:
        logger.warning("No Gemini API key configured, query analysis and perspectives use fallbacks")
        return None

    return GeminiGenerativeProvider(
        api_key=api_key,
        model_name=app_config.generative_model,
        max_attempts=app_config.generative_max_attempts,
        retry_base_delay=app_config.embedding_retry_base_delay,
    )
