from prompt_commons.providers.embedding_provider import EmbeddingProvider, GeminiEmbeddingProvider
from prompt_commons.providers.errors import (
    EmbeddingError,
    GenerationError,
    ProviderConfigurationError,
    ProviderError,
)
from prompt_commons.providers.generative_provider import (
    GeminiGenerativeProvider,
    GenerativeProvider,
)
from prompt_commons.providers.provider_factory import (
    create_embedding_provider,
    create_generative_provider,
)

__all__ = [
    "EmbeddingError",
    "EmbeddingProvider",
    "GeminiEmbeddingProvider",
    "GeminiGenerativeProvider",
    "GenerationError",
    "GenerativeProvider",
    "ProviderConfigurationError",
    "ProviderError",
    "create_embedding_provider",
    "create_generative_provider",
]
