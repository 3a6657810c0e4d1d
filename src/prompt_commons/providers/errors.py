"""Typed errors for the embedding and generative providers."""


class ProviderError(RuntimeError):
    """Base class for provider failures surfaced to callers."""


class EmbeddingError(ProviderError):
    """An embedding could not be produced after all retry attempts.

    Never accompanied by a partial vector.
    """


class GenerationError(ProviderError):
    """A generative call failed or returned no text."""


class ProviderConfigurationError(ProviderError):
    """A provider was requested but cannot be constructed from the configuration."""
