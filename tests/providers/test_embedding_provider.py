"""Tests for the Gemini embedding provider, using a fake google-genai client."""

from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors

from prompt_commons.providers import EmbeddingError, GeminiEmbeddingProvider
from prompt_commons.providers.retry import is_transient_provider_error


class FakeModels:
    """Stands in for client.aio.models; outcomes are consumed one per call."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def embed_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return SimpleNamespace(embeddings=[SimpleNamespace(values=outcome)])


def fake_client(models: FakeModels):
    return SimpleNamespace(aio=SimpleNamespace(models=models))


def make_provider(models: FakeModels, dimensions: int = 3, max_attempts: int = 3):
    return GeminiEmbeddingProvider(
        model_name="text-embedding-004",
        dimensions=dimensions,
        max_attempts=max_attempts,
        retry_base_delay=0.0,
        client=fake_client(models),
    )


@pytest.mark.asyncio
async def test_embed_returns_vector_of_configured_size():
    models = FakeModels([0.1, 0.2, 0.3])
    provider = make_provider(models)

    vector = await provider.embed("memory leak")

    assert vector == [0.1, 0.2, 0.3]
    assert models.calls[0]["contents"] == "memory leak"
    assert models.calls[0]["config"].output_dimensionality == 3


@pytest.mark.asyncio
async def test_transient_failures_are_retried():
    models = FakeModels(ConnectionError("reset"), ConnectionError("reset"), [1.0, 0.0, 0.0])
    provider = make_provider(models)

    vector = await provider.embed("retry me")

    assert vector == [1.0, 0.0, 0.0]
    assert len(models.calls) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts():
    models = FakeModels(*(ConnectionError("down") for _ in range(3)))
    provider = make_provider(models, max_attempts=3)

    with pytest.raises(EmbeddingError):
        await provider.embed("never works")

    assert len(models.calls) == 3


@pytest.mark.asyncio
async def test_permanent_failure_is_not_retried():
    models = FakeModels(ValueError("bad request"), [1.0, 0.0, 0.0])
    provider = make_provider(models)

    with pytest.raises(EmbeddingError):
        await provider.embed("bad input")

    assert len(models.calls) == 1


@pytest.mark.asyncio
async def test_empty_vector_is_an_error_not_a_result():
    provider = make_provider(FakeModels([]))

    with pytest.raises(EmbeddingError, match="no vector"):
        await provider.embed("hello")


@pytest.mark.asyncio
async def test_wrong_dimension_count_is_an_error():
    provider = make_provider(FakeModels([0.5, 0.5]), dimensions=3)

    with pytest.raises(EmbeddingError, match="dimensions"):
        await provider.embed("hello")


@pytest.mark.asyncio
async def test_empty_text_is_rejected_without_a_call():
    models = FakeModels()
    provider = make_provider(models)

    with pytest.raises(EmbeddingError):
        await provider.embed("   ")

    assert models.calls == []


def test_transient_error_classification():
    rate_limited = genai_errors.ClientError(
        429, {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}}
    )
    bad_key = genai_errors.ClientError(
        403, {"error": {"code": 403, "message": "denied", "status": "PERMISSION_DENIED"}}
    )
    unavailable = genai_errors.ServerError(
        503, {"error": {"code": 503, "message": "busy", "status": "UNAVAILABLE"}}
    )

    assert is_transient_provider_error(rate_limited)
    assert is_transient_provider_error(unavailable)
    assert is_transient_provider_error(httpx.ConnectError("refused"))
    assert is_transient_provider_error(ConnectionError())
    assert not is_transient_provider_error(bad_key)
    assert not is_transient_provider_error(ValueError("malformed"))
