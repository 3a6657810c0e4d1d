"""Tests for wiring the search stack."""

import pytest

from conftest import StubEmbeddingProvider, StubGenerativeProvider
from prompt_commons.providers import ProviderConfigurationError
from prompt_commons.services.initialization import build_search_components
from prompt_commons.sync import SyncService


@pytest.mark.asyncio
async def test_components_share_providers_and_queue(app_config, session_maker):
    embedding_provider = StubEmbeddingProvider()
    generative_provider = StubGenerativeProvider()

    components = build_search_components(
        app_config,
        session_maker,
        embedding_provider=embedding_provider,
        generative_provider=generative_provider,
    )

    assert components.index_service.embedding_provider is embedding_provider
    assert components.search_service.embedding_provider is embedding_provider
    assert components.index_service.task_queue is components.task_queue
    perspective_generator = components.index_service.perspective_generator
    assert perspective_generator.generative_provider is generative_provider
    assert components.search_service.query_analyzer.generative_provider is generative_provider
    assert (
        components.experiment_search_service.search_service is components.search_service
    )


@pytest.mark.asyncio
async def test_without_api_key_providers_are_absent(app_config, session_maker):
    components = build_search_components(app_config, session_maker)

    assert components.embedding_provider is None
    assert components.generative_provider is None
    assert components.search_repository.semantic_enabled is False


@pytest.mark.asyncio
async def test_semantic_search_without_api_key_fails_fast(semantic_app_config, session_maker):
    with pytest.raises(ProviderConfigurationError):
        build_search_components(semantic_app_config, session_maker)


@pytest.mark.asyncio
async def test_sync_service_uses_component_collaborators(app_config, session_maker):
    components = build_search_components(app_config, session_maker)

    sync_service = components.sync_service

    assert isinstance(sync_service, SyncService)
    assert sync_service.index_service is components.index_service
    assert sync_service.experiment_repository is components.experiment_repository
