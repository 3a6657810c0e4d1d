"""Dependency injection functions for prompt-commons services."""

from prompt_commons.deps.config import AppConfigDep, get_app_config
from prompt_commons.deps.db import (
    EngineFactoryDep,
    SessionMakerDep,
    get_engine_factory,
    get_session_maker,
)
from prompt_commons.deps.providers import (
    EmbeddingProviderDep,
    GenerativeProviderDep,
    TaskQueueDep,
    get_embedding_provider,
    get_generative_provider,
    get_task_queue,
)
from prompt_commons.deps.repositories import (
    ExperimentRepositoryDep,
    SearchRepositoryDep,
    get_experiment_repository,
    get_search_repository,
)
from prompt_commons.deps.services import (
    ExperimentSearchServiceDep,
    IndexServiceDep,
    PerspectiveGeneratorDep,
    QueryAnalyzerDep,
    SearchServiceDep,
    SyncServiceDep,
    get_experiment_search_service,
    get_index_service,
    get_perspective_generator,
    get_query_analyzer,
    get_search_service,
    get_sync_service,
)

__all__ = [
    "AppConfigDep",
    "EmbeddingProviderDep",
    "EngineFactoryDep",
    "ExperimentRepositoryDep",
    "ExperimentSearchServiceDep",
    "GenerativeProviderDep",
    "IndexServiceDep",
    "PerspectiveGeneratorDep",
    "QueryAnalyzerDep",
    "SearchRepositoryDep",
    "SearchServiceDep",
    "SessionMakerDep",
    "SyncServiceDep",
    "TaskQueueDep",
    "get_app_config",
    "get_embedding_provider",
    "get_engine_factory",
    "get_experiment_repository",
    "get_experiment_search_service",
    "get_generative_provider",
    "get_index_service",
    "get_perspective_generator",
    "get_query_analyzer",
    "get_search_repository",
    "get_search_service",
    "get_session_maker",
    "get_sync_service",
    "get_task_queue",
]
