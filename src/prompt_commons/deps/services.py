"""Service dependency injection for prompt-commons.

This module provides service-layer dependencies:
- QueryAnalyzer, PerspectiveGenerator
- IndexService, SearchService, ExperimentSearchService
- SyncService
"""

from typing import Annotated

from fastapi import Depends

from prompt_commons.deps.config import AppConfigDep
from prompt_commons.deps.providers import (
    EmbeddingProviderDep,
    GenerativeProviderDep,
    TaskQueueDep,
)
from prompt_commons.deps.repositories import ExperimentRepositoryDep, SearchRepositoryDep
from prompt_commons.services import (
    ExperimentSearchService,
    IndexService,
    PerspectiveGenerator,
    QueryAnalyzer,
    SearchService,
)
from prompt_commons.sync import SyncService

# --- Query Analyzer ---


async def get_query_analyzer(
    generative_provider: GenerativeProviderDep, app_config: AppConfigDep
) -> QueryAnalyzer:
    return QueryAnalyzer(
        generative_provider,
        natural_language_min_words=app_config.natural_language_min_words,
    )


QueryAnalyzerDep = Annotated[QueryAnalyzer, Depends(get_query_analyzer)]


# --- Perspective Generator ---


async def get_perspective_generator(
    generative_provider: GenerativeProviderDep, app_config: AppConfigDep
) -> PerspectiveGenerator:
    return PerspectiveGenerator(
        generative_provider,
        prompt_max_chars=app_config.perspective_prompt_max_chars,
    )


PerspectiveGeneratorDep = Annotated[PerspectiveGenerator, Depends(get_perspective_generator)]


# --- Index Service ---


async def get_index_service(
    search_repository: SearchRepositoryDep,
    perspective_generator: PerspectiveGeneratorDep,
    embedding_provider: EmbeddingProviderDep,
    task_queue: TaskQueueDep,
    app_config: AppConfigDep,
) -> IndexService:
    """Create IndexService with dependencies."""
    return IndexService(
        search_repository,
        perspective_generator,
        embedding_provider,
        app_config,
        task_queue=task_queue,
    )


IndexServiceDep = Annotated[IndexService, Depends(get_index_service)]


# --- Search Service ---


async def get_search_service(
    search_repository: SearchRepositoryDep,
    query_analyzer: QueryAnalyzerDep,
    embedding_provider: EmbeddingProviderDep,
    app_config: AppConfigDep,
) -> SearchService:
    """Create SearchService with dependencies."""
    return SearchService(search_repository, query_analyzer, embedding_provider, app_config)


SearchServiceDep = Annotated[SearchService, Depends(get_search_service)]


async def get_experiment_search_service(
    search_service: SearchServiceDep,
    experiment_repository: ExperimentRepositoryDep,
) -> ExperimentSearchService:
    return ExperimentSearchService(search_service, experiment_repository)


ExperimentSearchServiceDep = Annotated[
    ExperimentSearchService, Depends(get_experiment_search_service)
]


# --- Sync Service ---


async def get_sync_service(
    app_config: AppConfigDep,
    index_service: IndexServiceDep,
    search_repository: SearchRepositoryDep,
    experiment_repository: ExperimentRepositoryDep,
) -> SyncService:
    return SyncService(
        app_config=app_config,
        index_service=index_service,
        search_repository=search_repository,
        experiment_repository=experiment_repository,
    )


SyncServiceDep = Annotated[SyncService, Depends(get_sync_service)]
