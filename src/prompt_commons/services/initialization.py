"""Shared initialization for prompt-commons.

This module provides the startup functions used by both the CLI and the API
so every entry point wires the search stack the same way.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from prompt_commons import db
from prompt_commons.config import PromptCommonsConfig
from prompt_commons.providers import (
    EmbeddingProvider,
    GenerativeProvider,
    create_embedding_provider,
    create_generative_provider,
)
from prompt_commons.repository import ExperimentRepository, SearchRepository, create_search_repository
from prompt_commons.services.experiment_search_service import ExperimentSearchService
from prompt_commons.services.index_service import IndexService
from prompt_commons.services.perspective_generator import PerspectiveGenerator
from prompt_commons.services.query_analyzer import QueryAnalyzer
from prompt_commons.services.search_service import SearchService
from prompt_commons.services.task_queue import SequentialTaskQueue


@dataclass
class SearchComponents:
    """Every collaborator of the search stack, built once per process."""

    app_config: PromptCommonsConfig
    experiment_repository: ExperimentRepository
    search_repository: SearchRepository
    embedding_provider: Optional[EmbeddingProvider]
    generative_provider: Optional[GenerativeProvider]
    task_queue: SequentialTaskQueue
    index_service: IndexService
    search_service: SearchService
    experiment_search_service: ExperimentSearchService

    @property
    def sync_service(self):
        # Import here to avoid circular imports
        from prompt_commons.sync import SyncService

        return SyncService(
            app_config=self.app_config,
            index_service=self.index_service,
            search_repository=self.search_repository,
            experiment_repository=self.experiment_repository,
        )


def build_search_components(
    app_config: PromptCommonsConfig,
    session_maker: async_sessionmaker[AsyncSession],
    embedding_provider: Optional[EmbeddingProvider] = None,
    generative_provider: Optional[GenerativeProvider] = None,
) -> SearchComponents:
    """Wire repositories, providers and services together.

    Providers default to the configured Gemini ones; pass them explicitly to
    substitute fakes.
    """
    if embedding_provider is None:
        embedding_provider = create_embedding_provider(app_config)
    if generative_provider is None:
        generative_provider = create_generative_provider(app_config)

    experiment_repository = ExperimentRepository(session_maker)
    search_repository = create_search_repository(session_maker, app_config=app_config)
    task_queue = SequentialTaskQueue(app_config.embedding_call_delay)

    index_service = IndexService(
        search_repository,
        PerspectiveGenerator(
            generative_provider, prompt_max_chars=app_config.perspective_prompt_max_chars
        ),
        embedding_provider,
        app_config,
        task_queue=task_queue,
    )
    search_service = SearchService(
        search_repository,
        QueryAnalyzer(
            generative_provider,
            natural_language_min_words=app_config.natural_language_min_words,
        ),
        embedding_provider,
        app_config,
    )
    return SearchComponents(
        app_config=app_config,
        experiment_repository=experiment_repository,
        search_repository=search_repository,
        embedding_provider=embedding_provider,
        generative_provider=generative_provider,
        task_queue=task_queue,
        index_service=index_service,
        search_service=search_service,
        experiment_search_service=ExperimentSearchService(search_service, experiment_repository),
    )


async def initialize_database(
    app_config: PromptCommonsConfig,
) -> async_sessionmaker[AsyncSession]:
    """Create the engine and schema, returning the session maker."""
    try:
        _, session_maker = await db.get_or_create_db(app_config)
        logger.info("Database initialization completed")
        return session_maker
    except Exception as e:
        logger.error(f"Error during database initialization: {e}")
        raise


async def initialize_app(app_config: PromptCommonsConfig) -> SearchComponents:
    """Database, search tables and services, ready for queries."""
    session_maker = await initialize_database(app_config)
    components = build_search_components(app_config, session_maker)
    await components.search_repository.init_search_index()
    logger.info(
        f"Search index '{app_config.search_index_name}' ready "
        f"(semantic={components.search_repository.semantic_enabled})"
    )
    return components
