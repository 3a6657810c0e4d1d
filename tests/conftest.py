"""Common test fixtures."""

import os
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from prompt_commons import db
from prompt_commons.config import ConfigManager, PromptCommonsConfig
from prompt_commons.db import DatabaseType
from prompt_commons.models import Base
from prompt_commons.providers.errors import EmbeddingError, GenerationError
from prompt_commons.repository.experiment_repository import ExperimentRepository
from prompt_commons.repository.sqlite_search_repository import SQLiteSearchRepository
from prompt_commons.services import (
    ExperimentSearchService,
    IndexService,
    PerspectiveGenerator,
    QueryAnalyzer,
    SearchService,
    SequentialTaskQueue,
)
from prompt_commons.sync import SyncService

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class StubEmbeddingProvider:
    """Deterministic embedding provider for fast tests.

    Texts are bucketed by topic into one-hot vectors. Any text containing a
    word from `failing_words` raises EmbeddingError instead.
    """

    model_name = "stub"
    dimensions = 4

    def __init__(self, failing_words: tuple[str, ...] = ()):
        self.failing_words = failing_words
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        normalized = text.lower()
        if any(word in normalized for word in self.failing_words):
            raise EmbeddingError(f"stub failure for '{text}'")
        if any(token in normalized for token in ["leak", "bug", "debug", "error", "fix"]):
            return [1.0, 0.0, 0.0, 0.0]
        if any(token in normalized for token in ["fast", "speed", "performance", "optimiz"]):
            return [0.0, 1.0, 0.0, 0.0]
        if any(token in normalized for token in ["test", "jest", "tdd"]):
            return [0.0, 0.0, 1.0, 0.0]
        return [0.0, 0.0, 0.0, 1.0]


class StubGenerativeProvider:
    """Returns queued replies in order; an Exception in the queue is raised instead."""

    model_name = "stub-generator"

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise GenerationError("no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def sqlite_vec_available() -> bool:
    try:
        import sqlite_vec  # noqa: F401
    except ImportError:
        return False
    return hasattr(sqlite3.Connection, "enable_load_extension")


requires_sqlite_vec = pytest.mark.skipif(
    not sqlite_vec_available(), reason="sqlite-vec extension loading is unavailable"
)


@pytest.fixture
def config_home(tmp_path, monkeypatch) -> Path:
    # Patch HOME environment variable for the duration of the test
    monkeypatch.setenv("HOME", str(tmp_path))
    if os.name == "nt":
        monkeypatch.setenv("USERPROFILE", str(tmp_path))
    monkeypatch.setenv("PROMPT_COMMONS_CONFIG_DIR", str(tmp_path / ".prompt-commons"))
    # Never reach a real provider from tests
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("PROMPT_COMMONS_GEMINI_API_KEY", raising=False)
    return tmp_path


@pytest.fixture(scope="function")
def app_config(config_home) -> PromptCommonsConfig:
    """Test configuration: lexical search only, tiny vectors, no delays."""
    return PromptCommonsConfig(
        env="test",
        semantic_search_enabled=False,
        embedding_dimensions=4,
        embedding_call_delay=0.0,
        embedding_retry_base_delay=0.0,
    )


@pytest.fixture
def config_manager(app_config: PromptCommonsConfig, config_home: Path) -> ConfigManager:
    # Invalidate config cache to ensure clean state for each test
    from prompt_commons import config as config_module

    config_module._CONFIG_CACHE = None

    config_manager = ConfigManager()
    config_manager.save_config(app_config)
    return config_manager


@pytest_asyncio.fixture(scope="function")
async def engine_factory(
    app_config, config_manager
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """Fresh in-memory database with the relational schema for each test."""
    async with db.engine_session_factory(
        db_path=app_config.database_path, db_type=DatabaseType.MEMORY
    ) as (engine, session_maker):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield engine, session_maker


@pytest_asyncio.fixture
async def session_maker(engine_factory) -> async_sessionmaker[AsyncSession]:
    _, session_maker = engine_factory
    return session_maker


@pytest_asyncio.fixture(scope="function")
async def experiment_repository(session_maker) -> ExperimentRepository:
    return ExperimentRepository(session_maker)


@pytest_asyncio.fixture(scope="function")
async def search_repository(session_maker, app_config) -> SQLiteSearchRepository:
    """SQLite search repository with the search tables created."""
    repository = SQLiteSearchRepository(session_maker, app_config=app_config)
    await repository.init_search_index()
    return repository


@pytest.fixture
def semantic_app_config(app_config) -> PromptCommonsConfig:
    return app_config.model_copy(update={"semantic_search_enabled": True})


@pytest_asyncio.fixture(scope="function")
async def semantic_search_repository(session_maker, semantic_app_config) -> SQLiteSearchRepository:
    """Search repository with sqlite-vec vector tables (4 dimensions)."""
    if not sqlite_vec_available():
        pytest.skip("sqlite-vec extension loading is unavailable")
    repository = SQLiteSearchRepository(session_maker, app_config=semantic_app_config)
    await repository.init_search_index()
    return repository


@pytest.fixture
def embedding_provider() -> StubEmbeddingProvider:
    return StubEmbeddingProvider()


@pytest.fixture
def query_analyzer() -> QueryAnalyzer:
    return QueryAnalyzer()


@pytest.fixture
def perspective_generator() -> PerspectiveGenerator:
    return PerspectiveGenerator()


@pytest.fixture
def task_queue() -> SequentialTaskQueue:
    return SequentialTaskQueue(delay=0.0)


@pytest_asyncio.fixture
async def index_service(
    search_repository, perspective_generator, app_config, task_queue
) -> IndexService:
    """Lexical-only index service: no embedding provider."""
    return IndexService(
        search_repository, perspective_generator, None, app_config, task_queue=task_queue
    )


@pytest_asyncio.fixture
async def search_service(search_repository, query_analyzer, app_config) -> SearchService:
    return SearchService(search_repository, query_analyzer, None, app_config)


@pytest_asyncio.fixture
async def semantic_index_service(
    semantic_search_repository,
    perspective_generator,
    embedding_provider,
    semantic_app_config,
    task_queue,
) -> IndexService:
    return IndexService(
        semantic_search_repository,
        perspective_generator,
        embedding_provider,
        semantic_app_config,
        task_queue=task_queue,
    )


@pytest_asyncio.fixture
async def semantic_search_service(
    semantic_search_repository, query_analyzer, embedding_provider, semantic_app_config
) -> SearchService:
    return SearchService(
        semantic_search_repository, query_analyzer, embedding_provider, semantic_app_config
    )


@pytest_asyncio.fixture
async def experiment_search_service(
    search_service, experiment_repository
) -> ExperimentSearchService:
    return ExperimentSearchService(search_service, experiment_repository)


@pytest_asyncio.fixture
async def sync_service(
    app_config, index_service, search_repository, experiment_repository
) -> SyncService:
    import random

    return SyncService(
        app_config=app_config,
        index_service=index_service,
        search_repository=search_repository,
        experiment_repository=experiment_repository,
        rng=random.Random(7),
    )


SAMPLE_EXPERIMENTS = [
    dict(
        title="Fix memory leak in loop",
        prompt_text="Find why this loop keeps allocating and never frees memory",
        ai_model="GPT-4",
        tags=["debugging"],
        reproduction_rate=90,
    ),
    dict(
        title="SQL injection audit",
        prompt_text="Review this query builder for injection vulnerabilities",
        ai_model="Claude",
        tags=["security", "sql"],
        reproduction_rate=70,
    ),
    dict(
        title="Password hashing review",
        prompt_text="Check that passwords are hashed with a modern algorithm",
        ai_model="GPT-4",
        tags=["security"],
        reproduction_rate=40,
    ),
    dict(
        title="Speed up pandas groupby",
        prompt_text="Make this dataframe aggregation run faster on large inputs",
        ai_model="Gemini",
        tags=["performance", "python"],
        reproduction_rate=85,
    ),
    dict(
        title="Generate Jest unit tests",
        prompt_text="Write unit tests for this React component using Jest",
        ai_model="Claude",
        tags=["testing", "javascript"],
        reproduction_rate=60,
    ),
]


async def create_and_index(experiment_repository, index_service, specs=SAMPLE_EXPERIMENTS):
    """Create experiments one hour apart, indexing each as it is created."""
    records = []
    for offset, spec in enumerate(specs):
        record = await experiment_repository.create(
            created_at=BASE_TIME + timedelta(hours=offset), **spec
        )
        await index_service.index_document(record)
        records.append(record)
    return records


@pytest_asyncio.fixture
async def sample_experiments(experiment_repository, index_service):
    """A small lexically indexed corpus, each experiment one hour newer than the last."""
    return await create_and_index(experiment_repository, index_service)


@pytest_asyncio.fixture
async def semantic_sample_experiments(experiment_repository, semantic_index_service):
    """The sample corpus indexed with stub perspective vectors."""
    return await create_and_index(experiment_repository, semantic_index_service)
