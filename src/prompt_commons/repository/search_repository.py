"""Repository for search operations.

This module provides the search store interface. The implementation is
SQLiteSearchRepository: FTS5 for lexical matching and sqlite-vec for the
three perspective vector fields.
"""

from typing import Optional, Protocol

from sqlalchemy import Result
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from prompt_commons.config import ConfigManager, PromptCommonsConfig
from prompt_commons.repository.search_document import SearchDocument
from prompt_commons.repository.search_query import (
    BulkIndexResult,
    StoreQuery,
    StoreSearchResult,
)
from prompt_commons.repository.sqlite_search_repository import SQLiteSearchRepository


class SearchRepository(Protocol):
    """Protocol defining the search store interface."""

    @property
    def semantic_enabled(self) -> bool:
        """Whether vector fields are stored and queried."""
        ...

    @property
    def vector_dimensions(self) -> int:
        """Dimensionality every stored vector must have."""
        ...

    async def init_search_index(self) -> None:
        """Initialize the search index schema."""
        ...

    async def reset_index(self) -> None:
        """Drop and recreate the search index schema."""
        ...

    async def index_document(self, document: SearchDocument) -> None:
        """Upsert a single document by id."""
        ...

    async def bulk_index_documents(self, documents: list[SearchDocument]) -> BulkIndexResult:
        """Upsert documents in one batch with per-item error reporting."""
        ...

    async def delete_document(self, doc_id: str) -> bool:
        """Delete a document by id. Returns False when it was not stored."""
        ...

    async def get_document(self, doc_id: str) -> Optional[SearchDocument]:
        """Load a stored document including its vectors."""
        ...

    async def count(self) -> int:
        """Number of stored documents."""
        ...

    async def search(self, query: StoreQuery) -> StoreSearchResult:
        """Run a hybrid query and return raw-scored hits."""
        ...

    async def execute_query(self, query, params: dict) -> Result:
        """Execute a raw SQL query."""
        ...


def create_search_repository(
    session_maker: async_sessionmaker[AsyncSession],
    app_config: Optional[PromptCommonsConfig] = None,
) -> SearchRepository:
    """Factory function to create the search repository.

    Args:
        session_maker: SQLAlchemy async session maker
        app_config: Optional explicit config. If not provided, reads from ConfigManager.
            Prefer passing explicitly from composition roots.
    """
    config = app_config or ConfigManager().config
    return SQLiteSearchRepository(session_maker, app_config=config)


__all__ = [
    "SearchRepository",
    "SearchDocument",
    "create_search_repository",
]
