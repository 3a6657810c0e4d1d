from prompt_commons.repository.experiment_repository import ExperimentRepository
from prompt_commons.repository.search_document import SearchDocument
from prompt_commons.repository.search_repository import (
    SearchRepository,
    create_search_repository,
)
from prompt_commons.repository.sqlite_search_repository import SQLiteSearchRepository

__all__ = [
    "ExperimentRepository",
    "SearchDocument",
    "SearchRepository",
    "SQLiteSearchRepository",
    "create_search_repository",
]
