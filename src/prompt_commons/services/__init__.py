"""Services package."""

from prompt_commons.services.experiment_search_service import ExperimentSearchService
from prompt_commons.services.index_service import BulkReindexReport, IndexService
from prompt_commons.services.perspective_generator import PerspectiveGenerator
from prompt_commons.services.query_analyzer import QueryAnalyzer
from prompt_commons.services.search_service import SearchService
from prompt_commons.services.task_queue import SequentialTaskQueue

__all__ = [
    "BulkReindexReport",
    "ExperimentSearchService",
    "IndexService",
    "PerspectiveGenerator",
    "QueryAnalyzer",
    "SearchService",
    "SequentialTaskQueue",
]
