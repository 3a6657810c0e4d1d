"""Schema exports for prompt-commons."""

from prompt_commons.schemas.experiment import (
    ExperimentRecord,
    ExperimentSearchItem,
    ExperimentSearchPage,
    Pagination,
)
from prompt_commons.schemas.search import (
    Perspectives,
    QueryAnalysis,
    SearchMode,
    SearchQuery,
    SearchResponse,
    SearchResult,
)
from prompt_commons.schemas.sync_report import (
    BulkReindexReportResponse,
    ConsistencyReportResponse,
    SampleCheckResponse,
    SearchHealthResponse,
)

__all__ = [
    "BulkReindexReportResponse",
    "ConsistencyReportResponse",
    "ExperimentRecord",
    "ExperimentSearchItem",
    "ExperimentSearchPage",
    "Pagination",
    "Perspectives",
    "QueryAnalysis",
    "SampleCheckResponse",
    "SearchHealthResponse",
    "SearchMode",
    "SearchQuery",
    "SearchResponse",
    "SearchResult",
]
