"""Pydantic responses for reindex, consistency and health reports."""

from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:  # pragma: no cover
    from prompt_commons.services.index_service import BulkReindexReport
    from prompt_commons.sync.sync_service import ConsistencyReport, SearchHealth


class BulkReindexReportResponse(BaseModel):
    """Outcome of a full reindex."""

    total_count: int = Field(description="Experiments in the system of record")
    synced_count: int = Field(description="Documents written to the search index")
    error_count: int = Field(description="Experiments that could not be indexed")
    batch_sizes: List[int] = Field(default_factory=list)
    failed_ids: List[str] = Field(default_factory=list)
    success: bool

    @classmethod
    def from_report(cls, report: "BulkReindexReport") -> "BulkReindexReportResponse":
        return cls(
            total_count=report.total_count,
            synced_count=report.synced_count,
            error_count=report.error_count,
            batch_sizes=list(report.batch_sizes),
            failed_ids=list(report.failed_ids),
            success=report.success,
        )


class SampleCheckResponse(BaseModel):
    id: str
    consistent: bool
    errors: List[str] = Field(default_factory=list)


class ConsistencyReportResponse(BaseModel):
    """Count comparison plus per-id results for a random sample."""

    source_count: int
    index_count: int
    counts_match: bool
    passed: bool
    samples: List[SampleCheckResponse] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: "ConsistencyReport") -> "ConsistencyReportResponse":
        return cls(
            source_count=report.source_count,
            index_count=report.index_count,
            counts_match=report.counts_match,
            passed=report.passed,
            samples=[
                SampleCheckResponse(
                    id=sample.id, consistent=sample.consistent, errors=list(sample.errors)
                )
                for sample in report.samples
            ],
        )


class SearchHealthResponse(BaseModel):
    connected: bool
    index_name: str
    document_count: Optional[int] = None
    semantic_enabled: bool = False
    error: Optional[str] = None

    @classmethod
    def from_health(cls, health: "SearchHealth") -> "SearchHealthResponse":
        return cls(
            connected=health.connected,
            index_name=health.index_name,
            document_count=health.document_count,
            semantic_enabled=health.semantic_enabled,
            error=health.error,
        )


class IndexedDocumentResponse(BaseModel):
    """A single experiment written to the search index."""

    id: str
    embedded_count: int = Field(description="Perspective vectors stored, 0 to 3")


class DeletedDocumentResponse(BaseModel):
    id: str
    deleted: bool
