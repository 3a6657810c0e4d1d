"""Router for search index maintenance: health, resync, consistency and single documents."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Path, Query
from loguru import logger

from prompt_commons.deps import ExperimentRepositoryDep, IndexServiceDep, SyncServiceDep
from prompt_commons.schemas.sync_report import (
    BulkReindexReportResponse,
    ConsistencyReportResponse,
    DeletedDocumentResponse,
    IndexedDocumentResponse,
    SearchHealthResponse,
)

router = APIRouter(prefix="/search", tags=["search-admin"])


@router.get("/health", response_model=SearchHealthResponse)
async def search_health(sync_service: SyncServiceDep) -> SearchHealthResponse:
    health = await sync_service.check_health()
    return SearchHealthResponse.from_health(health)


@router.post("/resync", response_model=BulkReindexReportResponse)
async def resync(
    sync_service: SyncServiceDep,
    reset: bool = Query(True, description="Drop the index before rebuilding it"),
) -> BulkReindexReportResponse:
    """Rebuild the search index from the system of record."""
    logger.info(f"Resync requested (reset={reset})")
    report = await sync_service.resync(reset=reset)
    return BulkReindexReportResponse.from_report(report)


@router.get("/consistency", response_model=ConsistencyReportResponse)
async def consistency(
    sync_service: SyncServiceDep,
    sample_size: Optional[int] = Query(None, ge=1, le=100),
) -> ConsistencyReportResponse:
    report = await sync_service.verify_consistency(sample_size=sample_size)
    return ConsistencyReportResponse.from_report(report)


@router.put("/documents/{experiment_id}", response_model=IndexedDocumentResponse)
async def reindex_document(
    index_service: IndexServiceDep,
    experiment_repository: ExperimentRepositoryDep,
    experiment_id: int = Path(..., description="Experiment id in the system of record"),
) -> IndexedDocumentResponse:
    """Re-index one experiment from its active version.

    Used after an experiment is created or a new version becomes active.
    """
    record = await experiment_repository.get_record(experiment_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Experiment {experiment_id} not found")

    document = await index_service.update_document(record)
    return IndexedDocumentResponse(id=document.id, embedded_count=document.embedded_count)


@router.delete("/documents/{experiment_id}", response_model=DeletedDocumentResponse)
async def delete_document(
    index_service: IndexServiceDep,
    experiment_id: int = Path(..., description="Experiment id in the system of record"),
) -> DeletedDocumentResponse:
    """Remove an experiment from the search index. Ids that are not indexed also succeed."""
    logger.info(f"Removing experiment {experiment_id} from the search index")
    deleted = await index_service.delete_document(str(experiment_id))
    return DeletedDocumentResponse(id=str(experiment_id), deleted=deleted)
