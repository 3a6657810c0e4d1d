"""Router for experiment search.

Flow: query parameters -> SearchQuery -> hybrid engine -> records hydrated
from the system of record, in engine order.
"""

from typing import Optional

from fastapi import APIRouter, Query

from prompt_commons.deps import ExperimentSearchServiceDep
from prompt_commons.schemas.experiment import ExperimentSearchPage
from prompt_commons.schemas.search import SearchQuery

router = APIRouter(prefix="/experiments", tags=["search"])


@router.get("/search", response_model=ExperimentSearchPage)
async def search_experiments(
    experiment_search_service: ExperimentSearchServiceDep,
    q: str = Query("", description="Free-text query"),
    tag: Optional[str] = Query(None, description="Only experiments carrying this tag"),
    model: Optional[str] = Query(None, description="AI model filter, 'All' disables it"),
    rate: int = Query(0, ge=0, le=100, description="Minimum reproduction rate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> ExperimentSearchPage:
    """Search experiments.

    Search backend failures are reported in the payload (search_available=false)
    rather than as an HTTP error.
    """
    query = SearchQuery(query=q, tag=tag, model=model, min_rate=rate, page=page, limit=limit)
    return await experiment_search_service.search_experiments(query)
