"""Experiment search as the catalogue sees it: ranked ids hydrated from the system of record."""

import math

from loguru import logger

from prompt_commons.repository.experiment_repository import ExperimentRepository
from prompt_commons.schemas.experiment import (
    ExperimentSearchItem,
    ExperimentSearchPage,
    Pagination,
)
from prompt_commons.schemas.search import SearchQuery
from prompt_commons.services.search_service import SearchService

EMPTY_QUERY_MESSAGE = "Enter a search term."
NO_RESULTS_MESSAGE = "No experiments matched your search."
SEARCH_UNAVAILABLE_MESSAGE = "Search is temporarily unavailable."


class ExperimentSearchService:
    """Runs the search engine and returns full experiment records in engine order.

    The search index only supplies ids and scores; titles, prompt text and
    tags always come from the system of record, so stale index fields never
    reach the caller.
    """

    def __init__(self, search_service: SearchService, experiment_repository: ExperimentRepository):
        self.search_service = search_service
        self.experiment_repository = experiment_repository

    def _empty_page(self, query: SearchQuery, **kwargs) -> ExperimentSearchPage:
        return ExperimentSearchPage(
            items=[],
            pagination=Pagination(current_page=query.page, total_pages=0, total_results=0),
            **kwargs,
        )

    async def search_experiments(self, query: SearchQuery) -> ExperimentSearchPage:
        if not query.query.strip() and not query.tag:
            return self._empty_page(query, message=EMPTY_QUERY_MESSAGE)

        response = await self.search_service.search(query)
        mode = response.mode.value if response.mode else None

        if not response.success:
            logger.warning(f"Search unavailable: {response.error}")
            return self._empty_page(
                query, search_available=False, mode=mode, message=SEARCH_UNAVAILABLE_MESSAGE
            )

        if not response.data:
            return self._empty_page(
                query, mode=mode, message=response.message or NO_RESULTS_MESSAGE
            )

        ids = [int(result.id) for result in response.data if result.id.isdigit()]
        records = await self.experiment_repository.find_by_ids(ids)

        items = []
        for result in response.data:
            record = records.get(int(result.id)) if result.id.isdigit() else None
            if record is None:
                # Indexed but gone from the system of record; the next resync drops it
                logger.debug(f"Search hit {result.id} has no experiment record, skipping")
                continue
            items.append(
                ExperimentSearchItem(**record.model_dump(), similarity_score=result.score)
            )

        return ExperimentSearchPage(
            items=items,
            pagination=Pagination(
                current_page=query.page,
                total_pages=math.ceil(response.total / query.limit),
                total_results=response.total,
            ),
            mode=mode,
        )
