"""Hybrid search over experiments: mode selection, scoring, relevance floors and pagination."""

from typing import Optional

from loguru import logger

from prompt_commons.config import PromptCommonsConfig
from prompt_commons.providers.embedding_provider import EmbeddingProvider
from prompt_commons.providers.errors import EmbeddingError
from prompt_commons.repository.search_document import SearchDocument
from prompt_commons.repository.search_query import (
    KnnClause,
    LexicalClause,
    SearchFilters,
    StoreQuery,
    StoreSort,
)
from prompt_commons.repository.search_repository import SearchRepository
from prompt_commons.schemas.search import SearchMode, SearchQuery, SearchResponse, SearchResult
from prompt_commons.services.query_analyzer import QueryAnalyzer

QUERY_TOO_SHORT_MESSAGE = "Query too short"
ALL_MODELS = "All"

# Keyword mode: a title hit outweighs anything else
KEYWORD_FIELD_WEIGHTS = {
    "title": 10.0,
    "tags": 3.0,
    "prompt_text": 1.0,
    "description": 1.0,
    "text_problem": 1.0,
    "text_tech": 1.0,
    "text_solution": 1.0,
}

# Natural-language mode: extracted keywords and the raw query both match these
NATURAL_LANGUAGE_FIELD_WEIGHTS = {
    "title": 3.0,
    "tags": 2.0,
    "prompt_text": 1.0,
    "description": 1.0,
    "text_problem": 1.5,
    "text_tech": 1.5,
    "text_solution": 1.5,
}
KEYWORDS_CLAUSE_BOOST = 2.0
RAW_QUERY_CLAUSE_BOOST = 1.0

# Perspective vector boosts: solution first, problem and tech level below it
NATURAL_LANGUAGE_KNN_BOOSTS = {
    "vec_solution": 5.0,
    "vec_problem": 3.0,
    "vec_tech": 3.0,
}
KEYWORD_KNN_FIELD = "vec_solution"
KEYWORD_KNN_BOOST = 1.0

# Tag browsing: the query only narrows the tagged set
TAG_FIELD_WEIGHTS = {
    "title": 1.0,
    "description": 1.0,
    "prompt_text": 1.0,
}


def normalize_scores(raw_scores: list[float]) -> list[float]:
    """Divide every score by the top score so the best hit is exactly 1.0.

    When the top score is not positive every hit is equally relevant.
    """
    if not raw_scores:
        return []
    top = max(raw_scores)
    if top <= 0:
        return [1.0 for _ in raw_scores]
    return [max(0.0, min(1.0, score / top)) for score in raw_scores]


def build_filters(query: SearchQuery) -> SearchFilters:
    """Structural filters: "All" and a zero rate mean no filter."""
    model = query.model if query.model and query.model != ALL_MODELS else None
    return SearchFilters(model=model, min_rate=query.min_rate or 0, tag=query.tag)


class SearchService:
    """Hybrid keyword and vector search.

    Supports three strategies, chosen per call:
    1. Tag browsing when a tag filter is present (recency order, no floor)
    2. Natural language for queries of three or more words
    3. Keyword for shorter queries
    Scores are normalized against the top hit and cut at a per-mode floor.
    """

    def __init__(
        self,
        search_repository: SearchRepository,
        query_analyzer: QueryAnalyzer,
        embedding_provider: Optional[EmbeddingProvider],
        app_config: PromptCommonsConfig,
    ):
        self.repository = search_repository
        self.query_analyzer = query_analyzer
        self.embedding_provider = embedding_provider
        self.app_config = app_config

    def floor_for(self, mode: SearchMode) -> float:
        if mode == SearchMode.TAG_FILTER:
            return self.app_config.search_floor_tag
        if mode == SearchMode.KEYWORD:
            return self.app_config.search_floor_keyword
        return self.app_config.search_floor_natural_language

    async def _embed_query(self, text: str) -> Optional[list[float]]:
        """Embed a query for vector retrieval, or None when that is not possible."""
        if self.embedding_provider is None or not self.repository.semantic_enabled:
            return None
        try:
            return await self.embedding_provider.embed(text)
        except EmbeddingError as e:
            logger.warning(f"Query embedding failed, continuing with lexical search: {e}")
            return None

    def _tag_query(self, text: str, filters: SearchFilters) -> StoreQuery:
        must = LexicalClause(text=text, fields=TAG_FIELD_WEIGHTS) if text else None
        return StoreQuery(match_all=True, must=must, filters=filters, sort=StoreSort.RECENCY)

    async def _natural_language_query(
        self, text: str, filters: SearchFilters
    ) -> tuple[SearchMode, StoreQuery]:
        analysis = await self.query_analyzer.analyze(text)

        should = []
        if analysis.keywords:
            should.append(
                LexicalClause(
                    text=" ".join(analysis.keywords),
                    fields=NATURAL_LANGUAGE_FIELD_WEIGHTS,
                    boost=KEYWORDS_CLAUSE_BOOST,
                )
            )
        should.append(
            LexicalClause(
                text=text, fields=NATURAL_LANGUAGE_FIELD_WEIGHTS, boost=RAW_QUERY_CLAUSE_BOOST
            )
        )

        vector = await self._embed_query(analysis.expanded_query or text)
        if vector is None:
            return SearchMode.KEYWORD_FALLBACK, StoreQuery(should=should, filters=filters)

        knn = [
            KnnClause(
                field=field_name,
                vector=vector,
                k=self.app_config.search_nl_knn_k,
                num_candidates=self.app_config.search_nl_num_candidates,
                boost=boost,
            )
            for field_name, boost in NATURAL_LANGUAGE_KNN_BOOSTS.items()
        ]
        return SearchMode.NATURAL_LANGUAGE, StoreQuery(should=should, knn=knn, filters=filters)

    async def _keyword_query(self, text: str, filters: SearchFilters) -> StoreQuery:
        should = [LexicalClause(text=text, fields=KEYWORD_FIELD_WEIGHTS)]
        knn = []
        vector = await self._embed_query(text)
        if vector is not None:
            knn.append(
                KnnClause(
                    field=KEYWORD_KNN_FIELD,
                    vector=vector,
                    k=self.app_config.search_keyword_knn_k,
                    num_candidates=self.app_config.search_keyword_num_candidates,
                    boost=KEYWORD_KNN_BOOST,
                )
            )
        return StoreQuery(should=should, knn=knn, filters=filters)

    def _to_result(self, document: SearchDocument, score: float) -> SearchResult:
        return SearchResult(
            id=document.id,
            title=document.title,
            description=document.description,
            prompt_text=document.prompt_text,
            ai_model=document.ai_model,
            reproduction_rate=document.reproduction_rate,
            tags=document.tags,
            created_at=document.created_at,
            score=score,
        )

    async def search(self, query: SearchQuery) -> SearchResponse:
        """Search experiments. Backend failures come back as success=False, never raised."""
        text = query.query.strip()
        if not query.tag and len(text) < self.app_config.search_min_query_length:
            return SearchResponse(success=True, data=[], total=0, message=QUERY_TOO_SHORT_MESSAGE)

        filters = build_filters(query)
        # Fetch enough candidates to serve the requested page
        window = max(self.app_config.search_candidate_window, query.page * query.limit)
        mode: Optional[SearchMode] = None

        try:
            if query.tag:
                mode = SearchMode.TAG_FILTER
                store_query = self._tag_query(text, filters)
            elif self.query_analyzer.classify(text) == SearchMode.NATURAL_LANGUAGE:
                mode, store_query = await self._natural_language_query(text, filters)
            else:
                mode = SearchMode.KEYWORD
                store_query = await self._keyword_query(text, filters)

            store_query.size = window
            logger.debug(f"Searching '{text}' mode={mode.value} filters={filters}")
            result = await self.repository.search(store_query)
        except Exception as e:
            logger.error(f"Search failed for '{text}': {e}")
            return SearchResponse(success=False, error=str(e), data=[], total=0, mode=mode)

        floor = self.floor_for(mode)
        scores = normalize_scores([hit.score or 0.0 for hit in result.hits])
        passing = [
            (document, score)
            for document, score in zip(result.hits, scores, strict=True)
            if score >= floor
        ]

        # With no floor every hit passes, so the store's count is the filtered count
        total = result.total if floor <= 0 else len(passing)

        start = (query.page - 1) * query.limit
        page = passing[start : start + query.limit]
        logger.debug(
            f"Search '{text}' mode={mode.value}: {result.total} hits, "
            f"{len(passing)} above floor {floor}, returning {len(page)}"
        )
        return SearchResponse(
            success=True,
            data=[self._to_result(document, score) for document, score in page],
            total=total,
            mode=mode,
        )
