"""Search schemas for prompt-commons.

The search engine picks one of three strategies per call:
1. Tag browsing: tag filter present, recency ordered
2. Natural language: 3+ words, query analysis plus vector and lexical retrieval
3. Keyword: short queries, lexical retrieval with a small vector signal
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchMode(str, Enum):
    """Retrieval strategy chosen for a search call."""

    TAG_FILTER = "tag_filter"
    NATURAL_LANGUAGE = "natural_language"
    KEYWORD = "keyword"
    KEYWORD_FALLBACK = "keyword_fallback"


class QueryAnalysis(BaseModel):
    """Keywords, intent and restated query extracted from a search string.

    Accepts the camelCase keys a generative model replies with.
    """

    model_config = ConfigDict(populate_by_name=True)

    keywords: List[str] = Field(default_factory=list)
    intent: str = "search"
    expanded_query: str = Field(validation_alias="expandedQuery", default="")

    @field_validator("keywords", mode="before")
    @classmethod
    def normalize_keywords(cls, v) -> List[str]:
        """Lower-case, strip and de-duplicate keywords, keeping at most five."""
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, list):
            raise ValueError("keywords must be a list of strings")

        keywords: List[str] = []
        for item in v:
            if not isinstance(item, str):
                raise ValueError("keywords must be a list of strings")
            keyword = item.strip().lower()
            if keyword and keyword not in keywords:
                keywords.append(keyword)
        return keywords[:5]


class Perspectives(BaseModel):
    """Three short phrases describing an experiment from different angles."""

    problem: str
    tech: str
    solution: str

    @field_validator("problem", "solution")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("perspective text must not be blank")
        return v.strip()

    @field_validator("tech")
    @classmethod
    def strip_tech(cls, v: str) -> str:
        return v.strip()


class SearchQuery(BaseModel):
    """Search request parameters.

    query is free text. The optional filters admit or reject documents
    without affecting their score:
    - tag: exact match against the document's tag set
    - model: exact match against the AI model, "All" disables the filter
    - min_rate: reproduction rate lower bound, 0 disables the filter
    """

    query: str = ""
    tag: Optional[str] = None
    model: Optional[str] = None
    min_rate: int = Field(default=0, ge=0, le=100)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @field_validator("tag", "model")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class SearchResult(BaseModel):
    """A ranked search hit with its normalized score in [0, 1]."""

    id: str
    title: str
    description: str = ""
    prompt_text: str = ""
    ai_model: str = ""
    reproduction_rate: int = 0
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    score: float


class SearchResponse(BaseModel):
    """Outcome of a search call.

    success is False only when the search backend failed; data is then empty.
    total counts results that passed the relevance floor, across all pages.
    """

    success: bool = True
    data: List[SearchResult] = Field(default_factory=list)
    total: int = 0
    mode: Optional[SearchMode] = None
    message: Optional[str] = None
    error: Optional[str] = None
