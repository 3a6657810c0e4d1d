"""Backend-neutral query description for the search store.

The search service assembles a StoreQuery per call; the repository turns it
into FTS5 and sqlite-vec statements. Clauses in `should` and `knn` are
OR-combined and their scores summed. `must` and `filters` only admit or
reject documents.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from prompt_commons.repository.search_document import SearchDocument


class StoreSort(str, Enum):
    SCORE = "score"
    RECENCY = "recency"


@dataclass
class SearchFilters:
    """Exact and range filters applied as hard constraints."""

    model: Optional[str] = None
    min_rate: int = 0
    tag: Optional[str] = None

    @property
    def active(self) -> bool:
        return bool(self.model) or self.min_rate > 0 or bool(self.tag)


@dataclass
class LexicalClause:
    """Full-text match of `text` against weighted fields.

    fields maps column names to per-column weights; boost scales the
    clause's total contribution.
    """

    text: str
    fields: dict[str, float]
    boost: float = 1.0


@dataclass
class KnnClause:
    """Nearest-neighbour retrieval against one perspective vector field.

    Without filters, num_candidates rows are pulled from the vector index and
    the k closest contribute cosine similarity times boost. With filters, the
    k closest rows among the admitted ones contribute.
    """

    field: str
    vector: list[float]
    k: int
    num_candidates: int
    boost: float = 1.0


@dataclass
class StoreQuery:
    should: list[LexicalClause] = field(default_factory=list)
    knn: list[KnnClause] = field(default_factory=list)
    must: Optional[LexicalClause] = None
    filters: SearchFilters = field(default_factory=SearchFilters)
    sort: StoreSort = StoreSort.SCORE
    match_all: bool = False
    size: int = 100


@dataclass
class StoreSearchResult:
    """Hits ordered as requested (raw scores assigned) and the total match count."""

    hits: list[SearchDocument]
    total: int


@dataclass
class BulkIndexResult:
    """Per-item outcome of a bulk upsert."""

    indexed: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
