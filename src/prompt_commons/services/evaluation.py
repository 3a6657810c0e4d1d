"""Relevance smoke test for the search engine.

Each case is a natural-language query plus keywords a relevant result should
carry. A case passes when any of the top results has one of the keywords in
its title or tags (case-insensitive substring match).
"""

from dataclasses import dataclass, field
from typing import List

from loguru import logger

from prompt_commons.schemas.search import SearchQuery, SearchResult
from prompt_commons.services.search_service import SearchService

EVALUATION_TOP_K = 3


@dataclass(frozen=True)
class EvaluationCase:
    intent: str
    query: str
    expected_keywords: tuple[str, ...]


DEFAULT_EVALUATION_CASES: tuple[EvaluationCase, ...] = (
    EvaluationCase(
        intent="Optimization",
        query="Make this code run faster",
        expected_keywords=("Optimization", "Refactor", "Speed", "Performance", "Optimize"),
    ),
    EvaluationCase(
        intent="Debugging",
        query="Find bugs in my function",
        expected_keywords=("Bug", "Fix", "Debug", "Error", "Leak"),
    ),
    EvaluationCase(
        intent="Documentation",
        query="Explain what this code does",
        expected_keywords=("Documentation", "Explanation", "Summary", "Javadoc", "Doc", "OpenAPI"),
    ),
    EvaluationCase(
        intent="Testing",
        query="Ensure code reliability",
        expected_keywords=("Unit Test", "TDD", "Testing", "Jest", "Test", "Case"),
    ),
    EvaluationCase(
        intent="Translation",
        query="Change Java code to Python",
        expected_keywords=("Translation", "Convert", "Porting", "Translate"),
    ),
)


@dataclass
class CaseOutcome:
    case: EvaluationCase
    results: List[SearchResult] = field(default_factory=list)
    relevant_ids: List[str] = field(default_factory=list)
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None and bool(self.relevant_ids)


def is_relevant(result: SearchResult, expected_keywords: tuple[str, ...]) -> bool:
    haystacks = [result.title.lower(), *(tag.lower() for tag in result.tags)]
    return any(
        keyword.lower() in haystack for keyword in expected_keywords for haystack in haystacks
    )


async def evaluate_case(search_service: SearchService, case: EvaluationCase) -> CaseOutcome:
    outcome = CaseOutcome(case=case)
    response = await search_service.search(SearchQuery(query=case.query, limit=EVALUATION_TOP_K))
    if not response.success:
        outcome.error = response.error or "search failed"
        return outcome
    if not response.data:
        outcome.error = "no results"
        return outcome

    outcome.results = list(response.data)
    outcome.relevant_ids = [
        result.id for result in outcome.results if is_relevant(result, case.expected_keywords)
    ]
    logger.info(
        f"Evaluation '{case.intent}': {len(outcome.relevant_ids)}/{len(outcome.results)} relevant"
    )
    return outcome


async def evaluate_search(
    search_service: SearchService,
    cases: tuple[EvaluationCase, ...] = DEFAULT_EVALUATION_CASES,
) -> List[CaseOutcome]:
    """Run every case in order and return their outcomes."""
    return [await evaluate_case(search_service, case) for case in cases]
