"""Query classification and keyword extraction for search strings."""

from typing import Optional

from loguru import logger
from pydantic import ValidationError

from prompt_commons.providers.errors import ProviderError
from prompt_commons.providers.generative_provider import GenerativeProvider
from prompt_commons.schemas.search import QueryAnalysis, SearchMode
from prompt_commons.utils import parse_json_reply

MAX_KEYWORDS = 5
MIN_KEYWORD_LENGTH = 3
DEFAULT_INTENT = "search"

# Glue words dropped when keywords are extracted without the model
STOP_WORDS = frozenset(
    {
        "a",
        "about",
        "an",
        "and",
        "any",
        "are",
        "as",
        "at",
        "be",
        "best",
        "by",
        "can",
        "code",
        "could",
        "do",
        "does",
        "find",
        "for",
        "from",
        "get",
        "give",
        "help",
        "how",
        "in",
        "into",
        "is",
        "it",
        "make",
        "me",
        "my",
        "need",
        "of",
        "on",
        "or",
        "our",
        "please",
        "prompt",
        "show",
        "should",
        "some",
        "that",
        "the",
        "their",
        "this",
        "to",
        "use",
        "using",
        "want",
        "was",
        "way",
        "we",
        "what",
        "when",
        "where",
        "which",
        "who",
        "why",
        "with",
        "would",
        "you",
        "your",
    }
)

ANALYSIS_PROMPT = """You analyze search queries for a catalogue of AI prompt experiments.

Query: "{query}"

Reply with JSON only, in this exact shape:
{{"keywords": ["..."], "intent": "...", "expandedQuery": "..."}}

- keywords: 2 to 5 technical terms a matching experiment would contain, lowercase
- intent: one verb or label describing the goal (for example debug, optimize, document, test, translate)
- expandedQuery: the query restated as one clear sentence
"""


def fallback_analysis(query: str) -> QueryAnalysis:
    """Extract keywords locally: lowercase, drop stop words and short tokens, keep five.

    Pure and total; used whenever the model is unavailable or replies badly.
    """
    keywords: list[str] = []
    for token in query.lower().split():
        if len(token) < MIN_KEYWORD_LENGTH or token in STOP_WORDS:
            continue
        if token not in keywords:
            keywords.append(token)
    return QueryAnalysis(
        keywords=keywords[:MAX_KEYWORDS],
        intent=DEFAULT_INTENT,
        expanded_query=query,
    )


class QueryAnalyzer:
    """Classifies search strings and expands natural-language ones with a generative model."""

    def __init__(
        self,
        generative_provider: Optional[GenerativeProvider] = None,
        natural_language_min_words: int = 3,
    ):
        self.generative_provider = generative_provider
        self.natural_language_min_words = natural_language_min_words

    def classify(self, query: str) -> SearchMode:
        """Natural language at natural_language_min_words whitespace-separated words, else keyword."""
        if len(query.split()) >= self.natural_language_min_words:
            return SearchMode.NATURAL_LANGUAGE
        return SearchMode.KEYWORD

    def parse_analysis(self, reply: Optional[str], query: str) -> Optional[QueryAnalysis]:
        """Decode a model reply into a QueryAnalysis, or None if it is unusable."""
        data = parse_json_reply(reply)
        if not isinstance(data, dict):
            return None
        try:
            analysis = QueryAnalysis.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Query analysis reply failed validation: {e}")
            return None

        if not analysis.keywords:
            return None
        if not analysis.intent.strip():
            analysis.intent = DEFAULT_INTENT
        if not analysis.expanded_query.strip():
            analysis.expanded_query = query
        return analysis

    async def analyze(self, query: str) -> QueryAnalysis:
        """Return keywords, intent and expanded query. Never raises."""
        query = query.strip()
        if self.classify(query) != SearchMode.NATURAL_LANGUAGE or self.generative_provider is None:
            return fallback_analysis(query)

        try:
            reply = await self.generative_provider.generate(ANALYSIS_PROMPT.format(query=query))
        except ProviderError as e:
            logger.warning(f"Query analysis unavailable, using fallback: {e}")
            return fallback_analysis(query)
        except Exception as e:  # pragma: no cover
            logger.error(f"Unexpected query analysis failure, using fallback: {e}")
            return fallback_analysis(query)

        analysis = self.parse_analysis(reply, query)
        if analysis is None:
            logger.warning(f"Malformed query analysis reply, using fallback for: {query}")
            return fallback_analysis(query)

        logger.debug(
            f"Analyzed query '{query}': intent={analysis.intent} keywords={analysis.keywords}"
        )
        return analysis
