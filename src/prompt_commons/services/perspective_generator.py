"""Perspective generation: three short phrases describing an experiment for semantic retrieval."""

from typing import Optional

from loguru import logger
from pydantic import ValidationError

from prompt_commons.providers.errors import ProviderError
from prompt_commons.providers.generative_provider import GenerativeProvider
from prompt_commons.schemas.search import Perspectives
from prompt_commons.utils import parse_json_reply

PERSPECTIVE_PROMPT = """You describe AI prompt experiments for a search index.

Title: {title}
AI model: {ai_model}
Prompt:
{prompt_text}

Reply with JSON only, in this exact shape:
{{"problem": "...", "tech": "...", "solution": "..."}}

- problem: the problem or issue this prompt solves, one short phrase
- tech: the technology, language or library involved, one short phrase
- solution: the technique or outcome the prompt produces, one short phrase
"""


def fallback_perspectives(title: str, ai_model: Optional[str]) -> Perspectives:
    """Deterministic perspectives used whenever generation fails."""
    return Perspectives.model_construct(problem=title, tech=ai_model or "", solution=title)


class PerspectiveGenerator:
    """Derives problem/tech/solution phrases for a document at index time."""

    def __init__(
        self,
        generative_provider: Optional[GenerativeProvider] = None,
        prompt_max_chars: int = 2000,
    ):
        self.generative_provider = generative_provider
        self.prompt_max_chars = prompt_max_chars

    def parse_perspectives(self, reply: Optional[str]) -> Optional[Perspectives]:
        data = parse_json_reply(reply)
        if not isinstance(data, dict):
            return None
        try:
            return Perspectives.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Perspective reply failed validation: {e}")
            return None

    async def generate(
        self, title: str, prompt_text: str, ai_model: Optional[str] = None
    ) -> Perspectives:
        """Generate perspectives for one experiment. Never raises."""
        if self.generative_provider is None:
            return fallback_perspectives(title, ai_model)

        prompt = PERSPECTIVE_PROMPT.format(
            title=title,
            ai_model=ai_model or "unspecified",
            prompt_text=(prompt_text or "")[: self.prompt_max_chars],
        )
        try:
            reply = await self.generative_provider.generate(prompt)
        except ProviderError as e:
            logger.warning(f"Perspective generation failed for '{title}', using fallback: {e}")
            return fallback_perspectives(title, ai_model)
        except Exception as e:  # pragma: no cover
            logger.error(f"Unexpected perspective generation failure for '{title}': {e}")
            return fallback_perspectives(title, ai_model)

        perspectives = self.parse_perspectives(reply)
        if perspectives is None:
            logger.warning(f"Malformed perspective reply for '{title}', using fallback")
            return fallback_perspectives(title, ai_model)
        return perspectives
