"""Search index data structures."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from prompt_commons.utils import ensure_timezone_aware

VECTOR_FIELDS = ("vec_problem", "vec_tech", "vec_solution")


@dataclass
class SearchDocument:
    """One experiment as stored in the search index, with score when returned from search."""

    id: str
    title: str
    prompt_text: str = ""
    description: str = ""
    ai_model: str = ""
    tags: list[str] = field(default_factory=list)
    reproduction_rate: int = 0

    # date values
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Perspective phrases
    text_problem: str = ""
    text_tech: str = ""
    text_solution: str = ""

    # Perspective embeddings, None when generation failed for that slot
    vec_problem: Optional[list[float]] = None
    vec_tech: Optional[list[float]] = None
    vec_solution: Optional[list[float]] = None

    # assigned in result
    score: Optional[float] = None

    def vectors(self) -> dict[str, Optional[list[float]]]:
        """Return perspective vectors keyed by field name."""
        return {name: getattr(self, name) for name in VECTOR_FIELDS}

    @property
    def embedded_count(self) -> int:
        """Number of perspective vectors present."""
        return sum(1 for vector in self.vectors().values() if vector)

    def to_insert(self) -> dict:
        """Convert to dict for insertion into the FTS table."""
        return {
            "doc_id": self.id,
            "title": self.title,
            "description": self.description or "",
            "prompt_text": self.prompt_text or "",
            "tags": " ".join(self.tags),
            "text_problem": self.text_problem or "",
            "text_tech": self.text_tech or "",
            "text_solution": self.text_solution or "",
            "ai_model": self.ai_model or "",
            "tags_json": json.dumps(self.tags),
            "reproduction_rate": int(self.reproduction_rate or 0),
            "created_at": ensure_timezone_aware(self.created_at).isoformat()
            if self.created_at
            else None,
            "updated_at": ensure_timezone_aware(self.updated_at).isoformat()
            if self.updated_at
            else None,
        }

    @classmethod
    def from_row(cls, row) -> "SearchDocument":
        """Build a document from a search_document row (vectors are loaded separately)."""
        return cls(
            id=row.doc_id,
            title=row.title,
            description=row.description or "",
            prompt_text=row.prompt_text or "",
            ai_model=row.ai_model or "",
            tags=json.loads(row.tags_json) if row.tags_json else [],
            reproduction_rate=int(row.reproduction_rate or 0),
            created_at=datetime.fromisoformat(row.created_at) if row.created_at else None,
            updated_at=datetime.fromisoformat(row.updated_at) if row.updated_at else None,
            text_problem=row.text_problem or "",
            text_tech=row.text_tech or "",
            text_solution=row.text_solution or "",
        )
