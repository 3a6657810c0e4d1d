"""Experiment schemas shared between the system of record and the search layer."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ExperimentRecord(BaseModel):
    """An experiment projected through its active version.

    This is the shape the indexer consumes and the search API returns.
    """

    id: int
    title: str
    description: str = ""
    prompt_text: str = ""
    ai_model: str = ""
    tags: List[str] = Field(default_factory=list)
    reproduction_rate: int = Field(default=0, ge=0, le=100)
    version_number: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def document_id(self) -> str:
        """Identifier of the matching search document."""
        return str(self.id)


class ExperimentSearchItem(ExperimentRecord):
    """An experiment record annotated with its search score."""

    similarity_score: float


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_results: int


class ExperimentSearchPage(BaseModel):
    """One page of experiment search results, hydrated from the system of record."""

    items: List[ExperimentSearchItem] = Field(default_factory=list)
    pagination: Pagination
    search_available: bool = True
    mode: Optional[str] = None
    message: Optional[str] = None
