"""Search request/response models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from .base import CamelModel
from .note import NoteType, normalize_tags


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    TITLE = "title"


class SearchFilters(CamelModel):
    """Optional facets narrowing a full-text search."""

    type: Optional[NoteType] = None
    tags: Optional[List[str]] = Field(
        None, description="Hits must carry at least one of these tags"
    )
    sort_by: SortBy = SortBy.RELEVANCE

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        if value is None:
            return None
        return normalize_tags(value) or None


class RetrievedExcerpt(CamelModel):
    """Search hit normalized for display and retrieval."""

    id: str
    title: str
    excerpt: str = Field(..., description="Highlighted content fragment or leading content")
    tags: List[str] = Field(default_factory=list)
    score: float = Field(..., description="Index relevance score")
    updated_at: datetime


__all__ = ["SortBy", "SearchFilters", "RetrievedExcerpt"]
