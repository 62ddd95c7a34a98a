"""Pydantic models for question answering and writing assistance."""

from typing import List

from pydantic import Field

from .base import CamelModel


class SourceAttribution(CamelModel):
    """Note cited as the basis for a synthesized answer."""
    id: str
    title: str


class QuestionRequest(CamelModel):
    """Request payload for question answering."""
    question: str = Field(..., min_length=1, max_length=2000, description="Natural language question")


class AnswerResponse(CamelModel):
    """Synthesized answer with deduplicated, rank-ordered sources."""
    answer: str = Field(..., description="Synthesized answer")
    source_notes: List[SourceAttribution] = Field(default_factory=list)


class LinkSuggestion(CamelModel):
    """A note worth linking to, with the reason it was suggested."""
    id: str
    title: str
    reason: str


class ContentRequest(CamelModel):
    """Text to tag, improve or summarize."""
    content: str = Field(..., min_length=1, max_length=1_048_576)


class TagsResponse(CamelModel):
    tags: List[str] = Field(default_factory=list)


class ContentResponse(CamelModel):
    content: str


class SummaryResponse(CamelModel):
    summary: str


__all__ = [
    "SourceAttribution",
    "QuestionRequest",
    "AnswerResponse",
    "LinkSuggestion",
    "ContentRequest",
    "TagsResponse",
    "ContentResponse",
    "SummaryResponse",
]
