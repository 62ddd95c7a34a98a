"""Pydantic models for data validation and serialization."""

from .assistant import (
    AnswerResponse,
    ContentRequest,
    ContentResponse,
    LinkSuggestion,
    QuestionRequest,
    SourceAttribution,
    SummaryResponse,
    TagsResponse,
)
from .graph import ConnectedNote, GraphData, GraphLink, GraphNode, GraphStats, ShortestPath
from .note import (
    Link,
    LinkCreate,
    LinkedNote,
    Note,
    NoteCreate,
    NoteDetail,
    NoteType,
    NoteUpdate,
    NoteWriteResponse,
)
from .search import RetrievedExcerpt, SearchFilters, SortBy

__all__ = [
    "Note",
    "NoteType",
    "NoteCreate",
    "NoteUpdate",
    "NoteDetail",
    "NoteWriteResponse",
    "Link",
    "LinkCreate",
    "LinkedNote",
    "GraphNode",
    "GraphLink",
    "GraphData",
    "GraphStats",
    "ConnectedNote",
    "ShortestPath",
    "SortBy",
    "SearchFilters",
    "RetrievedExcerpt",
    "SourceAttribution",
    "QuestionRequest",
    "AnswerResponse",
    "LinkSuggestion",
    "ContentRequest",
    "TagsResponse",
    "ContentResponse",
    "SummaryResponse",
]
