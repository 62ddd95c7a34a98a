"""Note and link pydantic models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .base import CamelModel

MAX_NOTE_CHARS = 1_048_576


class NoteType(str, Enum):
    DOCUMENT = "document"
    OUTLINE = "outline"


def normalize_tags(tags: Iterable[Any] | None) -> List[str]:
    """Collapse a tag collection into a sorted list of distinct non-empty strings."""
    if tags is None:
        return []
    if isinstance(tags, str):
        raise ValueError("Field 'tags' must be an array")
    cleaned = set()
    for tag in tags:
        if not isinstance(tag, str):
            raise ValueError("All tags must be strings")
        tag = tag.strip()
        if tag:
            cleaned.add(tag)
    return sorted(cleaned)


class Note(CamelModel):
    """Complete note as held by the note store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "5f0c7c1e9a3b4d2c8e6f1a2b3c4d5e6f",
                "title": "API Design",
                "content": "This document describes the public API...",
                "type": "document",
                "tags": ["api", "backend"],
                "metadata": {"project": "auth-service"},
                "createdAt": "2025-01-10T09:00:00Z",
                "updatedAt": "2025-01-15T14:30:00Z",
            }
        },
    )

    id: str = Field(..., min_length=1, description="Opaque, stable note identifier")
    title: str = Field(..., description="Display title")
    content: str = Field("", description="Note body")
    type: NoteType = Field(NoteType.DOCUMENT, description="Document or outline")
    tags: List[str] = Field(default_factory=list, description="Order-insignificant tag set")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Open key-value map")
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> List[str]:
        return normalize_tags(value)


class NoteCreate(CamelModel):
    """Request payload to create a note."""

    title: str = Field(..., min_length=1, max_length=512)
    content: str = Field("", max_length=MAX_NOTE_CHARS)
    type: NoteType = NoteType.DOCUMENT
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> List[str]:
        return normalize_tags(value)


class NoteUpdate(CamelModel):
    """Request payload to update a note; omitted fields are left unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=512)
    content: Optional[str] = Field(None, max_length=MAX_NOTE_CHARS)
    type: Optional[NoteType] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        return normalize_tags(value)


class Link(CamelModel):
    """Directed edge between two notes."""

    source_id: str
    target_id: str


class LinkCreate(CamelModel):
    """Request payload to link two notes."""

    source_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)


class LinkedNote(CamelModel):
    """The note on the other end of a link."""

    id: str
    title: str


class NoteDetail(Note):
    """Note with its outgoing and incoming links expanded."""

    outgoing_links: List[LinkedNote] = Field(default_factory=list)
    incoming_links: List[LinkedNote] = Field(default_factory=list)


class NoteWriteResponse(CamelModel):
    """A written note plus whether the search index accepted the change."""

    note: Note
    indexed: bool = Field(
        ..., description="False when the note is stored but not yet discoverable by search"
    )


__all__ = [
    "NoteType",
    "Note",
    "NoteCreate",
    "NoteUpdate",
    "Link",
    "LinkCreate",
    "LinkedNote",
    "NoteDetail",
    "NoteWriteResponse",
    "normalize_tags",
]
