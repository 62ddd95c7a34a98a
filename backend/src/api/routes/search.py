"""HTTP API routes for search operations."""

from __future__ import annotations

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query

from ...models.note import NoteType
from ...models.search import RetrievedExcerpt, SearchFilters, SortBy
from ...services.retrieval import RetrievalService
from ..middleware import get_retrieval_service

router = APIRouter()


@router.get("/api/search", response_model=list[RetrievedExcerpt])
async def search_notes(
    retrieval: Annotated[RetrievalService, Depends(get_retrieval_service)],
    q: str = Query("", max_length=2000),
    type: Optional[NoteType] = Query(None),
    tags: Optional[List[str]] = Query(None, description="Repeat to match any of several tags"),
    sort_by: SortBy = Query(SortBy.RELEVANCE, alias="sortBy"),
):
    """Full-text search across notes with optional type and tag facets."""
    filters = SearchFilters(type=type, tags=tags, sort_by=sort_by)
    return await retrieval.search_notes(q, filters)


__all__ = ["router"]
