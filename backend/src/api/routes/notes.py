"""HTTP API routes for note and link operations."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...models.note import Link, LinkCreate, NoteCreate, NoteDetail, NoteUpdate, NoteWriteResponse
from ...services.retrieval import RetrievalService
from ..middleware import get_retrieval_service

router = APIRouter()

INDEX_SYNC_HEADER = "X-Search-Index-Synced"

Retrieval = Annotated[RetrievalService, Depends(get_retrieval_service)]


@router.post("/api/notes", response_model=NoteWriteResponse, status_code=201)
async def create_note(create: NoteCreate, retrieval: Retrieval):
    """Create a note and index it for search."""
    result = await retrieval.create_note(create)
    return NoteWriteResponse(note=result.note, indexed=result.indexed)


@router.get("/api/notes/{note_id}", response_model=NoteDetail)
async def get_note(note_id: str, retrieval: Retrieval):
    """Get a note with its outgoing and incoming links."""
    note = await retrieval.get_note(note_id)
    if note is None:
        raise HTTPException(status_code=404, detail=f"Note not found: {note_id}")
    return note


@router.put("/api/notes/{note_id}", response_model=NoteWriteResponse)
async def update_note(note_id: str, update: NoteUpdate, retrieval: Retrieval):
    """Update the given fields of a note and re-index it."""
    result = await retrieval.update_note(note_id, update)
    return NoteWriteResponse(note=result.note, indexed=result.indexed)


@router.delete("/api/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: str, retrieval: Retrieval) -> Response:
    """Delete a note, its links and its search entry."""
    result = await retrieval.delete_note(note_id)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.headers[INDEX_SYNC_HEADER] = "true" if result.indexed else "false"
    return response


@router.post("/api/links", response_model=Link, status_code=201)
async def create_link(link: LinkCreate, retrieval: Retrieval):
    """Link ``sourceId`` to ``targetId``."""
    return await retrieval.create_link(link.source_id, link.target_id)


@router.delete(
    "/api/links/{source_id}/{target_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_link(source_id: str, target_id: str, retrieval: Retrieval) -> Response:
    await retrieval.delete_link(source_id, target_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router", "INDEX_SYNC_HEADER"]
