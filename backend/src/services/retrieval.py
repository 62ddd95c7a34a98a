"""Search retrieval and note writes mirrored into the search index."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional

from ..models.note import Link, Note, NoteCreate, NoteDetail, NoteUpdate
from ..models.search import RetrievedExcerpt, SearchFilters, SortBy
from .note_store import NoteStore
from .search_index import (
    Clause,
    HighlightSpec,
    MatchClause,
    SearchDocument,
    SearchHit,
    SearchIndex,
    SearchIndexError,
    SearchQuery,
    SortSpec,
    TermClause,
    TermsClause,
)

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 150
INDEX_SYNC_EVENT = "Search index out of sync with note store"

SORT_SPECS = {
    SortBy.RELEVANCE: SortSpec("_score", descending=True),
    SortBy.DATE: SortSpec("updated_at", descending=True),
    SortBy.TITLE: SortSpec("title", descending=False),
}


@dataclass
class NoteWriteResult:
    """Outcome of a store write and its index mirror."""

    note: Optional[Note]
    indexed: bool


def to_search_document(note: Note) -> SearchDocument:
    return SearchDocument(
        id=note.id,
        title=note.title,
        content=note.content,
        tags=list(note.tags),
        type=note.type.value,
        updated_at=note.updated_at,
    )


def to_excerpt(hit: SearchHit) -> RetrievedExcerpt:
    """Normalize an index hit, falling back to leading content without a highlight."""
    excerpt = hit.highlights[0] if hit.highlights else hit.content[:EXCERPT_LENGTH] + "..."
    return RetrievedExcerpt(
        id=hit.id,
        title=hit.title,
        excerpt=excerpt,
        tags=hit.tags,
        score=hit.score,
        updated_at=hit.updated_at,
    )


class RetrievalService:
    """Query the search index and keep it in step with the note store.

    Writes go to the store first; the store is the durability boundary. The
    index write follows once, best-effort. When it fails the note stays
    persisted but undiscoverable until re-indexed, which is reported through a
    warning log event and ``NoteWriteResult.indexed``.
    """

    def __init__(
        self,
        store: NoteStore,
        index: SearchIndex,
        *,
        result_limit: int = 10,
    ) -> None:
        self.store = store
        self.index = index
        self.result_limit = result_limit

    def build_query(self, query: str, filters: SearchFilters | None = None) -> SearchQuery:
        filters = filters or SearchFilters()
        must: List[Clause] = [MatchClause(query=query, fields=("title^2", "content"))]
        if filters.type is not None:
            must.append(TermClause("type", filters.type.value))
        if filters.tags:
            must.append(TermsClause("tags", tuple(filters.tags)))
        return SearchQuery(
            must=tuple(must),
            sort=SORT_SPECS[filters.sort_by],
            highlight=HighlightSpec("content", fragment_size=EXCERPT_LENGTH, number_of_fragments=1),
            limit=self.result_limit,
        )

    async def search_notes(
        self, query: str, filters: SearchFilters | None = None
    ) -> List[RetrievedExcerpt]:
        """Run a full-text/faceted search. Index failures propagate."""
        hits = await self.index.query(self.build_query(query, filters))
        return [to_excerpt(hit) for hit in hits]

    async def get_note(self, note_id: str) -> Optional[NoteDetail]:
        return await self.store.get_note(note_id)

    async def create_note(self, data: NoteCreate) -> NoteWriteResult:
        note = await self.store.create_note(data)
        indexed = await self._mirror("create", note.id, self.index.index_document(to_search_document(note)))
        return NoteWriteResult(note=note, indexed=indexed)

    async def update_note(self, note_id: str, changes: NoteUpdate) -> NoteWriteResult:
        note = await self.store.update_note(note_id, changes)
        document = to_search_document(note)
        indexed = await self._mirror(
            "update",
            note.id,
            self.index.update_document(
                note.id,
                {
                    "title": document.title,
                    "content": document.content,
                    "tags": document.tags,
                    "type": document.type,
                    "updated_at": document.updated_at,
                },
                upsert=True,
            ),
        )
        return NoteWriteResult(note=note, indexed=indexed)

    async def delete_note(self, note_id: str) -> NoteWriteResult:
        await self.store.delete_note(note_id)
        indexed = await self._mirror("delete", note_id, self.index.delete_document(note_id))
        return NoteWriteResult(note=None, indexed=indexed)

    async def create_link(self, source_id: str, target_id: str) -> Link:
        return await self.store.create_link(source_id, target_id)

    async def delete_link(self, source_id: str, target_id: str) -> None:
        await self.store.delete_link(source_id, target_id)

    async def _mirror(self, operation: str, note_id: str, write) -> bool:
        try:
            await write
        except (SearchIndexError, ValueError) as exc:
            logger.warning(
                INDEX_SYNC_EVENT,
                extra={"note_id": note_id, "operation": operation, "error": str(exc)},
            )
            return False
        return True


__all__ = [
    "RetrievalService",
    "NoteWriteResult",
    "to_excerpt",
    "to_search_document",
    "INDEX_SYNC_EVENT",
    "EXCERPT_LENGTH",
]
