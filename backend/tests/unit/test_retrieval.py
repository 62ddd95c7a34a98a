import logging
from datetime import datetime, timezone

import pytest

from backend.src.models.note import NoteCreate, NoteType, NoteUpdate
from backend.src.models.search import SearchFilters, SortBy
from backend.src.services.note_store import NoteNotFoundError, NoteStore
from backend.src.services.retrieval import (
    INDEX_SYNC_EVENT,
    RetrievalService,
    to_excerpt,
)
from backend.src.services.search_index import (
    IndexUnavailableError,
    MatchClause,
    SearchHit,
    SearchIndex,
    TermClause,
    TermsClause,
)


def _sync_warnings(caplog) -> list[logging.LogRecord]:
    return [record for record in caplog.records if record.getMessage() == INDEX_SYNC_EVENT]


class TestBuildQuery:
    def test_default_query_is_a_single_match_clause(self, retrieval: RetrievalService) -> None:
        query = retrieval.build_query("graphs")

        assert query.must == (MatchClause("graphs", ("title^2", "content")),)
        assert query.sort.field == "_score"
        assert query.highlight.field == "content"
        assert query.highlight.fragment_size == 150
        assert query.highlight.number_of_fragments == 1
        assert query.limit == 10

    def test_filters_become_and_clauses(self, retrieval: RetrievalService) -> None:
        filters = SearchFilters(type=NoteType.OUTLINE, tags=["y", "x"], sort_by=SortBy.TITLE)

        query = retrieval.build_query("graphs", filters)

        assert query.must[1:] == (TermClause("type", "outline"), TermsClause("tags", ("x", "y")))
        assert query.sort.field == "title"
        assert query.sort.descending is False

    def test_empty_tag_filter_is_ignored(self, retrieval: RetrievalService) -> None:
        query = retrieval.build_query("graphs", SearchFilters(tags=[]))

        assert len(query.must) == 1


def test_excerpt_falls_back_to_leading_content() -> None:
    hit = SearchHit(
        id="n1",
        title="Long",
        content="x" * 400,
        tags=[],
        type="document",
        updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        score=1.5,
    )

    assert to_excerpt(hit).excerpt == "x" * 150 + "..."

    hit.highlights = ["...the <mark>x</mark>..."]
    assert to_excerpt(hit).excerpt == "...the <mark>x</mark>..."


@pytest.mark.asyncio
async def test_created_note_is_searchable(retrieval: RetrievalService) -> None:
    result = await retrieval.create_note(
        NoteCreate(title="Graph theory", content="Breadth first search visits level by level")
    )

    hits = await retrieval.search_notes("breadth")

    assert result.indexed is True
    assert [hit.id for hit in hits] == [result.note.id]
    assert "<mark>" in hits[0].excerpt


@pytest.mark.asyncio
async def test_search_filters(retrieval: RetrievalService) -> None:
    doc = await retrieval.create_note(NoteCreate(title="Rust doc", tags=["x"]))
    outline = await retrieval.create_note(
        NoteCreate(title="Rust outline", type=NoteType.OUTLINE, tags=["y"])
    )
    untagged = await retrieval.create_note(NoteCreate(title="Rust misc"))

    documents = await retrieval.search_notes("rust", SearchFilters(type=NoteType.DOCUMENT))
    tagged = await retrieval.search_notes("rust", SearchFilters(tags=["x", "y"]))

    assert {hit.id for hit in documents} == {doc.note.id, untagged.note.id}
    assert {hit.id for hit in tagged} == {doc.note.id, outline.note.id}
    assert all({"x", "y"} & set(hit.tags) for hit in tagged)


@pytest.mark.asyncio
async def test_update_and_delete_are_mirrored(retrieval: RetrievalService) -> None:
    created = await retrieval.create_note(NoteCreate(title="Kettle", content="boils water"))

    updated = await retrieval.update_note(created.note.id, NoteUpdate(content="makes tea"))
    assert updated.indexed is True
    assert await retrieval.search_notes("water") == []
    assert [hit.id for hit in await retrieval.search_notes("tea")] == [created.note.id]

    deleted = await retrieval.delete_note(created.note.id)
    assert deleted.indexed is True
    assert await retrieval.search_notes("kettle") == []


@pytest.mark.asyncio
async def test_failed_index_write_keeps_note_and_warns(
    store: NoteStore, broken_index: SearchIndex, caplog
) -> None:
    retrieval = RetrievalService(store, broken_index)

    with caplog.at_level(logging.WARNING):
        result = await retrieval.create_note(NoteCreate(title="Orphan"))

    assert result.indexed is False
    assert (await store.get_note(result.note.id)).title == "Orphan"
    [warning] = _sync_warnings(caplog)
    assert warning.levelno == logging.WARNING
    assert warning.note_id == result.note.id
    assert warning.operation == "create"


@pytest.mark.asyncio
async def test_update_reindexes_a_note_the_index_missed(
    store: NoteStore, index: SearchIndex, broken_index: SearchIndex
) -> None:
    created = await RetrievalService(store, broken_index).create_note(
        NoteCreate(title="Lighthouse", content="keeper")
    )
    retrieval = RetrievalService(store, index)
    assert await retrieval.search_notes("lighthouse") == []

    result = await retrieval.update_note(created.note.id, NoteUpdate(content="keeper of the light"))

    assert result.indexed is True
    assert [hit.id for hit in await retrieval.search_notes("lighthouse")] == [created.note.id]


@pytest.mark.asyncio
async def test_failed_index_delete_still_deletes_note(
    store: NoteStore, broken_index: SearchIndex, caplog
) -> None:
    retrieval = RetrievalService(store, broken_index)

    with caplog.at_level(logging.WARNING):
        created = await retrieval.create_note(NoteCreate(title="Temp"))
        result = await retrieval.delete_note(created.note.id)

    assert result.indexed is False
    assert await store.get_note(created.note.id) is None
    assert [record.operation for record in _sync_warnings(caplog)] == ["create", "delete"]


@pytest.mark.asyncio
async def test_store_failure_skips_index_write(retrieval: RetrievalService) -> None:
    with pytest.raises(NoteNotFoundError):
        await retrieval.delete_note("missing")
    with pytest.raises(NoteNotFoundError):
        await retrieval.update_note("missing", NoteUpdate(title="x"))


@pytest.mark.asyncio
async def test_search_propagates_index_failure(store: NoteStore, broken_index: SearchIndex) -> None:
    with pytest.raises(IndexUnavailableError):
        await RetrievalService(store, broken_index).search_notes("anything")
