from datetime import datetime, timezone

import pytest
import pytest_asyncio

from backend.src.services.search_index import (
    DocumentNotFoundError,
    HighlightSpec,
    IndexUnavailableError,
    MatchClause,
    SearchDocument,
    SearchIndex,
    SearchQuery,
    SortSpec,
    TermClause,
    TermsClause,
    prepare_match_query,
)


def _doc(doc_id: str, title: str, content: str, *, tags=(), type="document", day: int = 1):
    return SearchDocument(
        id=doc_id,
        title=title,
        content=content,
        tags=list(tags),
        type=type,
        updated_at=datetime(2025, 1, day, tzinfo=timezone.utc),
    )


def _match(text: str, *extra, **kwargs) -> SearchQuery:
    return SearchQuery(must=(MatchClause(text), *extra), **kwargs)


async def _ids(index: SearchIndex, query: SearchQuery) -> list[str]:
    return [hit.id for hit in await index.query(query)]


@pytest_asyncio.fixture()
async def corpus(index: SearchIndex) -> SearchIndex:
    for document in (
        _doc("t", "Python tips", "misc notes", tags=["code"], day=3),
        _doc(
            "c",
            "Misc",
            "some long text about many things including python and others",
            tags=["reading", "code"],
            type="outline",
            day=5,
        ),
        _doc("f1", "Gardening", "tomatoes and basil", tags=["home"], day=2),
        _doc("f2", "Cooking", "pasta with basil", day=4),
        _doc("f3", "Travel", "trains across europe", day=1),
    ):
        await index.index_document(document)
    return index


class TestPrepareMatchQuery:
    def test_tokens_are_quoted_and_ored(self) -> None:
        assert prepare_match_query("O'Brien & co") == '"o" OR "brien" OR "co"'

    def test_operators_are_neutralized(self) -> None:
        assert prepare_match_query('NOT "x" AND y*') == '"not" OR "x" OR "and" OR "y"'

    def test_duplicate_tokens_collapse(self) -> None:
        assert prepare_match_query("Cat cat CAT") == '"cat"'

    @pytest.mark.parametrize("text", ["", "   ", "&&& ***", "__"])
    def test_no_tokens(self, text: str) -> None:
        assert prepare_match_query(text) is None


@pytest.mark.asyncio
async def test_title_matches_outrank_content_matches(corpus: SearchIndex) -> None:
    hits = await corpus.query(_match("python"))

    assert [hit.id for hit in hits] == ["t", "c"]
    assert hits[0].score > hits[1].score
    assert hits[1].tags == ["code", "reading"]


@pytest.mark.asyncio
async def test_any_token_matches(corpus: SearchIndex) -> None:
    assert set(await _ids(corpus, _match("basil europe"))) == {"f1", "f2", "f3"}


@pytest.mark.asyncio
async def test_stemming(corpus: SearchIndex) -> None:
    assert await _ids(corpus, _match("train")) == ["f3"]


@pytest.mark.asyncio
async def test_highlight_only_kept_when_content_matches(corpus: SearchIndex) -> None:
    hits = await corpus.query(_match("python", highlight=HighlightSpec("content", 150, 1)))
    by_id = {hit.id: hit for hit in hits}

    assert by_id["t"].highlights == []
    assert len(by_id["c"].highlights) == 1
    assert "<mark>python</mark>" in by_id["c"].highlights[0]


@pytest.mark.asyncio
async def test_term_clause_filters_type(corpus: SearchIndex) -> None:
    assert await _ids(corpus, _match("python", TermClause("type", "document"))) == ["t"]
    assert await _ids(corpus, _match("python", TermClause("type", "outline"))) == ["c"]


@pytest.mark.asyncio
async def test_terms_clause_matches_any_tag(corpus: SearchIndex) -> None:
    query = _match("basil python", TermsClause("tags", ("home", "reading")))

    assert set(await _ids(corpus, query)) == {"f1", "c"}


@pytest.mark.asyncio
async def test_empty_terms_clause_matches_nothing(corpus: SearchIndex) -> None:
    assert await _ids(corpus, _match("python", TermsClause("tags", ()))) == []


@pytest.mark.asyncio
async def test_match_without_tokens_returns_nothing(corpus: SearchIndex) -> None:
    assert await _ids(corpus, _match("?!")) == []


@pytest.mark.asyncio
async def test_sort_by_date_and_title(corpus: SearchIndex) -> None:
    by_date = _match("basil python europe", sort=SortSpec("updated_at", descending=True))
    by_title = _match("basil python europe", sort=SortSpec("title", descending=False))

    assert await _ids(corpus, by_date) == ["c", "f2", "t", "f1", "f3"]
    assert await _ids(corpus, by_title) == ["f2", "f1", "c", "t", "f3"]


@pytest.mark.asyncio
async def test_limit(corpus: SearchIndex) -> None:
    assert len(await _ids(corpus, _match("basil python europe", limit=2))) == 2


@pytest.mark.asyncio
async def test_index_document_replaces_previous_version(corpus: SearchIndex) -> None:
    await corpus.index_document(_doc("t", "Rust tips", "misc notes"))

    assert await _ids(corpus, _match("python")) == ["c"]
    assert await _ids(corpus, _match("rust")) == ["t"]
    assert await corpus.count() == 5


@pytest.mark.asyncio
async def test_update_document_merges_fields(corpus: SearchIndex) -> None:
    await corpus.update_document("f3", {"title": "Rail journeys", "tags": ["trips"]})

    hits = await corpus.query(_match("rail"))

    assert [hit.id for hit in hits] == ["f3"]
    assert hits[0].content == "trains across europe"
    assert hits[0].tags == ["trips"]


@pytest.mark.asyncio
async def test_update_document_requires_existing_document(index: SearchIndex) -> None:
    with pytest.raises(DocumentNotFoundError):
        await index.update_document("missing", {"title": "x"})


@pytest.mark.asyncio
async def test_update_document_upsert(index: SearchIndex) -> None:
    document = _doc("new", "Fresh note", "body")
    fields = {
        "title": document.title,
        "content": document.content,
        "tags": document.tags,
        "type": document.type,
        "updated_at": document.updated_at,
    }

    await index.update_document("new", fields, upsert=True)

    assert await _ids(index, _match("fresh")) == ["new"]


@pytest.mark.asyncio
async def test_update_document_field_validation(index: SearchIndex) -> None:
    with pytest.raises(ValueError):
        await index.update_document("x", {"colour": "red"})
    with pytest.raises(ValueError):
        await index.update_document("x", {"title": "partial"}, upsert=True)


@pytest.mark.asyncio
async def test_delete_document_is_idempotent(corpus: SearchIndex) -> None:
    assert await corpus.delete_document("t") is True
    assert await corpus.delete_document("t") is False
    assert await _ids(corpus, _match("python")) == ["c"]


@pytest.mark.asyncio
async def test_unavailable_index_raises(broken_index: SearchIndex) -> None:
    with pytest.raises(IndexUnavailableError):
        await broken_index.query(_match("python"))
    with pytest.raises(IndexUnavailableError):
        await broken_index.index_document(_doc("x", "X", "x"))


def test_compile_rejects_unsupported_fields(index: SearchIndex) -> None:
    with pytest.raises(ValueError):
        index.compile(_match("x", TermClause("title", "x")))
    with pytest.raises(ValueError):
        index.compile(SearchQuery(must=(MatchClause("x", fields=("id",)),)))
    with pytest.raises(ValueError):
        index.compile(_match("x", sort=SortSpec("created_at")))
