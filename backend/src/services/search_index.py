"""SQLite FTS5 search index holding a projection of notes.

Queries are expressed as a small clause tree rather than raw SQL:

* ``MatchClause``: full-text match over weighted fields (``"title^2"``)
* ``TermClause``: exact value of a keyword field
* ``TermsClause``: keyword field equal to any of several values

A ``SearchQuery`` ANDs its ``must`` clauses together.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
import logging
import re
import sqlite3
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .database import DatabaseService, index_database

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"[^\W_]+", re.UNICODE)
HIGHLIGHT_OPEN = "<mark>"
HIGHLIGHT_CLOSE = "</mark>"

# Column order of the search_fts virtual table.
FTS_COLUMNS: Tuple[str, ...] = ("id", "title", "content")
TERM_FIELDS = {"type": "d.type", "id": "d.id"}
SORT_FIELDS = {"_score": "score", "updated_at": "d.updated_at", "title": "d.title"}
PARTIAL_FIELDS = {"title", "content", "tags", "type", "updated_at"}


class SearchIndexError(Exception):
    """Base class for search index failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class IndexUnavailableError(SearchIndexError):
    """Raised when the index backend cannot be queried or written."""


class DocumentNotFoundError(SearchIndexError):
    """Raised when a partial update targets a document the index does not hold."""


@dataclass(frozen=True)
class MatchClause:
    query: str
    fields: Tuple[str, ...] = ("title^2", "content")


@dataclass(frozen=True)
class TermClause:
    field: str
    value: str


@dataclass(frozen=True)
class TermsClause:
    field: str
    values: Tuple[str, ...]


Clause = Union[MatchClause, TermClause, TermsClause]


@dataclass(frozen=True)
class SortSpec:
    field: str = "_score"
    descending: bool = True


@dataclass(frozen=True)
class HighlightSpec:
    field: str = "content"
    fragment_size: int = 150
    number_of_fragments: int = 1


@dataclass(frozen=True)
class SearchQuery:
    must: Tuple[Clause, ...]
    sort: SortSpec = SortSpec()
    highlight: Optional[HighlightSpec] = None
    limit: int = 10


@dataclass
class SearchDocument:
    id: str
    title: str
    content: str
    tags: List[str]
    type: str
    updated_at: datetime


@dataclass
class SearchHit:
    id: str
    title: str
    content: str
    tags: List[str]
    type: str
    updated_at: datetime
    score: float
    highlights: List[str] = field(default_factory=list)


def prepare_match_query(query: str) -> Optional[str]:
    """
    Turn free text into an FTS5 MATCH expression.

    Each token is quoted to neutralize MATCH operators and the tokens are
    OR-ed so any overlapping term produces a hit. Returns None when the text
    holds no searchable token.
    """
    tokens = list(dict.fromkeys(match.group().lower() for match in TOKEN_PATTERN.finditer(query or "")))
    if not tokens:
        return None
    return " OR ".join(f'"{token}"' for token in tokens)


def _parse_fields(fields: Sequence[str]) -> Dict[str, float]:
    weights: Dict[str, float] = {}
    for spec in fields:
        name, _, boost = spec.partition("^")
        if name not in FTS_COLUMNS or name == "id":
            raise ValueError(f"Field is not full-text searchable: {name}")
        weights[name] = float(boost) if boost else 1.0
    return weights


def _fragment_tokens(fragment_size: int) -> int:
    # snippet() sizes fragments in tokens (max 64); assume ~6 characters per token.
    return max(1, min(64, fragment_size // 6))


class SearchIndex:
    """Eventually-consistent full-text projection of notes."""

    def __init__(self, db_service: DatabaseService | None = None) -> None:
        self.db_service = db_service or index_database()

    def initialize(self) -> None:
        self.db_service.initialize()

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as exc:
            logger.error("Search index operation failed", extra={"error": str(exc)})
            raise IndexUnavailableError(f"Search index unavailable: {exc}") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def index_document(self, document: SearchDocument) -> None:
        """Insert or replace the projection of one note."""
        await self._run(self._index_document, document)

    def _index_document(self, document: SearchDocument) -> None:
        conn = self.db_service.connect()
        try:
            with conn:
                self._delete_entries(conn, document.id)
                self._insert_entries(conn, document)
        finally:
            conn.close()

    async def update_document(
        self, doc_id: str, fields: Dict[str, Any], *, upsert: bool = False
    ) -> None:
        """
        Merge ``fields`` into an indexed document.

        With ``upsert`` a missing document is created from ``fields``, which then
        must carry every projected field.
        """
        unknown = set(fields) - PARTIAL_FIELDS
        if unknown:
            raise ValueError(f"Unknown document fields: {sorted(unknown)}")
        await self._run(self._update_document, doc_id, dict(fields), upsert)

    def _update_document(self, doc_id: str, fields: Dict[str, Any], upsert: bool) -> None:
        conn = self.db_service.connect()
        try:
            with conn:
                current = self._load_document(conn, doc_id)
                if current is None:
                    if not upsert:
                        raise DocumentNotFoundError(
                            f"Document not indexed: {doc_id}", {"id": doc_id}
                        )
                    missing = PARTIAL_FIELDS - set(fields)
                    if missing:
                        raise ValueError(f"Upsert requires fields: {sorted(missing)}")
                    merged = SearchDocument(id=doc_id, **fields)
                else:
                    merged = SearchDocument(
                        id=doc_id,
                        title=fields.get("title", current.title),
                        content=fields.get("content", current.content),
                        tags=list(fields.get("tags", current.tags)),
                        type=fields.get("type", current.type),
                        updated_at=fields.get("updated_at", current.updated_at),
                    )
                self._delete_entries(conn, doc_id)
                self._insert_entries(conn, merged)
        finally:
            conn.close()

    async def delete_document(self, doc_id: str) -> bool:
        """Remove a document; returns False when it was not indexed."""
        return await self._run(self._delete_document, doc_id)

    def _delete_document(self, doc_id: str) -> bool:
        conn = self.db_service.connect()
        try:
            with conn:
                return self._delete_entries(conn, doc_id) > 0
        finally:
            conn.close()

    def _delete_entries(self, conn: sqlite3.Connection, doc_id: str) -> int:
        cursor = conn.execute("DELETE FROM search_documents WHERE id = ?", (doc_id,))
        conn.execute("DELETE FROM search_fts WHERE id = ?", (doc_id,))
        conn.execute("DELETE FROM search_tags WHERE id = ?", (doc_id,))
        return cursor.rowcount

    def _insert_entries(self, conn: sqlite3.Connection, document: SearchDocument) -> None:
        conn.execute(
            """
            INSERT INTO search_documents (id, title, content, type, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                document.id,
                document.title,
                document.content,
                str(document.type),
                document.updated_at.isoformat(),
            ),
        )
        conn.execute(
            "INSERT INTO search_fts (id, title, content) VALUES (?, ?, ?)",
            (document.id, document.title, document.content),
        )
        tags = sorted(set(document.tags))
        if tags:
            conn.executemany(
                "INSERT INTO search_tags (id, tag) VALUES (?, ?)",
                [(document.id, tag) for tag in tags],
            )

    def _load_document(self, conn: sqlite3.Connection, doc_id: str) -> Optional[SearchDocument]:
        row = conn.execute(
            "SELECT id, title, content, type, updated_at FROM search_documents WHERE id = ?",
            (doc_id,),
        ).fetchone()
        if row is None:
            return None
        tags = [
            tag_row["tag"]
            for tag_row in conn.execute(
                "SELECT tag FROM search_tags WHERE id = ? ORDER BY tag", (doc_id,)
            ).fetchall()
        ]
        return SearchDocument(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            tags=tags,
            type=row["type"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query(self, search: SearchQuery) -> List[SearchHit]:
        """Execute a clause-tree query and return ranked hits."""
        sql, params = self.compile(search)
        if sql is None:
            return []
        return await self._run(self._query, sql, params, search.highlight is not None)

    async def count(self) -> int:
        return await self._run(self._count)

    def _count(self) -> int:
        conn = self.db_service.connect()
        try:
            row = conn.execute("SELECT COUNT(*) AS count FROM search_documents").fetchone()
        finally:
            conn.close()
        return int(row["count"])

    def compile(self, search: SearchQuery) -> Tuple[Optional[str], List[Any]]:
        """
        Translate a SearchQuery into SQL.

        Returns ``(None, [])`` when a clause can never match (a match clause
        without searchable tokens, or an empty terms list).
        """
        matches = [clause for clause in search.must if isinstance(clause, MatchClause)]
        if len(matches) > 1:
            raise ValueError("At most one match clause is supported per query")

        where: List[str] = []
        params: List[Any] = []
        select_score = "0.0 AS score"
        select_highlight = "NULL AS highlight"
        from_sql = "search_documents d"

        if matches:
            match = matches[0]
            expression = prepare_match_query(match.query)
            if expression is None:
                return None, []
            weights = _parse_fields(match.fields)
            columns = " ".join(name for name in FTS_COLUMNS if name in weights)
            bm25_weights = ", ".join(str(weights.get(name, 0.0)) for name in FTS_COLUMNS)
            from_sql = "search_fts f JOIN search_documents d ON d.id = f.id"
            select_score = f"-bm25(search_fts, {bm25_weights}) AS score"
            where.append("search_fts MATCH ?")
            params.append(f"{{{columns}}} : ({expression})")
            if search.highlight is not None:
                column_index = FTS_COLUMNS.index(search.highlight.field)
                select_highlight = (
                    f"snippet(search_fts, {column_index}, '{HIGHLIGHT_OPEN}', "
                    f"'{HIGHLIGHT_CLOSE}', '...', "
                    f"{_fragment_tokens(search.highlight.fragment_size)}) AS highlight"
                )

        for clause in search.must:
            if isinstance(clause, TermClause):
                column = TERM_FIELDS.get(clause.field)
                if column is None:
                    raise ValueError(f"Unsupported term field: {clause.field}")
                where.append(f"{column} = ?")
                params.append(clause.value)
            elif isinstance(clause, TermsClause):
                if clause.field != "tags":
                    raise ValueError(f"Unsupported terms field: {clause.field}")
                if not clause.values:
                    return None, []
                placeholders = ", ".join("?" for _ in clause.values)
                where.append(
                    "EXISTS (SELECT 1 FROM search_tags t "
                    f"WHERE t.id = d.id AND t.tag IN ({placeholders}))"
                )
                params.extend(clause.values)

        sort_column = SORT_FIELDS.get(search.sort.field)
        if sort_column is None:
            raise ValueError(f"Unsupported sort field: {search.sort.field}")
        direction = "DESC" if search.sort.descending else "ASC"

        sql = (
            "SELECT d.id, d.title, d.content, d.type, d.updated_at, "
            f"{select_score}, {select_highlight} "
            f"FROM {from_sql}"
        )
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY {sort_column} {direction}, d.id ASC LIMIT ?"
        params.append(search.limit)
        return sql, params

    def _query(self, sql: str, params: List[Any], want_highlight: bool) -> List[SearchHit]:
        conn = self.db_service.connect()
        try:
            rows = conn.execute(sql, params).fetchall()
            ids = [row["id"] for row in rows]
            tags_by_id: Dict[str, List[str]] = {doc_id: [] for doc_id in ids}
            if ids:
                placeholders = ", ".join("?" for _ in ids)
                for tag_row in conn.execute(
                    f"SELECT id, tag FROM search_tags WHERE id IN ({placeholders}) ORDER BY tag",
                    ids,
                ).fetchall():
                    tags_by_id[tag_row["id"]].append(tag_row["tag"])
        finally:
            conn.close()

        hits: List[SearchHit] = []
        for row in rows:
            highlight = row["highlight"]
            highlights = (
                [highlight]
                if want_highlight and highlight and HIGHLIGHT_OPEN in highlight
                else []
            )
            hits.append(
                SearchHit(
                    id=row["id"],
                    title=row["title"],
                    content=row["content"],
                    tags=tags_by_id[row["id"]],
                    type=row["type"],
                    updated_at=datetime.fromisoformat(row["updated_at"]),
                    score=float(row["score"]),
                    highlights=highlights,
                )
            )
        return hits


__all__ = [
    "SearchIndex",
    "SearchIndexError",
    "IndexUnavailableError",
    "DocumentNotFoundError",
    "SearchDocument",
    "SearchHit",
    "SearchQuery",
    "MatchClause",
    "TermClause",
    "TermsClause",
    "SortSpec",
    "HighlightSpec",
    "prepare_match_query",
]
