"""SQLite-backed authoritative store for notes and directed links."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence
import uuid

from ..models.note import Link, LinkedNote, Note, NoteCreate, NoteDetail, NoteUpdate
from .database import DatabaseService, store_database

logger = logging.getLogger(__name__)


class NoteStoreError(Exception):
    """Base class for note store failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NoteNotFoundError(NoteStoreError):
    """Raised when a note id does not resolve."""

    def __init__(self, note_id: str):
        super().__init__(f"Note not found: {note_id}", {"note_id": note_id})
        self.note_id = note_id


class LinkNotFoundError(NoteStoreError):
    """Raised when a (source, target) pair is not linked."""

    def __init__(self, source_id: str, target_id: str):
        super().__init__(
            f"Link not found: {source_id} -> {target_id}",
            {"source_id": source_id, "target_id": target_id},
        )


class DuplicateLinkError(NoteStoreError):
    """Raised when the ordered pair is already linked."""

    def __init__(self, source_id: str, target_id: str):
        super().__init__(
            f"Link already exists: {source_id} -> {target_id}",
            {"source_id": source_id, "target_id": target_id},
        )


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _row_to_note(row: sqlite3.Row) -> Note:
    return Note(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        type=row["type"],
        tags=json.loads(row["tags"] or "[]"),
        metadata=json.loads(row["metadata"] or "{}"),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_link(row: sqlite3.Row) -> Link:
    return Link(source_id=row["source_id"], target_id=row["target_id"])


class NoteStore:
    """Async facade over the notes database.

    Every call opens its own connection in a worker thread, so concurrent
    requests and concurrent fetches within one request never share a cursor.
    """

    def __init__(self, db_service: DatabaseService | None = None) -> None:
        self.db_service = db_service or store_database()

    def initialize(self) -> None:
        self.db_service.initialize()

    async def _run(self, func, *args):
        return await asyncio.to_thread(func, *args)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def create_note(self, data: NoteCreate) -> Note:
        return await self._run(self._create_note, data)

    def _create_note(self, data: NoteCreate) -> Note:
        note_id = uuid.uuid4().hex
        now_iso = _utcnow_iso()
        conn = self.db_service.connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO notes (id, title, content, type, tags, metadata, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        note_id,
                        data.title,
                        data.content,
                        data.type.value,
                        json.dumps(data.tags),
                        json.dumps(data.metadata),
                        now_iso,
                        now_iso,
                    ),
                )
                row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Note created", extra={"note_id": note_id})
        return _row_to_note(row)

    async def update_note(self, note_id: str, changes: NoteUpdate) -> Note:
        return await self._run(self._update_note, note_id, changes)

    def _update_note(self, note_id: str, changes: NoteUpdate) -> Note:
        assignments: List[str] = []
        params: List[Any] = []
        if changes.title is not None:
            assignments.append("title = ?")
            params.append(changes.title)
        if changes.content is not None:
            assignments.append("content = ?")
            params.append(changes.content)
        if changes.type is not None:
            assignments.append("type = ?")
            params.append(changes.type.value)
        if changes.tags is not None:
            assignments.append("tags = ?")
            params.append(json.dumps(changes.tags))
        if changes.metadata is not None:
            assignments.append("metadata = ?")
            params.append(json.dumps(changes.metadata))
        assignments.append("updated_at = ?")
        params.append(_utcnow_iso())

        conn = self.db_service.connect()
        try:
            with conn:
                cursor = conn.execute(
                    f"UPDATE notes SET {', '.join(assignments)} WHERE id = ?",
                    (*params, note_id),
                )
                if cursor.rowcount == 0:
                    raise NoteNotFoundError(note_id)
                row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Note updated", extra={"note_id": note_id})
        return _row_to_note(row)

    async def delete_note(self, note_id: str) -> None:
        await self._run(self._delete_note, note_id)

    def _delete_note(self, note_id: str) -> None:
        conn = self.db_service.connect()
        try:
            with conn:
                cursor = conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
                if cursor.rowcount == 0:
                    raise NoteNotFoundError(note_id)
        finally:
            conn.close()
        logger.info("Note deleted", extra={"note_id": note_id})

    async def get_note(self, note_id: str) -> Optional[NoteDetail]:
        """Return the note with expanded links, or None when it does not exist."""
        return await self._run(self._get_note, note_id)

    def _get_note(self, note_id: str) -> Optional[NoteDetail]:
        conn = self.db_service.connect()
        try:
            row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
            if row is None:
                return None
            outgoing = conn.execute(
                """
                SELECT n.id, n.title
                FROM note_links l JOIN notes n ON n.id = l.target_id
                WHERE l.source_id = ?
                ORDER BY n.id
                """,
                (note_id,),
            ).fetchall()
            incoming = conn.execute(
                """
                SELECT n.id, n.title
                FROM note_links l JOIN notes n ON n.id = l.source_id
                WHERE l.target_id = ?
                ORDER BY n.id
                """,
                (note_id,),
            ).fetchall()
        finally:
            conn.close()

        note = _row_to_note(row)
        return NoteDetail(
            **note.model_dump(),
            outgoing_links=[LinkedNote(id=r["id"], title=r["title"]) for r in outgoing],
            incoming_links=[LinkedNote(id=r["id"], title=r["title"]) for r in incoming],
        )

    async def list_notes(self) -> List[Note]:
        return await self._run(self._list_notes)

    def _list_notes(self) -> List[Note]:
        conn = self.db_service.connect()
        try:
            rows = conn.execute("SELECT * FROM notes ORDER BY id").fetchall()
        finally:
            conn.close()
        return [_row_to_note(row) for row in rows]

    async def list_notes_by_ids(self, note_ids: Sequence[str]) -> List[Note]:
        """Return the notes that exist among ``note_ids``, ordered by id."""
        if not note_ids:
            return []
        return await self._run(self._list_notes_by_ids, list(dict.fromkeys(note_ids)))

    def _list_notes_by_ids(self, note_ids: List[str]) -> List[Note]:
        placeholders = ", ".join("?" for _ in note_ids)
        conn = self.db_service.connect()
        try:
            rows = conn.execute(
                f"SELECT * FROM notes WHERE id IN ({placeholders}) ORDER BY id",
                note_ids,
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_note(row) for row in rows]

    async def count_notes(self) -> int:
        return await self._run(self._count, "SELECT COUNT(*) AS count FROM notes")

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    async def create_link(self, source_id: str, target_id: str) -> Link:
        return await self._run(self._create_link, source_id, target_id)

    def _create_link(self, source_id: str, target_id: str) -> Link:
        conn = self.db_service.connect()
        try:
            with conn:
                for note_id in dict.fromkeys((source_id, target_id)):
                    exists = conn.execute(
                        "SELECT 1 FROM notes WHERE id = ?", (note_id,)
                    ).fetchone()
                    if exists is None:
                        raise NoteNotFoundError(note_id)
                try:
                    conn.execute(
                        """
                        INSERT INTO note_links (source_id, target_id, created_at)
                        VALUES (?, ?, ?)
                        """,
                        (source_id, target_id, _utcnow_iso()),
                    )
                except sqlite3.IntegrityError as exc:
                    raise DuplicateLinkError(source_id, target_id) from exc
        finally:
            conn.close()
        logger.info("Link created", extra={"source_id": source_id, "target_id": target_id})
        return Link(source_id=source_id, target_id=target_id)

    async def delete_link(self, source_id: str, target_id: str) -> None:
        await self._run(self._delete_link, source_id, target_id)

    def _delete_link(self, source_id: str, target_id: str) -> None:
        conn = self.db_service.connect()
        try:
            with conn:
                cursor = conn.execute(
                    "DELETE FROM note_links WHERE source_id = ? AND target_id = ?",
                    (source_id, target_id),
                )
                if cursor.rowcount == 0:
                    raise LinkNotFoundError(source_id, target_id)
        finally:
            conn.close()

    async def list_links_by_source(self, source_id: str) -> List[Link]:
        """Outgoing links of a note, ordered by target id."""
        return await self._run(
            self._list_links,
            "SELECT source_id, target_id FROM note_links WHERE source_id = ? ORDER BY target_id",
            (source_id,),
        )

    async def list_links_by_target(self, target_id: str) -> List[Link]:
        """Incoming links of a note, ordered by source id."""
        return await self._run(
            self._list_links,
            "SELECT source_id, target_id FROM note_links WHERE target_id = ? ORDER BY source_id",
            (target_id,),
        )

    async def list_links(self) -> List[Link]:
        return await self._run(
            self._list_links,
            "SELECT source_id, target_id FROM note_links ORDER BY source_id, target_id",
            (),
        )

    def _list_links(self, sql: str, params: tuple) -> List[Link]:
        conn = self.db_service.connect()
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()
        return [_row_to_link(row) for row in rows]

    async def count_links(self) -> int:
        return await self._run(self._count, "SELECT COUNT(*) AS count FROM note_links")

    async def link_degrees(self) -> List[Dict[str, Any]]:
        """Per-note outgoing + incoming link counts."""
        return await self._run(self._link_degrees)

    def _link_degrees(self) -> List[Dict[str, Any]]:
        conn = self.db_service.connect()
        try:
            rows = conn.execute(
                """
                SELECT
                    n.id,
                    n.title,
                    (SELECT COUNT(*) FROM note_links o WHERE o.source_id = n.id)
                    + (SELECT COUNT(*) FROM note_links i WHERE i.target_id = n.id) AS connections
                FROM notes n
                """
            ).fetchall()
        finally:
            conn.close()
        return [
            {"id": row["id"], "title": row["title"], "connections": int(row["connections"])}
            for row in rows
        ]

    def _count(self, sql: str) -> int:
        conn = self.db_service.connect()
        try:
            row = conn.execute(sql).fetchone()
        finally:
            conn.close()
        return int(row["count"])


__all__ = [
    "NoteStore",
    "NoteStoreError",
    "NoteNotFoundError",
    "LinkNotFoundError",
    "DuplicateLinkError",
]
