"""SQLite database helpers for the note store and search index schemas."""

from __future__ import annotations

from pathlib import Path
import sqlite3
from typing import Iterable

from .config import DEFAULT_NOTES_DB_PATH, DEFAULT_SEARCH_INDEX_PATH

STORE_DDL_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS notes (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        content TEXT NOT NULL DEFAULT '',
        type TEXT NOT NULL DEFAULT 'document' CHECK (type IN ('document', 'outline')),
        tags TEXT NOT NULL DEFAULT '[]',
        metadata TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_notes_updated ON notes(updated_at DESC)",
    """
    CREATE TABLE IF NOT EXISTS note_links (
        source_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
        target_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL,
        PRIMARY KEY (source_id, target_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_links_source ON note_links(source_id)",
    "CREATE INDEX IF NOT EXISTS idx_links_target ON note_links(target_id)",
)

INDEX_DDL_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS search_documents (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        content TEXT NOT NULL DEFAULT '',
        type TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_documents_type ON search_documents(type)",
    "CREATE INDEX IF NOT EXISTS idx_documents_updated ON search_documents(updated_at DESC)",
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS search_fts USING fts5(
        id UNINDEXED,
        title,
        content,
        tokenize='porter unicode61'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS search_tags (
        id TEXT NOT NULL,
        tag TEXT NOT NULL,
        PRIMARY KEY (id, tag)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_search_tags_tag ON search_tags(tag)",
)


class DatabaseService:
    """Manage SQLite connections and schema initialization for one database file."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        statements: Iterable[str] | None = None,
    ):
        self.db_path = Path(db_path) if db_path else DEFAULT_NOTES_DB_PATH
        self.statements = tuple(statements) if statements is not None else STORE_DDL_STATEMENTS

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        """Return a sqlite3 connection with the proper data directory created."""
        self._ensure_directory()
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def initialize(self) -> Path:
        """Create all schema artifacts required by this database."""
        conn = self.connect()
        try:
            with conn:  # Transactional apply of DDL
                for statement in self.statements:
                    conn.execute(statement)
        finally:
            conn.close()
        return self.db_path


def store_database(db_path: str | Path | None = None) -> DatabaseService:
    return DatabaseService(db_path or DEFAULT_NOTES_DB_PATH, STORE_DDL_STATEMENTS)


def index_database(db_path: str | Path | None = None) -> DatabaseService:
    return DatabaseService(db_path or DEFAULT_SEARCH_INDEX_PATH, INDEX_DDL_STATEMENTS)


__all__ = [
    "DatabaseService",
    "STORE_DDL_STATEMENTS",
    "INDEX_DDL_STATEMENTS",
    "store_database",
    "index_database",
]
