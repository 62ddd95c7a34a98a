"""Shared fixtures: real SQLite databases under tmp_path and a scripted LLM."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

from backend.src.services.database import index_database, store_database
from backend.src.services.graph import GraphService
from backend.src.services.llm import LLMService
from backend.src.services.note_store import NoteStore
from backend.src.services.retrieval import RetrievalService
from backend.src.services.search_index import SearchIndex


@pytest.fixture()
def store(tmp_path: Path) -> NoteStore:
    note_store = NoteStore(store_database(tmp_path / "notes.db"))
    note_store.initialize()
    return note_store


@pytest.fixture()
def index(tmp_path: Path) -> SearchIndex:
    search_index = SearchIndex(index_database(tmp_path / "search.db"))
    search_index.initialize()
    return search_index


@pytest.fixture()
def broken_index(tmp_path: Path) -> SearchIndex:
    """An index whose schema was never created; every call fails."""
    return SearchIndex(index_database(tmp_path / "uninitialized.db"))


@pytest.fixture()
def retrieval(store: NoteStore, index: SearchIndex) -> RetrievalService:
    return RetrievalService(store, index)


@pytest.fixture()
def graph(store: NoteStore) -> GraphService:
    return GraphService(store)


def completion(content: str | None) -> dict:
    return {
        "id": "chatcmpl-test",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": 42},
    }


class ScriptedLLM:
    """Records chat-completion requests and replies through an httpx.MockTransport."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[dict] = []
        self._handler = handler
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        return self._handler(request)

    @classmethod
    def replying(cls, content: str | None) -> "ScriptedLLM":
        return cls(lambda request: httpx.Response(200, json=completion(content)))

    @classmethod
    def failing(cls, status_code: int = 503) -> "ScriptedLLM":
        return cls(lambda request: httpx.Response(status_code, text="upstream unavailable"))

    def service(self, api_key: str | None = "test-key") -> LLMService:
        return LLMService.create(
            "https://llm.test/v1", model="test-model", api_key=api_key, transport=self.transport
        )


@pytest.fixture()
def scripted_llm():
    return ScriptedLLM
