"""Service layer: note store, search index, graph engine and assistant."""

from .assistant import AnswerResult, AssistantService
from .config import AppConfig, configure_logging, get_config, reload_config
from .container import ServiceContainer
from .database import DatabaseService, index_database, store_database
from .graph import GraphService, SymmetricAdjacency
from .llm import LLMService, LLMServiceError
from .note_store import (
    DuplicateLinkError,
    LinkNotFoundError,
    NoteNotFoundError,
    NoteStore,
    NoteStoreError,
)
from .prompt_loader import PromptLoader, PromptLoaderError
from .retrieval import NoteWriteResult, RetrievalService
from .search_index import (
    DocumentNotFoundError,
    IndexUnavailableError,
    SearchIndex,
    SearchIndexError,
)

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "configure_logging",
    "DatabaseService",
    "store_database",
    "index_database",
    "NoteStore",
    "NoteStoreError",
    "NoteNotFoundError",
    "LinkNotFoundError",
    "DuplicateLinkError",
    "SearchIndex",
    "SearchIndexError",
    "IndexUnavailableError",
    "DocumentNotFoundError",
    "RetrievalService",
    "NoteWriteResult",
    "GraphService",
    "SymmetricAdjacency",
    "LLMService",
    "LLMServiceError",
    "PromptLoader",
    "PromptLoaderError",
    "AssistantService",
    "AnswerResult",
    "ServiceContainer",
]
