"""Explicit construction and shutdown of the service graph."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

import httpx

from .assistant import AssistantService
from .config import AppConfig
from .database import index_database, store_database
from .graph import GraphService
from .llm import LLMService
from .note_store import NoteStore
from .prompt_loader import PromptLoader
from .retrieval import RetrievalService
from .search_index import SearchIndex

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Clients and services shared by all requests of one process."""

    config: AppConfig
    store: NoteStore
    index: SearchIndex
    llm: LLMService
    retrieval: RetrievalService
    graph: GraphService
    assistant: AssistantService

    @classmethod
    def create(
        cls,
        config: AppConfig,
        *,
        llm_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ServiceContainer":
        """Build every service from ``config`` and create both database schemas."""
        store = NoteStore(store_database(config.notes_db_path))
        index = SearchIndex(index_database(config.search_index_path))
        store.initialize()
        index.initialize()

        llm = LLMService.create(
            config.llm_api_base,
            model=config.llm_model,
            api_key=config.llm_api_key,
            timeout=config.llm_timeout_seconds,
            transport=llm_transport,
        )
        retrieval = RetrievalService(store, index, result_limit=config.search_result_limit)
        container = cls(
            config=config,
            store=store,
            index=index,
            llm=llm,
            retrieval=retrieval,
            graph=GraphService(store),
            assistant=AssistantService(retrieval, store, llm, PromptLoader(config.prompts_dir)),
        )
        logger.info(
            "Services initialized",
            extra={
                "notes_db_path": str(config.notes_db_path),
                "search_index_path": str(config.search_index_path),
                "llm_model": config.llm_model,
            },
        )
        return container

    async def aclose(self) -> None:
        await self.llm.aclose()
        logger.info("Services shut down")


__all__ = ["ServiceContainer"]
