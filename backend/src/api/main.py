"""FastAPI application main entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import httpx

load_dotenv()

from ..services import retrieval as retrieval_service  # noqa: E402
from ..services.config import AppConfig, configure_logging, get_config  # noqa: E402
from ..services.container import ServiceContainer  # noqa: E402
from .middleware import register_error_handlers  # noqa: E402
from .routes import assistant, graph, notes, search, system  # noqa: E402
from .routes.system import IndexSyncLogHandler  # noqa: E402

logger = logging.getLogger(__name__)

INDEX_SYNC_LOGGER = retrieval_service.__name__


def create_app(
    config: Optional[AppConfig] = None,
    *,
    llm_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the API; services are created on startup and closed on shutdown."""
    config = config or get_config()
    index_sync_handler = IndexSyncLogHandler()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config.log_level)
        sync_logger = logging.getLogger(INDEX_SYNC_LOGGER)
        sync_logger.addHandler(index_sync_handler)
        app.state.services = ServiceContainer.create(config, llm_transport=llm_transport)
        logger.info("Startup complete")
        try:
            yield
        finally:
            await app.state.services.aclose()
            sync_logger.removeHandler(index_sync_handler)

    app = FastAPI(
        title="Knowledge Notes API",
        description="Notes with full-text search, a link graph and grounded answers",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.index_sync_handler = index_sync_handler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(notes.router, tags=["notes"])
    app.include_router(search.router, tags=["search"])
    app.include_router(graph.router, tags=["graph"])
    app.include_router(assistant.router, tags=["assistant"])
    app.include_router(system.router, tags=["system"])

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()

__all__ = ["app", "create_app"]
