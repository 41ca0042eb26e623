"""Asash AI FastAPI application entry point.

Wires together providers, stores, services and routes via dependency
injection.  Configuration comes from ``config/config.yaml`` overlaid by
environment variables and ``.env`` (see :mod:`asash.config.loader`).

Run with ``python -m asash.main`` or ``uvicorn asash.main:app``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from asash.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from asash.api.routes import router as api_router
from asash.config.loader import load_settings
from asash.config.settings import Settings
from asash.providers.embedding.voyage_embedding_provider import VoyageEmbeddingProvider
from asash.providers.extraction.file_text_extractor import FileTextExtractor
from asash.providers.generation.openai_generation_provider import (
    OpenAICompatibleGenerationProvider,
)
from asash.providers.store.chromadb_vector_index import ChromaDBVectorIndex
from asash.providers.store.sqlite_chat_session_store import SQLiteChatSessionStore
from asash.providers.store.sqlite_document_store import SQLiteDocumentStore
from asash.services.chat_history_service import ChatHistoryService
from asash.services.context_assembler import ContextAssembler
from asash.services.ingestion import IngestionService, TextChunker
from asash.services.qa_service import QAService
from asash.services.retrieval_service import RetrievalEngine
from asash.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = load_settings()

configure_logging(
    log_level=settings.log_level,
    app_env=settings.app_env,
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider, store and service for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    Stores still need ``await initialize()`` before first use.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(app_settings.embedding_timeout, connect=5.0)
    )

    # -- External providers --
    embedding_provider = VoyageEmbeddingProvider(
        settings=app_settings, http_client=http_client
    )
    generation_provider = OpenAICompatibleGenerationProvider(settings=app_settings)

    # -- Stores --
    document_store = SQLiteDocumentStore(db_path=app_settings.knowledge_db_path)
    chat_store = SQLiteChatSessionStore(db_path=app_settings.chat_db_path)
    vector_index = ChromaDBVectorIndex(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        dimension=app_settings.embedding_dimension,
    )

    # -- Services --
    chunker = TextChunker(
        window_size=app_settings.chunk_window_size,
        overlap=app_settings.chunk_overlap,
        threshold=app_settings.chunk_threshold,
        break_on_whitespace=app_settings.chunk_break_on_whitespace,
    )
    ingestion_service = IngestionService(
        chunker=chunker,
        embedding_provider=embedding_provider,
        document_store=document_store,
        vector_index=vector_index,
        text_extractor=FileTextExtractor(),
        embedding_concurrency=app_settings.embedding_concurrency,
        max_title_chars=app_settings.max_title_chars,
    )
    retrieval_engine = RetrievalEngine(
        document_store=document_store,
        vector_index=vector_index,
        candidate_multiplier=app_settings.vector_candidate_multiplier,
    )
    qa_service = QAService(
        embedding_provider=embedding_provider,
        retrieval_engine=retrieval_engine,
        context_assembler=ContextAssembler(
            max_chars_per_doc=app_settings.context_max_chars_per_doc
        ),
        generation_provider=generation_provider,
        chat_store=chat_store,
        top_k=app_settings.retrieval_top_k,
        max_question_chars=app_settings.max_question_chars,
    )
    chat_history = ChatHistoryService(
        chat_store=chat_store,
        history_limit=app_settings.chat_history_limit,
    )

    # -- Provider registry (for /health) --
    provider_registry = {
        "embedding": {
            "name": embedding_provider.get_provider_name(),
            "available": embedding_provider.is_available(),
        },
        "generation": {
            "name": generation_provider.get_provider_name(),
            "available": generation_provider.is_available(),
        },
        "vector_index": {
            "name": vector_index.get_provider_name(),
            "available": vector_index.is_available(),
        },
        "document_store": {
            "name": document_store.get_provider_name(),
            "available": True,
        },
    }

    return {
        "settings": app_settings,
        "http_client": http_client,
        "embedding_provider": embedding_provider,
        "generation_provider": generation_provider,
        "document_store": document_store,
        "chat_store": chat_store,
        "vector_index": vector_index,
        "ingestion_service": ingestion_service,
        "retrieval_engine": retrieval_engine,
        "qa_service": qa_service,
        "chat_history": chat_history,
        "provider_registry": provider_registry,
    }


async def initialize_stores(components: dict[str, Any]) -> None:
    """Create database tables for the stores in *components*."""
    await components["document_store"].initialize()
    await components["chat_store"].initialize()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings)
    await initialize_stores(components)

    for key, value in components.items():
        setattr(application.state, key, value)

    if not settings.is_embedding_configured():
        _logger.warning("embedding_not_configured", fallback="lexical_search_only")
    if not settings.is_generation_configured():
        _logger.warning("generation_not_configured")

    _logger.info(
        "app_startup",
        version="0.1.0",
        environment=settings.app_env,
        embedding=components["embedding_provider"].get_provider_name(),
        generation=components["generation_provider"].get_provider_name(),
        documents=await components["document_store"].count(),
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Asash AI API",
        version="0.1.0",
        description=(
            "Answers student questions about university administrative "
            "procedures from an administrator-curated knowledge base."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=settings.cors_origins or None)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "asash.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
