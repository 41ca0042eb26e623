"""Interfaces for every external service and store.

Business logic talks to providers only through these ABCs; concrete
adapters live in ``asash/providers/`` and are wired in ``asash/main.py``.
Tests inject fakes through the same seams.

    Interface            ->  Concrete implementation
    ------------------------------------------------------------------
    IEmbeddingProvider   ->  VoyageEmbeddingProvider (httpx)
    IGenerationProvider  ->  OpenAICompatibleGenerationProvider (openai SDK)
    IDocumentStore       ->  SQLiteDocumentStore (aiosqlite + FTS5)
    IVectorIndex         ->  ChromaDBVectorIndex (chromadb)
    IChatSessionStore    ->  SQLiteChatSessionStore (aiosqlite)
"""

from asash.interfaces.chat_session_store import IChatSessionStore
from asash.interfaces.document_store import IDocumentStore
from asash.interfaces.embedding_provider import IEmbeddingProvider
from asash.interfaces.generation_provider import IGenerationProvider
from asash.interfaces.vector_index import IVectorIndex

__all__ = [
    "IChatSessionStore",
    "IDocumentStore",
    "IEmbeddingProvider",
    "IGenerationProvider",
    "IVectorIndex",
]
