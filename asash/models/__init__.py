"""Pydantic v2 data models shared across the Asash AI pipeline.

- **knowledge** -- knowledge-base records, chunks, retrieval hits and
  ingestion results.
- **chat** -- chat turns, persisted sessions, citations and answers.
- **embedding** -- the tagged success/failure result of an embedding call.
"""

from asash.models.chat import (
    ChatRole,
    ChatSession,
    ChatTurn,
    QueryAnswer,
    RetrievalMode,
    SourceCitation,
)
from asash.models.embedding import (
    EmbeddingFailure,
    EmbeddingFailureKind,
    EmbeddingResult,
    EmbeddingSuccess,
)
from asash.models.knowledge import (
    Chunk,
    DocumentCategory,
    DocumentSource,
    DocumentStatus,
    IngestionResult,
    KnowledgeDocument,
    ScoredDocument,
)

__all__ = [
    "ChatRole",
    "ChatSession",
    "ChatTurn",
    "Chunk",
    "DocumentCategory",
    "DocumentSource",
    "DocumentStatus",
    "EmbeddingFailure",
    "EmbeddingFailureKind",
    "EmbeddingResult",
    "EmbeddingSuccess",
    "IngestionResult",
    "KnowledgeDocument",
    "QueryAnswer",
    "RetrievalMode",
    "ScoredDocument",
    "SourceCitation",
]
