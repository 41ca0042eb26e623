"""Abstract base class for the knowledge-document record store.

The document store is the system of record for every
:class:`~asash.models.knowledge.KnowledgeDocument` (standalone, parent and
chunk) and provides the lexical full-text query primitive.  Vector
similarity lives in a separate :class:`IVectorIndex`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from asash.models.knowledge import (
    DocumentCategory,
    DocumentStatus,
    KnowledgeDocument,
    ScoredDocument,
)


class IDocumentStore(ABC):
    """Persistence contract for knowledge documents."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

    @abstractmethod
    async def create(self, document: KnowledgeDocument) -> KnowledgeDocument:
        """Persist a new record.  Raises ``StorageError`` on failure."""

    @abstractmethod
    async def get(self, document_id: str) -> KnowledgeDocument | None:
        """Return the record with *document_id*, or ``None``."""

    @abstractmethod
    async def get_many(self, document_ids: list[str]) -> dict[str, KnowledgeDocument]:
        """Return the records that exist among *document_ids*, keyed by id."""

    @abstractmethod
    async def update_status(self, document_id: str, status: DocumentStatus) -> None:
        """Move a record to a new processing status."""

    @abstractmethod
    async def increment_view_count(self, document_id: str) -> int:
        """Add one view; return the new count.  Raises ``DocumentNotFoundError``."""

    @abstractmethod
    async def delete_cascade(self, document_id: str) -> list[str]:
        """Delete a record and, if it is a parent, all of its chunks.

        Returns the ids of every deleted record (chunks first, then the
        record itself).  Raises ``DocumentNotFoundError`` for an unknown id.
        """

    @abstractmethod
    async def search_text(self, query: str, k: int) -> list[ScoredDocument]:
        """Full-text search over title, content and tags.

        Only public standalone records are considered; parents and chunks
        are excluded.  Results are ordered best first, ties broken by id.
        """

    @abstractmethod
    async def list_documents(
        self,
        category: DocumentCategory | None = None,
        search: str | None = None,
        include_chunks: bool = False,
        public_only: bool = True,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[KnowledgeDocument], int]:
        """Return one page of records (newest first) and the total match count."""

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of stored records."""
