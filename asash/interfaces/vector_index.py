"""Abstract base class for the vector similarity index.

The index holds one vector per retrievable unit (chunk or standalone
document) that has an embedding.  Parents are never added.  Records
themselves live in the document store; the index only knows ids, vectors
and a little filter metadata.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from asash.models.knowledge import KnowledgeDocument


class IVectorIndex(ABC):
    """Contract for the vector-similarity query primitive."""

    @abstractmethod
    async def upsert(self, documents: list[KnowledgeDocument]) -> int:
        """Index the embedded units among *documents*; return how many were added.

        Documents without an embedding and parent records are skipped.
        """

    @abstractmethod
    async def query(self, vector: list[float], candidates: int) -> list[tuple[str, float]]:
        """Return up to *candidates* ``(document_id, similarity)`` pairs.

        Similarity is higher-is-better and comparable within one call.

        Raises
        ------
        asash.utils.errors.VectorIndexUnavailableError
            The index is missing or cannot be queried.
        """

    @abstractmethod
    async def delete(self, document_ids: list[str]) -> None:
        """Remove *document_ids* from the index; unknown ids are ignored."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of indexed vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the index can be queried."""
