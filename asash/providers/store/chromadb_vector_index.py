"""ChromaDB vector index adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorIndex`.
The collection uses cosine distance; similarity is reported as
``1 - distance`` so higher is better.  Embeddings are always computed by
the embedding provider and passed in explicitly, so ChromaDB's built-in
embedding function is replaced with one that refuses to run.
"""

from __future__ import annotations

import os

# Must be set before chromadb is imported; some versions read it at import.
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog

from asash.interfaces.vector_index import IVectorIndex
from asash.models.knowledge import KnowledgeDocument
from asash.utils.errors import ConfigurationError, StorageError, VectorIndexUnavailableError

logger = structlog.get_logger(logger_name=__name__)


class _PrecomputedEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Keeps ChromaDB from downloading its default ONNX model.

    Every vector arrives pre-computed from the embedding provider.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "Asash passes pre-computed embeddings; ChromaDB must not embed text itself."
        )

    def name(self) -> str:
        return "asash_precomputed"


class ChromaDBVectorIndex(IVectorIndex):
    """Vector index backed by a persistent local ChromaDB collection."""

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "asash_knowledge",
        dimension: int = 1024,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._dimension = dimension
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_PrecomputedEmbeddingFunction(),
            )
        except ValueError:
            # Collection persisted with a different embedding function.
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        self._validate_dimension()

    def _validate_dimension(self) -> None:
        """Fail fast when stored vectors disagree with the configured dimension."""
        if self._collection.count() == 0:
            return
        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return
        stored_dim = len(embeddings[0])
        if stored_dim != self._dimension:
            raise ConfigurationError(
                message=(
                    f"Vector index holds {stored_dim}-dim vectors but "
                    f"EMBEDDING_DIMENSION is {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )

    # ------------------------------------------------------------------
    # IVectorIndex implementation
    # ------------------------------------------------------------------

    async def upsert(self, documents: list[KnowledgeDocument]) -> int:
        units = [d for d in documents if d.has_embedding and not d.is_parent]
        if not units:
            return 0

        for unit in units:
            if len(unit.embedding) != self._dimension:
                raise StorageError(
                    message=(
                        f"Document {unit.id} has a {len(unit.embedding)}-dim "
                        f"embedding, index expects {self._dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )

        try:
            self._collection.upsert(
                ids=[u.id for u in units],
                embeddings=[u.embedding for u in units],
                documents=[u.content for u in units],
                metadatas=[self._metadata(u) for u in units],
            )
        except Exception as exc:
            raise StorageError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("vector_index_upsert", count=len(units))
        return len(units)

    async def query(self, vector: list[float], candidates: int) -> list[tuple[str, float]]:
        try:
            available = self._collection.count()
            if available == 0 or candidates <= 0:
                return []
            results = self._collection.query(
                query_embeddings=[vector],
                n_results=min(candidates, available),
                include=["distances"],
            )
        except Exception as exc:
            raise VectorIndexUnavailableError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        distances = results["distances"][0] if results.get("distances") else []
        return [
            (doc_id, 1.0 - float(distance))
            for doc_id, distance in zip(ids, distances, strict=True)
        ]

    async def delete(self, document_ids: list[str]) -> None:
        if not document_ids:
            return
        try:
            self._collection.delete(ids=list(document_ids))
        except Exception as exc:
            raise StorageError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("vector_index_delete", count=len(document_ids))

    def count(self) -> int:
        return self._collection.count()

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    @staticmethod
    def _metadata(document: KnowledgeDocument) -> dict[str, str | int | bool]:
        # ChromaDB metadata values must be str, int, float or bool (no None).
        return {
            "title": document.title,
            "category": document.category.value,
            "is_chunk": document.is_chunk,
            "parent_document_id": document.parent_document_id or "",
            "chunk_index": document.chunk_index if document.chunk_index is not None else -1,
            "is_public": document.is_public,
        }
