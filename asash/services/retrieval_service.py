"""Retrieval engine: vector similarity search with a lexical counterpart.

Two entry points, used in sequence by the query pipeline:

- :meth:`RetrievalEngine.search_by_vector` ranks chunks and standalone
  documents by cosine similarity to a query embedding.
- :meth:`RetrievalEngine.search_by_text` ranks public standalone documents
  by full-text relevance when no query embedding exists or the vector
  search found nothing.

Neither method raises when its backing index is unavailable; both return
an empty list and log a warning so the caller's fallback chain continues.
Equal scores are ordered by document id so results are reproducible.
"""

from __future__ import annotations

import structlog

from asash.interfaces.document_store import IDocumentStore
from asash.interfaces.vector_index import IVectorIndex
from asash.models.knowledge import ScoredDocument
from asash.utils.errors import StorageError, VectorIndexUnavailableError
from asash.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

DEFAULT_TOP_K = 3


class RetrievalEngine:
    """Ranks knowledge-base units for a query.

    Parameters
    ----------
    document_store:
        System of record; hydrates vector hits and runs lexical search.
    vector_index:
        Similarity index over embedded units, or ``None`` when no index is
        configured (vector search then always returns nothing).
    candidate_multiplier:
        The vector index is asked for ``k * candidate_multiplier``
        candidates before filtering and trimming to ``k``.
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        vector_index: IVectorIndex | None,
        candidate_multiplier: int = 10,
    ) -> None:
        if candidate_multiplier < 1:
            raise ValueError("candidate_multiplier must be at least 1")
        self._store = document_store
        self._index = vector_index
        self._candidate_multiplier = candidate_multiplier

    async def search_by_vector(
        self,
        query_vector: list[float],
        k: int = DEFAULT_TOP_K,
    ) -> list[ScoredDocument]:
        """Return at most *k* units most similar to *query_vector*.

        Parents are never returned.  Results are ordered by similarity,
        highest first, then by document id.
        """
        if k <= 0 or not query_vector or self._index is None:
            return []

        candidates = k * self._candidate_multiplier
        try:
            hits = await self._index.query(query_vector, candidates)
        except VectorIndexUnavailableError as exc:
            logger.warning(
                "vector_index_unavailable",
                provider=exc.provider_name,
                error=exc.message,
            )
            return []
        if not hits:
            return []

        documents = await self._store.get_many([doc_id for doc_id, _ in hits])
        ranked = [
            ScoredDocument(document=documents[doc_id], similarity=similarity)
            for doc_id, similarity in hits
            # Stale index entries (record deleted) and parents are skipped.
            if doc_id in documents and not documents[doc_id].is_parent
        ]
        ranked.sort(key=lambda hit: (-hit.similarity, hit.document.id))
        results = ranked[:k]

        logger.info(
            "vector_search_complete",
            candidates=len(hits),
            results=len(results),
            top_score=results[0].similarity if results else None,
        )
        return results

    async def search_by_text(self, query: str, k: int = DEFAULT_TOP_K) -> list[ScoredDocument]:
        """Return at most *k* public standalone documents matching *query*.

        Ranking is full-text relevance over title, content and tags.
        Chunks are not searched here, so the body of a chunked document
        is only reachable through :meth:`search_by_vector`.
        """
        if k <= 0 or not query.strip():
            return []
        try:
            hits = await self._store.search_text(query, k)
        except StorageError as exc:
            logger.warning("text_search_unavailable", error=exc.message)
            return []

        results = sorted(hits, key=lambda hit: (-(hit.text_score or 0.0), hit.document.id))[:k]
        logger.info("text_search_complete", results=len(results))
        return results
