"""Orchestrator for adding documents to (and removing them from) the knowledge base.

Pipeline: **normalize -> chunk (if long) -> embed -> store -> index**.

Short content (at most ``chunker.threshold`` characters after
normalization) becomes one standalone record with one embedding.  Longer
content becomes a parent record plus N chunk records:

    1. create the parent (status ``processing``, ``chunk_count = N``, no
       embedding)
    2. for every chunk, concurrently but at most ``embedding_concurrency``
       at a time: embed it, then create its record pointing at the parent
    3. add every embedded chunk to the vector index
    4. mark the parent ``indexed``

A chunk whose embedding call failed is still stored, with an empty vector
and status ``error``; the other chunks are unaffected.  A failure to
persist a record is not tolerated: it propagates to the caller (after the
parent is marked ``error``).

All collaborators are injected, so tests run the whole flow against fakes.
"""

from __future__ import annotations

import time
from pathlib import PurePath
from typing import TYPE_CHECKING

import structlog

from asash.models.knowledge import (
    DocumentCategory,
    DocumentSource,
    DocumentStatus,
    IngestionResult,
    KnowledgeDocument,
)
from asash.providers.extraction.file_text_extractor import FileTextExtractor, detect_source
from asash.services.ingestion.chunker import TextChunker
from asash.utils.concurrency import throttled_gather
from asash.utils.errors import InputValidationError
from asash.utils.text_normalizer import normalize_text

if TYPE_CHECKING:
    from asash.interfaces.document_store import IDocumentStore
    from asash.interfaces.embedding_provider import IEmbeddingProvider
    from asash.interfaces.vector_index import IVectorIndex

logger = structlog.get_logger(logger_name=__name__)


def parse_tags(value: str | list[str] | None) -> list[str]:
    """Accept ``"id, replacement,card"`` or a list; return clean, unique tags."""
    if value is None:
        return []
    raw = value.split(",") if isinstance(value, str) else value
    seen: dict[str, None] = {}
    for tag in raw:
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def parse_category(value: DocumentCategory | str | None) -> DocumentCategory:
    """Coerce *value* to a :class:`DocumentCategory`; ``None`` means general."""
    if value is None or value == "":
        return DocumentCategory.GENERAL
    if isinstance(value, DocumentCategory):
        return value
    try:
        return DocumentCategory(value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(c.value for c in DocumentCategory)
        raise InputValidationError(
            message=f"Invalid category '{value}'. Allowed: {allowed}"
        ) from exc


class IngestionService:
    """Coordinates normalizer, chunker, embedding provider, store and index.

    Parameters
    ----------
    chunker:
        Decides whether content is chunked and produces the windows.
    embedding_provider:
        Embeds each retrievable unit; failures yield empty vectors.
    document_store:
        System of record for parents, chunks and standalone documents.
    vector_index:
        Similarity index for embedded units, or ``None`` to skip indexing.
    text_extractor:
        Turns uploaded PDF/TXT bytes into text for :meth:`ingest_file`.
    embedding_concurrency:
        Maximum chunk-embedding calls in flight for one document.
    max_title_chars:
        Longest accepted title.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedding_provider: IEmbeddingProvider,
        document_store: IDocumentStore,
        vector_index: IVectorIndex | None = None,
        text_extractor: FileTextExtractor | None = None,
        embedding_concurrency: int = 4,
        max_title_chars: int = 200,
    ) -> None:
        if embedding_concurrency < 1:
            raise ValueError("embedding_concurrency must be at least 1")
        self._chunker = chunker
        self._embedding = embedding_provider
        self._store = document_store
        self._index = vector_index
        self._extractor = text_extractor or FileTextExtractor()
        self._embedding_concurrency = embedding_concurrency
        self._max_title_chars = max_title_chars

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        title: str,
        raw_content: str,
        category: DocumentCategory | str | None = None,
        tags: str | list[str] | None = None,
        owner_id: str | None = None,
        office: str | None = None,
        source: DocumentSource = DocumentSource.MANUAL,
        is_public: bool = True,
    ) -> IngestionResult:
        """Normalize, chunk if long, embed and persist one document."""
        start = time.monotonic()
        clean_title = self._validate_title(title)
        content = normalize_text(raw_content or "")
        if not content:
            raise InputValidationError(message="Content is required")

        template = KnowledgeDocument(
            title=clean_title,
            content=content,
            category=parse_category(category),
            office=(office or "").strip() or None,
            source=source,
            tags=parse_tags(tags),
            is_public=is_public,
            uploaded_by=owner_id,
        )

        if self._chunker.needs_chunking(content):
            result = await self._ingest_chunked(template, start)
        else:
            result = await self._ingest_standalone(template, start)

        logger.info(
            "document_ingested",
            document_id=result.document_id,
            chunked=result.chunked,
            chunk_count=result.chunk_count,
            embedded=result.embedded_count,
            failed_embeddings=result.failed_embeddings,
            ingestion_time=round(result.ingestion_time, 3),
        )
        return result

    async def ingest_file(
        self,
        data: bytes,
        filename: str,
        title: str | None = None,
        category: DocumentCategory | str | None = None,
        tags: str | list[str] | None = None,
        owner_id: str | None = None,
        office: str | None = None,
        content_type: str | None = None,
    ) -> IngestionResult:
        """Extract text from an uploaded PDF/TXT file and ingest it.

        The title defaults to the file name.
        """
        type_hint = filename or content_type or ""
        source = detect_source(type_hint)
        text = self._extractor.extract_text(data, type_hint)
        return await self.ingest(
            title=(title or "").strip() or PurePath(filename or "untitled").name,
            raw_content=text,
            category=category,
            tags=tags,
            owner_id=owner_id,
            office=office,
            source=source,
        )

    async def delete(self, document_id: str) -> int:
        """Delete a document and, for a parent, every chunk it owns.

        Returns the number of records removed (N + 1 for a parent with N
        chunks).  Raises ``DocumentNotFoundError`` for an unknown id.
        """
        deleted_ids = await self._store.delete_cascade(document_id)
        if self._index is not None:
            await self._index.delete(deleted_ids)
        logger.info(
            "document_removed",
            document_id=document_id,
            records_removed=len(deleted_ids),
        )
        return len(deleted_ids)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_title(self, title: str | None) -> str:
        stripped = (title or "").strip()
        if not stripped:
            raise InputValidationError(message="Title is required")
        if len(stripped) > self._max_title_chars:
            raise InputValidationError(
                message=f"Title is too long (max {self._max_title_chars} characters)"
            )
        return stripped

    async def _ingest_standalone(
        self, template: KnowledgeDocument, start: float
    ) -> IngestionResult:
        embedding = await self._embedding.embed(template.content)
        document = template.model_copy(
            update={
                "embedding": embedding.vector,
                "status": DocumentStatus.INDEXED if embedding.ok else DocumentStatus.ERROR,
            }
        )
        await self._store.create(document)
        if embedding.ok and self._index is not None:
            try:
                await self._index.upsert([document])
            except Exception:
                logger.error("standalone_indexing_failed", document_id=document.id)
                await self._store.update_status(document.id, DocumentStatus.ERROR)
                raise

        return IngestionResult(
            document_id=document.id,
            title=document.title,
            category=document.category,
            chunked=False,
            embedded_count=1 if embedding.ok else 0,
            failed_embeddings=0 if embedding.ok else 1,
            ingestion_time=time.monotonic() - start,
        )

    async def _ingest_chunked(
        self, template: KnowledgeDocument, start: float
    ) -> IngestionResult:
        windows = self._chunker.chunk(template.content)
        total = len(windows)
        parent = template.model_copy(
            update={"chunk_count": total, "status": DocumentStatus.PROCESSING}
        )
        await self._store.create(parent)

        async def _embed_and_store(index: int, text: str) -> KnowledgeDocument:
            embedding = await self._embedding.embed(text)
            chunk = KnowledgeDocument(
                title=f"{parent.title} (Chunk {index + 1}/{total})",
                content=text,
                category=parent.category,
                office=parent.office,
                source=parent.source,
                embedding=embedding.vector,
                tags=parent.tags,
                is_public=parent.is_public,
                status=DocumentStatus.INDEXED if embedding.ok else DocumentStatus.ERROR,
                uploaded_by=parent.uploaded_by,
                is_chunk=True,
                parent_document_id=parent.id,
                chunk_index=index,
            )
            return await self._store.create(chunk)

        outcomes = await throttled_gather(
            [_embed_and_store(w.index, w.text) for w in windows],
            semaphore=self._embedding_concurrency,
            return_exceptions=True,
        )
        chunks = [c for c in outcomes if isinstance(c, KnowledgeDocument)]
        errors = [e for e in outcomes if isinstance(e, BaseException)]

        try:
            if errors:
                raise errors[0]
            if self._index is not None:
                await self._index.upsert(chunks)
        except Exception:
            logger.error(
                "chunked_ingestion_failed",
                document_id=parent.id,
                chunks_stored=len(chunks),
                chunks_failed=len(errors),
            )
            await self._store.update_status(parent.id, DocumentStatus.ERROR)
            raise

        await self._store.update_status(parent.id, DocumentStatus.INDEXED)
        chunks.sort(key=lambda c: c.chunk_index or 0)
        embedded = sum(1 for c in chunks if c.has_embedding)
        return IngestionResult(
            document_id=parent.id,
            title=parent.title,
            category=parent.category,
            chunked=True,
            chunk_count=total,
            chunk_ids=[c.id for c in chunks],
            embedded_count=embedded,
            failed_embeddings=total - embedded,
            ingestion_time=time.monotonic() - start,
        )
