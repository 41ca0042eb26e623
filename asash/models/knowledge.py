"""Knowledge-base data models.

A :class:`KnowledgeDocument` is one record in the knowledge base.  It comes
in three kinds, told apart by ``is_chunk`` and ``chunk_count``:

- **standalone**: ``is_chunk=False, chunk_count=0`` -- short content,
  embedded and retrieved as a single unit.
- **parent**: ``is_chunk=False, chunk_count=N>0`` -- metadata record that
  owns N chunks.  Never embedded, never returned by similarity search.
- **chunk**: ``is_chunk=True`` -- one overlapping window of a parent's
  content, with ``parent_document_id`` and ``chunk_index`` set.

Chunks and standalone documents are the *retrievable units*; each has
exactly one embedding slot, which is an empty list when the embedding
call failed (the unit is then only reachable through lexical search,
where lexical search applies to it).

All models are frozen; content never changes after ingestion.  Status and
view count changes go through the store, which hands back a new object.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_document_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentCategory(str, Enum):
    """Administrative topic a document belongs to."""

    SAFETY = "safety"
    EMERGENCY = "emergency"
    POLICY = "policy"
    PROCEDURE = "procedure"
    RESOURCE = "resource"
    OTHER = "other"
    ACADEMICS = "academics"
    CLEARANCE = "clearance"
    REGISTRAR = "registrar"
    DORMITORY = "dormitory"
    ID_SERVICES = "id_services"
    FINANCE = "finance"
    DISCIPLINE = "discipline"
    GENERAL = "general"


class DocumentSource(str, Enum):
    """How the content entered the knowledge base."""

    MANUAL = "manual"
    PDF = "pdf"
    TXT = "txt"


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    INDEXED = "indexed"
    ERROR = "error"


class KnowledgeDocument(BaseModel):
    """A stored knowledge-base record (standalone, parent or chunk)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_document_id)
    title: str = Field(min_length=1)
    content: str
    category: DocumentCategory = DocumentCategory.GENERAL
    office: str | None = None
    source: DocumentSource = DocumentSource.MANUAL
    embedding: list[float] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    is_public: bool = True
    status: DocumentStatus = DocumentStatus.PROCESSING
    view_count: int = Field(default=0, ge=0)
    uploaded_by: str | None = None
    is_chunk: bool = False
    parent_document_id: str | None = None
    chunk_index: int | None = Field(default=None, ge=0)
    chunk_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("title must not be blank")
        return stripped

    @field_validator("tags")
    @classmethod
    def _canonical_tags(cls, value: list[str]) -> list[str]:
        # Tags are a set; store them sorted so equal sets compare equal.
        return sorted({tag.strip() for tag in value if tag and tag.strip()})

    @property
    def is_parent(self) -> bool:
        return not self.is_chunk and self.chunk_count > 0

    @property
    def is_standalone(self) -> bool:
        return not self.is_chunk and self.chunk_count == 0

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class Chunk(BaseModel):
    """One window produced by the chunker over a source string.

    ``text == source[char_start:char_end]``.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    text: str
    char_start: int = Field(ge=0)
    char_end: int = Field(ge=0)


class ScoredDocument(BaseModel):
    """A retrieval hit.

    ``similarity`` is the vector-index similarity (higher is better) or
    ``None`` for lexical hits, whose relevance score is only meaningful
    for ordering within one result list and is kept in ``text_score``.
    """

    model_config = ConfigDict(frozen=True)

    document: KnowledgeDocument
    similarity: float | None = None
    text_score: float | None = None


class IngestionResult(BaseModel):
    """Outcome of ingesting one document."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    title: str
    category: DocumentCategory
    chunked: bool
    chunk_count: int = Field(default=0, ge=0)
    chunk_ids: list[str] = Field(default_factory=list)
    embedded_count: int = Field(default=0, ge=0)
    failed_embeddings: int = Field(default=0, ge=0)
    ingestion_time: float = Field(default=0.0, ge=0.0)
