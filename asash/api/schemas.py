"""Pydantic request/response schemas for the Asash AI API.

Defines the public contract for the chat, document and health endpoints.
Request schemas end with ``Request``, response schemas with ``Response``;
domain models (``SourceCitation``, ``ChatSession``) are returned as-is
where their shape already matches what clients need.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from asash.models.chat import ChatRole, ChatSession, RetrievalMode, SourceCitation
from asash.models.knowledge import (
    DocumentCategory,
    DocumentSource,
    DocumentStatus,
    KnowledgeDocument,
)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class AskRequest(BaseModel):
    """A student question.  Length limits are enforced by the QA service."""

    question: str = ""


class AskResponse(BaseModel):
    """Answer plus the knowledge-base units it was grounded on."""

    answer: str
    sources: list[SourceCitation] = Field(default_factory=list)
    is_resolved: bool
    response_time: float
    retrieval_mode: RetrievalMode
    session_id: str | None = None
    timestamp: datetime


class ChatTurnInput(BaseModel):
    role: ChatRole
    content: str = Field(min_length=1)


class SaveSessionRequest(BaseModel):
    """Explicitly save a conversation to the caller's history."""

    messages: list[ChatTurnInput] = Field(default_factory=list)
    is_resolved: bool = True
    response_time: float = Field(default=0.0, ge=0.0)


class SessionListResponse(BaseModel):
    sessions: list[ChatSession]
    total: int


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class CreateDocumentRequest(BaseModel):
    """Manual document entry (JSON body)."""

    title: str = ""
    content: str = ""
    category: str | None = None
    office: str | None = None
    tags: list[str] | str | None = None


class IngestionResponse(BaseModel):
    """Outcome of adding a document to the knowledge base."""

    document_id: str
    title: str
    category: DocumentCategory
    chunked: bool
    chunk_count: int
    embedded_count: int
    failed_embeddings: int
    ingestion_time: float
    message: str


class DocumentSummary(BaseModel):
    """Catalogue entry: a document's metadata without content or vector."""

    id: str
    title: str
    category: DocumentCategory
    office: str | None = None
    source: DocumentSource
    tags: list[str] = Field(default_factory=list)
    is_public: bool
    status: DocumentStatus
    view_count: int
    is_chunk: bool
    parent_document_id: str | None = None
    chunk_index: int | None = None
    chunk_count: int
    has_embedding: bool
    created_at: datetime

    @classmethod
    def from_document(cls, document: KnowledgeDocument) -> DocumentSummary:
        return cls(
            id=document.id,
            title=document.title,
            category=document.category,
            office=document.office,
            source=document.source,
            tags=document.tags,
            is_public=document.is_public,
            status=document.status,
            view_count=document.view_count,
            is_chunk=document.is_chunk,
            parent_document_id=document.parent_document_id,
            chunk_index=document.chunk_index,
            chunk_count=document.chunk_count,
            has_embedding=document.has_embedding,
            created_at=document.created_at,
        )


class DocumentDetailResponse(DocumentSummary):
    content: str


class DocumentListResponse(BaseModel):
    documents: list[DocumentSummary]
    total: int
    page: int
    limit: int
    total_pages: int


class DeleteDocumentResponse(BaseModel):
    document_id: str
    records_removed: int


# ---------------------------------------------------------------------------
# Health / errors
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
    documents: int


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
