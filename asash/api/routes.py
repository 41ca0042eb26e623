"""FastAPI routes for the Asash AI assistant.

Service dependencies are resolved from ``app.state`` (populated at startup
by ``main._build_all``) via ``Depends`` using the ``Annotated`` pattern.
The caller is identified by the ``X-User-Id`` header; authenticating that
identity is the job of the gateway in front of this service.

    Endpoint                          Method  Description
    -----------------------------------------------------------------------
    /api/v1/chat/ask                  POST    Answer a student question
    /api/v1/chat/sessions             GET     Caller's chat history
    /api/v1/chat/sessions             POST    Save a conversation
    /api/v1/chat/sessions/{id}        GET     One of the caller's sessions
    /api/v1/chat/sessions/{id}        DELETE  Delete one of the caller's sessions
    /api/v1/documents                 POST    Add a document (JSON body)
    /api/v1/documents/upload          POST    Add a PDF/TXT document (multipart)
    /api/v1/documents                 GET     Paginated document catalogue
    /api/v1/documents/{id}            GET     Document detail (counts a view)
    /api/v1/documents/{id}            DELETE  Delete a document and its chunks
    /api/v1/health                    GET     Health check + provider status
"""

from __future__ import annotations

import math
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, Request, UploadFile

from asash.api.schemas import (
    AskRequest,
    AskResponse,
    CreateDocumentRequest,
    DeleteDocumentResponse,
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentSummary,
    HealthResponse,
    IngestionResponse,
    SaveSessionRequest,
    SessionListResponse,
)
from asash.config.settings import Settings
from asash.interfaces.document_store import IDocumentStore
from asash.models.chat import ChatSession, ChatTurn
from asash.models.knowledge import DocumentSource, IngestionResult
from asash.services.chat_history_service import ChatHistoryService
from asash.services.ingestion import IngestionService, parse_category
from asash.services.qa_service import QAService
from asash.utils.errors import DocumentNotFoundError, UploadTooLargeError
from asash.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# Uploads are read in 64 KB increments so oversized files are rejected
# without buffering the whole payload.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency injection helpers -- resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_qa_service(request: Request) -> QAService:
    return request.app.state.qa_service


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_chat_history(request: Request) -> ChatHistoryService:
    return request.app.state.chat_history


def _get_document_store(request: Request) -> IDocumentStore:
    return request.app.state.document_store


def _require_user(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Return the caller's id; 401 when the header is missing."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return x_user_id.strip()


def _optional_user(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str | None:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


SettingsDep = Annotated[Settings, Depends(_get_settings)]
QAServiceDep = Annotated[QAService, Depends(_get_qa_service)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
ChatHistoryDep = Annotated[ChatHistoryService, Depends(_get_chat_history)]
DocumentStoreDep = Annotated[IDocumentStore, Depends(_get_document_store)]
UserDep = Annotated[str, Depends(_require_user)]
OptionalUserDep = Annotated[str | None, Depends(_optional_user)]


def _ingestion_response(result: IngestionResult) -> IngestionResponse:
    if result.chunked:
        message = (
            f"Document added and split into {result.chunk_count} chunks "
            f"({result.embedded_count} embedded)"
        )
    else:
        message = "Document added successfully"
    return IngestionResponse(
        document_id=result.document_id,
        title=result.title,
        category=result.category,
        chunked=result.chunked,
        chunk_count=result.chunk_count,
        embedded_count=result.embedded_count,
        failed_embeddings=result.failed_embeddings,
        ingestion_time=round(result.ingestion_time, 3),
        message=message,
    )


async def _read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read *file* in chunks, raising once it exceeds *max_bytes*."""
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise UploadTooLargeError(
                message=f"File too large. Maximum: {max_bytes // (1024 * 1024)} MB."
            )
        chunks.append(chunk)
    return b"".join(chunks)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post("/chat/ask", response_model=AskResponse, summary="Answer a student question")
async def ask_question(
    body: AskRequest,
    qa_service: QAServiceDep,
    user_id: OptionalUserDep,
) -> AskResponse:
    """Answer from the knowledge base; saves the exchange when the caller is known."""
    answer = await qa_service.ask(body.question, user_id=user_id)
    return AskResponse(
        answer=answer.answer,
        sources=answer.sources,
        is_resolved=answer.is_resolved,
        response_time=answer.response_time,
        retrieval_mode=answer.retrieval_mode,
        session_id=answer.session_id,
        timestamp=answer.timestamp,
    )


@router.get("/chat/sessions", response_model=SessionListResponse)
async def list_sessions(history: ChatHistoryDep, user_id: UserDep) -> SessionListResponse:
    sessions = await history.list_for_user(user_id)
    return SessionListResponse(sessions=sessions, total=len(sessions))


@router.post("/chat/sessions", response_model=ChatSession, status_code=201)
async def save_session(
    body: SaveSessionRequest,
    history: ChatHistoryDep,
    user_id: UserDep,
) -> ChatSession:
    turns = [ChatTurn(role=m.role, content=m.content) for m in body.messages]
    return await history.save(
        user_id,
        turns,
        is_resolved=body.is_resolved,
        response_time=body.response_time,
    )


@router.get("/chat/sessions/{session_id}", response_model=ChatSession)
async def get_session(session_id: str, history: ChatHistoryDep, user_id: UserDep) -> ChatSession:
    return await history.get(session_id, user_id)


@router.delete("/chat/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, history: ChatHistoryDep, user_id: UserDep) -> None:
    await history.delete(session_id, user_id)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/documents",
    response_model=IngestionResponse,
    status_code=201,
    summary="Add a document to the knowledge base",
)
async def create_document(
    body: CreateDocumentRequest,
    ingestion: IngestionDep,
    user_id: OptionalUserDep,
) -> IngestionResponse:
    result = await ingestion.ingest(
        title=body.title,
        raw_content=body.content,
        category=body.category,
        tags=body.tags,
        owner_id=user_id,
        office=body.office,
        source=DocumentSource.MANUAL,
    )
    return _ingestion_response(result)


@router.post(
    "/documents/upload",
    response_model=IngestionResponse,
    status_code=201,
    summary="Upload a PDF or TXT document",
)
async def upload_document(
    ingestion: IngestionDep,
    settings: SettingsDep,
    user_id: OptionalUserDep,
    file: UploadFile = File(...),
    title: str | None = Form(None),
    category: str | None = Form(None),
    tags: str | None = Form(None),
    office: str | None = Form(None),
) -> IngestionResponse:
    data = await _read_upload(file, settings.max_upload_bytes)
    _logger.info(
        "document_upload_received",
        filename=file.filename,
        content_type=file.content_type,
        size_bytes=len(data),
    )
    result = await ingestion.ingest_file(
        data,
        filename=file.filename or "",
        title=title,
        category=category,
        tags=tags,
        owner_id=user_id,
        office=office,
        content_type=file.content_type,
    )
    return _ingestion_response(result)


@router.get("/documents", response_model=DocumentListResponse)
async def list_documents(
    store: DocumentStoreDep,
    category: str | None = None,
    search: str | None = None,
    include_chunks: bool = False,
    public_only: bool = True,
    page: Annotated[int, Query()] = 1,
    limit: Annotated[int, Query()] = 20,
) -> DocumentListResponse:
    documents, total = await store.list_documents(
        category=parse_category(category) if category else None,
        search=search,
        include_chunks=include_chunks,
        public_only=public_only,
        page=page,
        limit=limit,
    )
    return DocumentListResponse(
        documents=[DocumentSummary.from_document(d) for d in documents],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/documents/{document_id}", response_model=DocumentDetailResponse)
async def get_document(document_id: str, store: DocumentStoreDep) -> DocumentDetailResponse:
    document = await store.get(document_id)
    if document is None:
        raise DocumentNotFoundError(message=f"Document {document_id} not found")
    views = await store.increment_view_count(document_id)
    document = document.model_copy(update={"view_count": views})
    return DocumentDetailResponse(
        **DocumentSummary.from_document(document).model_dump(),
        content=document.content,
    )


@router.delete("/documents/{document_id}", response_model=DeleteDocumentResponse)
async def delete_document(document_id: str, ingestion: IngestionDep) -> DeleteDocumentResponse:
    removed = await ingestion.delete(document_id)
    return DeleteDocumentResponse(document_id=document_id, records_removed=removed)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(request: Request, store: DocumentStoreDep) -> HealthResponse:
    """Return application health, version and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    return HealthResponse(
        status="healthy",
        version=_VERSION,
        providers=providers,
        documents=await store.count(),
    )
