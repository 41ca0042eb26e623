"""Chat exchange models: turns, persisted sessions and query answers."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from asash.models.knowledge import DocumentCategory, new_document_id, utc_now


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class ChatSession(BaseModel):
    """One persisted exchange, owned by exactly one user.

    ``messages`` keeps insertion order.  Sessions are never edited after
    creation; the only later operation is deletion by the owner.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_document_id)
    user_id: str = Field(min_length=1)
    messages: list[ChatTurn] = Field(min_length=1)
    is_resolved: bool = True
    response_time: float = Field(default=0.0, ge=0.0)
    created_at: datetime = Field(default_factory=utc_now)


class SourceCitation(BaseModel):
    """A knowledge-base unit the answer was grounded on."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    category: DocumentCategory
    similarity: float | None = None
    is_chunk: bool = False
    chunk_index: int | None = None


class RetrievalMode(str, Enum):
    VECTOR = "vector"
    LEXICAL = "lexical"


class QueryAnswer(BaseModel):
    """Everything the query pipeline returns for one question."""

    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    sources: list[SourceCitation] = Field(default_factory=list)
    is_resolved: bool
    response_time: float = Field(ge=0.0)
    retrieval_mode: RetrievalMode
    session_id: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)
