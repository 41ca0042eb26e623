"""Tagged result type returned by embedding providers.

Embedding failures never abort the calling pipeline: ingestion stores an
empty vector and the query pipeline falls back to lexical search.  Rather
than signalling that with ``None`` or an empty list, providers return
either :class:`EmbeddingSuccess` or :class:`EmbeddingFailure`, and callers
branch on ``result.ok``.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingFailureKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    TIMEOUT = "timeout"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    PROVIDER_ERROR = "provider_error"
    MALFORMED_RESPONSE = "malformed_response"


class EmbeddingSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    vector: list[float] = Field(min_length=1)

    @property
    def ok(self) -> bool:
        return True


class EmbeddingFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    kind: EmbeddingFailureKind
    message: str = ""

    @property
    def ok(self) -> bool:
        return False

    @property
    def vector(self) -> list[float]:
        # "No embedding" is stored as an empty vector.
        return []


EmbeddingResult = Union[EmbeddingSuccess, EmbeddingFailure]
