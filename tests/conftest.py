"""Shared pytest fixtures for the Asash AI test suite."""

from __future__ import annotations

import hashlib
import math
from pathlib import Path

import pytest

from asash.config.settings import Settings
from asash.interfaces.embedding_provider import IEmbeddingProvider
from asash.interfaces.generation_provider import IGenerationProvider
from asash.interfaces.vector_index import IVectorIndex
from asash.models.embedding import (
    EmbeddingFailure,
    EmbeddingFailureKind,
    EmbeddingResult,
    EmbeddingSuccess,
)
from asash.models.knowledge import KnowledgeDocument
from asash.providers.store.sqlite_chat_session_store import SQLiteChatSessionStore
from asash.providers.store.sqlite_document_store import SQLiteDocumentStore
from asash.utils.errors import GenerationError, VectorIndexUnavailableError

EMBEDDING_DIM = 16

ANSWER_TEMPLATE = (
    "**Office Name:** ID Services Office\n"
    "**Required Documents:** Student ID receipt, affidavit of loss\n"
    "**Step-by-Step Process:**\n1. Pay the replacement fee\n2. Submit the affidavit\n"
    "**Estimated Time:** 3 working days\n"
    "**Notes/Warnings:** Bring a photocopy of your registration slip."
)


def hash_to_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Deterministic unit vector derived from the SHA-256 of *text*."""
    raw = hashlib.sha256(text.encode("utf-8")).digest()
    while len(raw) < dim:
        raw += hashlib.sha256(raw).digest()
    values = [(b / 255.0) - 0.5 for b in raw[:dim]]
    magnitude = max(math.sqrt(sum(v * v for v in values)), 1e-10)
    return [v / magnitude for v in values]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Hash-based embedding provider that records every call.

    ``fail_all`` makes every call fail; ``fail_when`` fails only texts
    containing one of the given substrings.
    """

    def __init__(
        self,
        dim: int = EMBEDDING_DIM,
        fail_all: bool = False,
        fail_when: tuple[str, ...] = (),
        failure_kind: EmbeddingFailureKind = EmbeddingFailureKind.TIMEOUT,
    ) -> None:
        self.dim = dim
        self.fail_all = fail_all
        self.fail_when = fail_when
        self.failure_kind = failure_kind
        self.calls: list[str] = []

    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        if self.fail_all or any(marker in text for marker in self.fail_when):
            return EmbeddingFailure(kind=self.failure_kind, message="simulated failure")
        return EmbeddingSuccess(vector=hash_to_vector(text, self.dim))

    def get_dimension(self) -> int:
        return self.dim

    def get_provider_name(self) -> str:
        return "fake-embedding"

    def is_available(self) -> bool:
        return not self.fail_all


class ScriptedGenerationProvider(IGenerationProvider):
    """Returns a fixed answer (or raises a fixed error) and records prompts."""

    def __init__(self, answer: str = ANSWER_TEMPLATE, error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def generate(self, system_prompt: str, context: str, question: str) -> str:
        self.calls.append((system_prompt, context, question))
        if self.error is not None:
            raise self.error
        return self.answer

    def get_provider_name(self) -> str:
        return "scripted-generation"

    def is_available(self) -> bool:
        return not isinstance(self.error, GenerationError)


class InMemoryVectorIndex(IVectorIndex):
    """Cosine-similarity index over a dict; ``unavailable`` simulates an outage."""

    def __init__(self, unavailable: bool = False) -> None:
        self.vectors: dict[str, list[float]] = {}
        self.unavailable = unavailable
        self.query_calls: list[int] = []

    async def upsert(self, documents: list[KnowledgeDocument]) -> int:
        units = [d for d in documents if d.has_embedding and not d.is_parent]
        for unit in units:
            self.vectors[unit.id] = list(unit.embedding)
        return len(units)

    async def query(self, vector: list[float], candidates: int) -> list[tuple[str, float]]:
        self.query_calls.append(candidates)
        if self.unavailable:
            raise VectorIndexUnavailableError(message="index offline", provider_name="memory")
        scored = [(doc_id, _cosine(vector, stored)) for doc_id, stored in self.vectors.items()]
        scored.sort(key=lambda pair: (-pair[1], pair[0]))
        return scored[:candidates]

    async def delete(self, document_ids: list[str]) -> None:
        for doc_id in document_ids:
            self.vectors.pop(doc_id, None)

    def count(self) -> int:
        return len(self.vectors)

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return not self.unavailable


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with every path under ``tmp_path`` and no credentials."""
    return Settings(
        _env_file=None,
        voyage_api_key="",
        gemini_api_key="",
        embedding_dimension=EMBEDDING_DIM,
        knowledge_db_path=str(tmp_path / "knowledge.db"),
        chat_db_path=str(tmp_path / "chat.db"),
        chromadb_persist_dir=str(tmp_path / "chromadb"),
        app_env="test",
    )


@pytest.fixture
def fake_embedding() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def fake_generation() -> ScriptedGenerationProvider:
    return ScriptedGenerationProvider()


@pytest.fixture
def vector_index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture
async def document_store(tmp_path: Path) -> SQLiteDocumentStore:
    store = SQLiteDocumentStore(db_path=tmp_path / "knowledge.db")
    await store.initialize()
    return store


@pytest.fixture
async def chat_store(tmp_path: Path) -> SQLiteChatSessionStore:
    store = SQLiteChatSessionStore(db_path=tmp_path / "chat.db")
    await store.initialize()
    return store


@pytest.fixture
def long_procedure_text() -> str:
    """Roughly 4,500 characters of procedure text (chunked at default settings)."""
    paragraph = (
        "Students who lose their university ID card must report the loss to the "
        "ID Services Office within three working days. Bring an affidavit of loss "
        "and the official receipt for the replacement fee paid at the Finance "
        "cashier. Replacement cards are released after three working days."
    )
    return "\n\n".join(f"Section {i}. {paragraph}" for i in range(1, 17))
