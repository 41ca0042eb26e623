"""Integration tests for FastAPI API endpoints using TestClient."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from asash.api.middleware import ErrorHandlingMiddleware
from asash.api.routes import router as api_router
from asash.config.settings import Settings
from asash.providers.store.sqlite_chat_session_store import SQLiteChatSessionStore
from asash.providers.store.sqlite_document_store import SQLiteDocumentStore
from asash.services.chat_history_service import ChatHistoryService
from asash.services.context_assembler import ContextAssembler
from asash.services.ingestion import IngestionService, TextChunker
from asash.services.qa_service import QAService
from asash.services.retrieval_service import RetrievalEngine
from asash.utils.errors import GenerationAuthError, GenerationError
from tests.conftest import (
    ANSWER_TEMPLATE,
    EMBEDDING_DIM,
    FakeEmbeddingProvider,
    InMemoryVectorIndex,
    ScriptedGenerationProvider,
)

_USER = {"X-User-Id": "student-42"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_test_app(
    tmp_path: Path,
    generation: ScriptedGenerationProvider | None = None,
    max_upload_bytes: int = 10 * 1024 * 1024,
) -> FastAPI:
    """FastAPI app wired to temp SQLite stores and in-memory fakes."""
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.include_router(api_router)

    settings = Settings(
        _env_file=None,
        embedding_dimension=EMBEDDING_DIM,
        max_upload_bytes=max_upload_bytes,
    )
    document_store = SQLiteDocumentStore(db_path=tmp_path / "knowledge.db")
    chat_store = SQLiteChatSessionStore(db_path=tmp_path / "chat.db")
    asyncio.run(document_store.initialize())
    asyncio.run(chat_store.initialize())

    embedding = FakeEmbeddingProvider()
    vector_index = InMemoryVectorIndex()

    app.state.settings = settings
    app.state.document_store = document_store
    app.state.ingestion_service = IngestionService(
        chunker=TextChunker(),
        embedding_provider=embedding,
        document_store=document_store,
        vector_index=vector_index,
    )
    app.state.qa_service = QAService(
        embedding_provider=embedding,
        retrieval_engine=RetrievalEngine(document_store, vector_index),
        context_assembler=ContextAssembler(),
        generation_provider=generation or ScriptedGenerationProvider(),
        chat_store=chat_store,
    )
    app.state.chat_history = ChatHistoryService(chat_store)
    app.state.provider_registry = {"embedding": "fake-embedding", "generation": "scripted"}
    return app


@pytest.fixture
def client(tmp_path: Path) -> TestClient:
    return TestClient(_create_test_app(tmp_path))


def _add_document(client: TestClient, **overrides) -> dict:
    body = {
        "title": "ID Card Replacement",
        "content": "Report the loss to ID Services and pay the replacement fee.",
        "category": "id_services",
        "tags": "id, card",
    }
    body.update(overrides)
    response = client.post("/api/v1/documents", json=body, headers=_USER)
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class TestAsk:
    def test_answer_with_sources(self, client: TestClient) -> None:
        doc = _add_document(client)

        response = client.post(
            "/api/v1/chat/ask",
            json={"question": "Report the loss to ID Services and pay the replacement fee."},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == ANSWER_TEMPLATE
        assert data["is_resolved"] is True
        assert data["retrieval_mode"] == "vector"
        assert [s["id"] for s in data["sources"]] == [doc["document_id"]]
        assert data["session_id"] is None

    def test_known_user_gets_session(self, client: TestClient) -> None:
        response = client.post("/api/v1/chat/ask", json={"question": "Hi?"}, headers=_USER)
        session_id = response.json()["session_id"]
        assert session_id

        sessions = client.get("/api/v1/chat/sessions", headers=_USER).json()
        assert [s["id"] for s in sessions["sessions"]] == [session_id]

    @pytest.mark.parametrize("question", ["", "   "])
    def test_empty_question_400(self, client: TestClient, question: str) -> None:
        response = client.post("/api/v1/chat/ask", json={"question": question})
        assert response.status_code == 400
        assert response.json()["detail"] == "Question is required"

    def test_too_long_question_400(self, client: TestClient) -> None:
        response = client.post("/api/v1/chat/ask", json={"question": "q" * 1001})
        assert response.status_code == 400

    def test_generation_auth_error_503(self, tmp_path: Path) -> None:
        generation = ScriptedGenerationProvider(error=GenerationAuthError(provider_name="gemini"))
        client = TestClient(_create_test_app(tmp_path, generation=generation))

        response = client.post("/api/v1/chat/ask", json={"question": "Where is the cashier?"})

        assert response.status_code == 503
        assert response.json()["error"] == "GenerationAuthError"

    def test_generation_outage_502(self, tmp_path: Path) -> None:
        generation = ScriptedGenerationProvider(error=GenerationError(message="upstream 500"))
        client = TestClient(_create_test_app(tmp_path, generation=generation))

        response = client.post("/api/v1/chat/ask", json={"question": "Where is the cashier?"})

        assert response.status_code == 502


class TestSessions:
    def _save(self, client: TestClient, headers: dict = _USER) -> dict:
        response = client.post(
            "/api/v1/chat/sessions",
            json={
                "messages": [
                    {"role": "user", "content": "How do I enroll?"},
                    {"role": "assistant", "content": "Visit the Registrar."},
                ],
                "is_resolved": True,
                "response_time": 1.2,
            },
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    def test_missing_user_header_401(self, client: TestClient) -> None:
        assert client.get("/api/v1/chat/sessions").status_code == 401

    def test_save_get_delete(self, client: TestClient) -> None:
        saved = self._save(client)

        fetched = client.get(f"/api/v1/chat/sessions/{saved['id']}", headers=_USER)
        assert fetched.status_code == 200
        assert [m["role"] for m in fetched.json()["messages"]] == ["user", "assistant"]

        assert client.delete(f"/api/v1/chat/sessions/{saved['id']}", headers=_USER).status_code == 204
        assert client.get(f"/api/v1/chat/sessions/{saved['id']}", headers=_USER).status_code == 404

    def test_other_user_403(self, client: TestClient) -> None:
        saved = self._save(client)
        intruder = {"X-User-Id": "someone-else"}

        assert client.get(f"/api/v1/chat/sessions/{saved['id']}", headers=intruder).status_code == 403
        assert client.delete(f"/api/v1/chat/sessions/{saved['id']}", headers=intruder).status_code == 403

    def test_empty_messages_400(self, client: TestClient) -> None:
        response = client.post("/api/v1/chat/sessions", json={"messages": []}, headers=_USER)
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocuments:
    def test_create_standalone(self, client: TestClient) -> None:
        data = _add_document(client)
        assert data["chunked"] is False
        assert data["category"] == "id_services"
        assert data["message"] == "Document added successfully"

    def test_create_chunked(self, client: TestClient) -> None:
        data = _add_document(client, title="Student Handbook", content="abcdefghij" * 1000)
        assert data["chunked"] is True
        assert data["chunk_count"] == 13
        assert "13 chunks" in data["message"]

    @pytest.mark.parametrize(
        "overrides, detail",
        [
            ({"title": ""}, "Title is required"),
            ({"content": "  "}, "Content is required"),
            ({"category": "parking"}, "Invalid category"),
        ],
    )
    def test_create_validation_400(self, client: TestClient, overrides: dict, detail: str) -> None:
        body = {"title": "T", "content": "c", **overrides}
        response = client.post("/api/v1/documents", json=body)
        assert response.status_code == 400
        assert detail in response.json()["detail"]

    def test_upload_txt(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/documents/upload",
            files={"file": ("fees.txt", b"Pay tuition at the cashier.", "text/plain")},
            data={"category": "finance", "tags": "fees"},
        )
        assert response.status_code == 201, response.text
        data = response.json()
        assert data["title"] == "fees.txt"
        assert data["category"] == "finance"

    def test_upload_unsupported_type_400(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/documents/upload",
            files={"file": ("form.docx", b"PK\x03\x04", "application/octet-stream")},
        )
        assert response.status_code == 400

    def test_upload_too_large_413(self, tmp_path: Path) -> None:
        client = TestClient(_create_test_app(tmp_path, max_upload_bytes=1024))
        response = client.post(
            "/api/v1/documents/upload",
            files={"file": ("big.txt", b"x" * 2048, "text/plain")},
        )
        assert response.status_code == 413

    def test_list_and_filter(self, client: TestClient) -> None:
        _add_document(client)
        _add_document(client, title="Dorm Curfew", content="Curfew is at 10pm.", category="dormitory")

        everything = client.get("/api/v1/documents").json()
        assert everything["total"] == 2
        assert everything["total_pages"] == 1

        dorm = client.get("/api/v1/documents", params={"category": "dormitory"}).json()
        assert [d["title"] for d in dorm["documents"]] == ["Dorm Curfew"]

        found = client.get("/api/v1/documents", params={"search": "curfew"}).json()
        assert found["total"] == 1

    def test_list_invalid_category_400(self, client: TestClient) -> None:
        assert client.get("/api/v1/documents", params={"category": "nope"}).status_code == 400

    def test_list_invalid_page_400(self, client: TestClient) -> None:
        assert client.get("/api/v1/documents", params={"page": 0}).status_code == 400

    def test_detail_counts_views(self, client: TestClient) -> None:
        doc_id = _add_document(client)["document_id"]

        first = client.get(f"/api/v1/documents/{doc_id}").json()
        second = client.get(f"/api/v1/documents/{doc_id}").json()

        assert first["content"].startswith("Report the loss")
        assert (first["view_count"], second["view_count"]) == (1, 2)
        assert first["has_embedding"] is True

    def test_detail_unknown_404(self, client: TestClient) -> None:
        assert client.get("/api/v1/documents/missing").status_code == 404

    def test_delete_chunked_document(self, client: TestClient) -> None:
        data = _add_document(client, title="Handbook", content="abcdefghij" * 1000)

        response = client.delete(f"/api/v1/documents/{data['document_id']}")

        assert response.status_code == 200
        assert response.json()["records_removed"] == 14
        assert client.get("/api/v1/health").json()["documents"] == 0

    def test_delete_unknown_404(self, client: TestClient) -> None:
        assert client.delete("/api/v1/documents/missing").status_code == 404


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        _add_document(client)
        data = client.get("/api/v1/health").json()
        assert data["status"] == "healthy"
        assert data["documents"] == 1
        assert data["providers"]["embedding"] == "fake-embedding"
