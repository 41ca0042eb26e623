"""Unit tests for application assembly in asash/main.py."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI

from asash.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from asash.config.settings import Settings
from asash.main import _build_all, create_app, initialize_stores
from asash.providers.store.chromadb_vector_index import ChromaDBVectorIndex
from asash.services.ingestion import IngestionService
from asash.services.qa_service import QAService


def _settings(tmp_path: Path, **overrides) -> Settings:
    defaults = {
        "_env_file": None,
        "voyage_api_key": "",
        "gemini_api_key": "",
        "embedding_dimension": 16,
        "knowledge_db_path": str(tmp_path / "knowledge.db"),
        "chat_db_path": str(tmp_path / "chat.db"),
        "chromadb_persist_dir": str(tmp_path / "chromadb"),
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestBuildAll:
    def test_components_present(self, tmp_path: Path) -> None:
        components = _build_all(_settings(tmp_path))

        for key in (
            "settings",
            "http_client",
            "document_store",
            "chat_store",
            "vector_index",
            "ingestion_service",
            "qa_service",
            "chat_history",
            "provider_registry",
        ):
            assert key in components
        assert isinstance(components["vector_index"], ChromaDBVectorIndex)
        assert isinstance(components["ingestion_service"], IngestionService)
        assert isinstance(components["qa_service"], QAService)

    def test_registry_reports_missing_credentials(self, tmp_path: Path) -> None:
        registry = _build_all(_settings(tmp_path))["provider_registry"]
        assert registry["embedding"]["available"] is False
        assert registry["generation"]["available"] is False
        assert registry["vector_index"]["available"] is True

    def test_registry_with_credentials(self, tmp_path: Path) -> None:
        registry = _build_all(
            _settings(tmp_path, voyage_api_key="pa-1", gemini_api_key="gm-1")
        )["provider_registry"]
        assert registry["embedding"]["available"] is True
        assert registry["generation"]["name"] == "gemini"

    @pytest.mark.asyncio
    async def test_initialize_stores_creates_databases(self, tmp_path: Path) -> None:
        components = _build_all(_settings(tmp_path))
        await initialize_stores(components)

        assert (tmp_path / "knowledge.db").exists()
        assert (tmp_path / "chat.db").exists()
        assert await components["document_store"].count() == 0
        await components["http_client"].aclose()


class TestCreateApp:
    def test_routes_and_middleware(self) -> None:
        app = create_app()

        assert isinstance(app, FastAPI)
        paths = set(app.openapi()["paths"])
        assert "/api/v1/chat/ask" in paths
        assert "/api/v1/documents/upload" in paths
        assert "/api/v1/health" in paths
        middleware = [m.cls for m in app.user_middleware]
        assert ErrorHandlingMiddleware in middleware
        assert RequestLoggingMiddleware in middleware
