"""Application settings loaded from environment variables via pydantic-settings.

Values come from (highest priority first) environment variables, a ``.env``
file in the working directory, then the defaults below.  Field
``voyage_api_key`` maps to env var ``VOYAGE_API_KEY`` and so on.

Every tunable of the RAG pipeline lives here rather than as a literal in
the code: window sizes, top-k, embedding dimensionality, timeouts.  An
empty credential string means "not configured"; the affected provider
reports itself unavailable instead of failing at import time.
"""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Asash AI application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Embedding service (Voyage AI) ===
    voyage_api_key: str = ""
    voyage_base_url: str = "https://api.voyageai.com/v1"
    embedding_model: str = "voyage-3-large"
    embedding_dimension: int = Field(default=1024, gt=0)
    embedding_timeout: float = Field(default=15.0, gt=0)
    # Longer inputs are cut to a preview before sending.
    embedding_max_input_chars: int = Field(default=16000, gt=0)

    # === Generation service (OpenAI-compatible endpoint, Gemini by default) ===
    gemini_api_key: str = ""
    generation_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    generation_model: str = "gemini-2.5-flash"
    generation_timeout: float = Field(default=30.0, gt=0)
    generation_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    generation_max_tokens: int = Field(default=1024, gt=0)

    # === Chunking ===
    chunk_window_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    chunk_threshold: int = Field(default=2000, gt=0)
    chunk_break_on_whitespace: bool = False

    # === Retrieval ===
    retrieval_top_k: int = Field(default=3, gt=0)
    vector_candidate_multiplier: int = Field(default=10, gt=0)
    context_max_chars_per_doc: int = Field(default=500, gt=0)

    # === Validation / limits ===
    max_question_chars: int = Field(default=1000, gt=0)
    max_title_chars: int = Field(default=200, gt=0)
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    embedding_concurrency: int = Field(default=4, gt=0)

    # === Storage ===
    knowledge_db_path: str = "data/knowledge.db"
    chat_db_path: str = "data/chat_sessions.db"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "asash_knowledge"

    # === Chat history ===
    chat_history_limit: int = Field(default=100, gt=0)

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    @model_validator(mode="after")
    def _check_chunk_geometry(self) -> Settings:
        # The chunker would never advance past the first window otherwise.
        if self.chunk_overlap >= self.chunk_window_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_window_size ({self.chunk_window_size})"
            )
        return self

    def is_embedding_configured(self) -> bool:
        return bool(self.voyage_api_key)

    def is_generation_configured(self) -> bool:
        return bool(self.gemini_api_key)
