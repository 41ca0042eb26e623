"""Utility modules for Asash AI.

- **errors** -- exception hierarchy rooted at AsashError; each pipeline
  concern raises its own subclass so callers can handle failures at the
  right level.
- **concurrency** -- semaphore-bounded ``asyncio.gather`` used to cap
  concurrent embedding calls during ingestion.
- **logging** -- structlog setup with console output in development and
  JSON in production.
- **text_normalizer** -- idempotent cleanup of extracted text before
  chunking and embedding.
"""

from asash.utils.concurrency import throttled_gather
from asash.utils.errors import (
    AsashError,
    ConfigurationError,
    DocumentNotFoundError,
    EmbeddingError,
    GenerationAuthError,
    GenerationError,
    InputValidationError,
    SessionAccessDeniedError,
    SessionNotFoundError,
    StorageError,
    UploadTooLargeError,
    VectorIndexUnavailableError,
)
from asash.utils.logging import configure_logging, get_logger
from asash.utils.text_normalizer import normalize_text, truncate_text

__all__ = [
    "AsashError",
    "ConfigurationError",
    "DocumentNotFoundError",
    "EmbeddingError",
    "GenerationAuthError",
    "GenerationError",
    "InputValidationError",
    "SessionAccessDeniedError",
    "SessionNotFoundError",
    "StorageError",
    "UploadTooLargeError",
    "VectorIndexUnavailableError",
    "configure_logging",
    "get_logger",
    "normalize_text",
    "throttled_gather",
    "truncate_text",
]
