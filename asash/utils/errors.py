"""Custom exception hierarchy for Asash AI.

All application exceptions inherit from :class:`AsashError`, which carries
an optional ``provider_name`` so error handlers can identify which external
service (e.g. "voyage", "gemini", "chromadb") caused the failure.

The hierarchy is organized by pipeline concern:

    AsashError  (base -- catch-all for any Asash error)
    +-- InputValidationError         (bad question, title, content or file)
    |   +-- UploadTooLargeError      (upload over the byte cap)
    +-- EmbeddingError               (embedding call failed; adapter-internal)
    +-- GenerationError              (answer generation failed)
    |   +-- GenerationAuthError      (missing or rejected generation key)
    +-- StorageError                 (document / chunk persistence failed)
    |   +-- VectorIndexUnavailableError
    +-- DocumentNotFoundError
    +-- SessionNotFoundError
    +-- SessionAccessDeniedError
    +-- ConfigurationError           (startup / invalid configuration)

Callers handle errors at the level they care about -- e.g. the retrieval
engine turns VectorIndexUnavailableError into an empty result, while the
API maps GenerationAuthError to a different status than GenerationError so
operators can tell a bad API key from a transient outage.
"""


class AsashError(Exception):
    """Base exception for all Asash errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[gemini] Generation request timed out``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Client input errors
# ---------------------------------------------------------------------------

class InputValidationError(AsashError):
    """Raised when caller input is rejected before any side effect happens."""

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UploadTooLargeError(InputValidationError):
    """Raised when an uploaded file exceeds the configured byte limit."""

    def __init__(
        self,
        message: str = "Uploaded file is too large",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class EmbeddingError(AsashError):
    """Raised inside embedding adapters when the provider call fails.

    Adapters convert this into an ``EmbeddingFailure`` result at their
    public boundary; it never reaches the orchestrators.
    """

    def __init__(
        self,
        message: str = "Embedding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GenerationError(AsashError):
    """Raised when the answer-generation call fails for any reason."""

    def __init__(
        self,
        message: str = "Answer generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GenerationAuthError(GenerationError):
    """Raised when the generation credential is missing or rejected."""

    def __init__(
        self,
        message: str = "Generation API key is invalid or missing",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence errors
# ---------------------------------------------------------------------------

class StorageError(AsashError):
    """Raised when a critical-path write or read against a store fails."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorIndexUnavailableError(StorageError):
    """Raised when the vector index is missing or cannot be queried."""

    def __init__(
        self,
        message: str = "Vector index is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentNotFoundError(AsashError):
    """Raised when a knowledge document identifier does not exist."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SessionNotFoundError(AsashError):
    """Raised when a chat session identifier does not exist."""

    def __init__(
        self,
        message: str = "Chat session not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class SessionAccessDeniedError(AsashError):
    """Raised when a user touches a chat session they do not own."""

    def __init__(
        self,
        message: str = "Not authorized to access this chat session",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(AsashError):
    """Raised when configuration is missing or invalid.

    Treated as fatal: the process should not start (or the component should
    not be constructed) with a configuration that cannot work.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
