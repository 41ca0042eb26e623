"""Asash AI API layer: routes, schemas and middleware."""

from asash.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    status_for_error,
)
from asash.api.routes import router
from asash.api.schemas import (
    AskRequest,
    AskResponse,
    CreateDocumentRequest,
    DocumentListResponse,
    ErrorResponse,
    HealthResponse,
    IngestionResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "status_for_error",
    "router",
    "AskRequest",
    "AskResponse",
    "CreateDocumentRequest",
    "DocumentListResponse",
    "ErrorResponse",
    "HealthResponse",
    "IngestionResponse",
]
