"""API middleware: CORS, request logging and error handling.

Middleware is a stack (last added runs first).  ``main.create_app`` adds
ErrorHandlingMiddleware before RequestLoggingMiddleware, so requests flow

    client -> RequestLogging -> ErrorHandling -> route handler

and the request log records the status the error handler chose.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from asash.api.schemas import ErrorResponse
from asash.utils.errors import (
    AsashError,
    DocumentNotFoundError,
    GenerationAuthError,
    GenerationError,
    InputValidationError,
    SessionAccessDeniedError,
    SessionNotFoundError,
    UploadTooLargeError,
)
from asash.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Most specific first; the first isinstance match wins.
_STATUS_BY_ERROR: tuple[tuple[type[AsashError], int], ...] = (
    (UploadTooLargeError, 413),
    (InputValidationError, 400),
    (DocumentNotFoundError, 404),
    (SessionNotFoundError, 404),
    (SessionAccessDeniedError, 403),
    (GenerationAuthError, 503),
    (GenerationError, 502),
)


def status_for_error(exc: AsashError) -> int:
    """Return the HTTP status code an application error maps to."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Defaults to ``["*"]`` for development; production deployments pass
    the admin and student front-end origins explicitly.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code if response else 500,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn ``AsashError`` subclasses into structured JSON error responses.

    The body names the exception class, so a client can tell a rejected
    generation key (``GenerationAuthError``, 503) from a provider outage
    (``GenerationError``, 502).  Stack traces stay in the server log.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except AsashError as exc:
            status_code = status_for_error(exc)
            log = _logger.error if status_code >= 500 else _logger.warning
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
