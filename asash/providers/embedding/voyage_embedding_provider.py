"""Voyage AI embedding provider adapter.

Implements :class:`IEmbeddingProvider` against the Voyage ``/embeddings``
REST endpoint with a plain ``httpx.AsyncClient``:

    POST {base_url}/embeddings
    Authorization: Bearer <VOYAGE_API_KEY>
    {"input": "<text>", "model": "voyage-3-large"}

    -> {"data": [{"embedding": [0.01, ...]}], ...}

Every failure (no key, timeout, connection error, non-2xx status, a body
that does not match the shape above, a vector of the wrong length) is
returned as an :class:`EmbeddingFailure`; nothing is raised to callers.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from asash.config.settings import Settings
from asash.interfaces.embedding_provider import IEmbeddingProvider
from asash.models.embedding import (
    EmbeddingFailure,
    EmbeddingFailureKind,
    EmbeddingResult,
    EmbeddingSuccess,
)
from asash.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_AUTH_STATUS_CODES = frozenset({401, 403})


class VoyageEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the Voyage AI embeddings API.

    An ``httpx.AsyncClient`` may be injected (shared application client,
    or one with a ``MockTransport`` in tests).  Otherwise the provider
    creates its own and :meth:`aclose` releases it.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = settings.voyage_api_key
        self._url = settings.voyage_base_url.rstrip("/") + "/embeddings"
        self._model = settings.embedding_model
        self._dimension = settings.embedding_dimension
        self._max_input_chars = settings.embedding_max_input_chars
        self._timeout = httpx.Timeout(settings.embedding_timeout, connect=5.0)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self._timeout)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> EmbeddingResult:
        if not self._api_key:
            return self._failure(
                EmbeddingFailureKind.NOT_CONFIGURED, "VOYAGE_API_KEY is not set"
            )

        payload = {"input": self._truncate(text), "model": self._model}
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            response = await self._client.post(
                self._url, json=payload, headers=headers, timeout=self._timeout
            )
            response.raise_for_status()
            vector = self._parse_vector(response.json())
        except httpx.TimeoutException as exc:
            return self._failure(EmbeddingFailureKind.TIMEOUT, f"Request timed out: {exc}")
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            kind = (
                EmbeddingFailureKind.AUTHENTICATION
                if status in _AUTH_STATUS_CODES
                else EmbeddingFailureKind.PROVIDER_ERROR
            )
            return self._failure(kind, f"HTTP {status} from embedding API")
        except httpx.HTTPError as exc:
            return self._failure(EmbeddingFailureKind.NETWORK, f"{type(exc).__name__}: {exc}")
        except (EmbeddingError, ValueError) as exc:
            # ValueError covers a body that is not JSON at all.
            return self._failure(EmbeddingFailureKind.MALFORMED_RESPONSE, str(exc))

        logger.debug(
            "embedding_complete",
            provider=self.get_provider_name(),
            input_chars=len(payload["input"]),
            dimension=len(vector),
        )
        return EmbeddingSuccess(vector=vector)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"voyage-{self._model}"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _truncate(self, text: str) -> str:
        if len(text) <= self._max_input_chars:
            return text
        logger.debug(
            "embedding_input_truncated",
            original_chars=len(text),
            max_chars=self._max_input_chars,
        )
        return text[: self._max_input_chars]

    def _parse_vector(self, body: Any) -> list[float]:
        """Pull ``data[0].embedding`` out of *body* and check its shape."""
        try:
            raw = body["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise EmbeddingError(
                message="Response has no data[0].embedding field",
                provider_name=self.get_provider_name(),
            ) from exc

        if not isinstance(raw, list) or not all(
            isinstance(x, (int, float)) and not isinstance(x, bool) for x in raw
        ):
            raise EmbeddingError(
                message="Embedding is not a list of numbers",
                provider_name=self.get_provider_name(),
            )
        if len(raw) != self._dimension:
            raise EmbeddingError(
                message=(
                    f"Embedding has {len(raw)} dimensions, expected {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )
        return [float(x) for x in raw]

    def _failure(self, kind: EmbeddingFailureKind, message: str) -> EmbeddingFailure:
        logger.warning(
            "embedding_failed",
            provider=self.get_provider_name(),
            kind=kind.value,
            error=message,
        )
        return EmbeddingFailure(kind=kind, message=message)
