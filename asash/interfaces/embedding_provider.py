"""Abstract base class for text-embedding service providers.

Concrete implementation: ``VoyageEmbeddingProvider`` in
``asash/providers/embedding/``.  Tests inject a deterministic fake.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from asash.models.embedding import EmbeddingResult


class IEmbeddingProvider(ABC):
    """Contract for the embedding service used by ingestion and queries.

    Unlike the generation provider, an embedding provider never raises for
    provider-side problems: every failure mode is reported as an
    :class:`~asash.models.embedding.EmbeddingFailure` so the caller can
    degrade (empty vector at ingestion, lexical fallback at query time).
    """

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Embed one text with exactly one outbound call.

        Parameters
        ----------
        text:
            Text to embed.  Implementations truncate text beyond the
            provider's input limit instead of rejecting it.

        Returns
        -------
        EmbeddingResult
            ``EmbeddingSuccess`` with a vector of length
            :meth:`get_dimension`, or ``EmbeddingFailure`` with a kind and
            message.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the configured vector dimensionality."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"voyage-voyage-3-large"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
