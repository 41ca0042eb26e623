"""Abstract base class for answer-generation (LLM completion) providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class IGenerationProvider(ABC):
    """Contract for the LLM that writes the final answer.

    Implementations make a single attempt per call and never retry.
    """

    @abstractmethod
    async def generate(self, system_prompt: str, context: str, question: str) -> str:
        """Produce an answer to *question* grounded on *context*.

        Parameters
        ----------
        system_prompt:
            Fixed instructions (answer only from context, structured
            format, explicit "not found" phrase).
        context:
            Output of the context assembler; may be empty.
        question:
            The validated student question.

        Returns
        -------
        str
            The answer text, stripped.

        Raises
        ------
        asash.utils.errors.GenerationAuthError
            The credential is missing or was rejected.
        asash.utils.errors.GenerationError
            Any other failure (timeout, network, provider error, empty reply).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"gemini"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if a credential is configured."""
