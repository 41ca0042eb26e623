"""Formats ranked retrieval hits into the context block of the prompt."""

from __future__ import annotations

from asash.models.knowledge import ScoredDocument
from asash.utils.text_normalizer import truncate_text

CONTEXT_HEADER = "\n\nRelevant Information from University Documents:\n"


class ContextAssembler:
    """Builds a bounded, numbered context string from ranked documents.

    Each entry looks like::

        1. ID Card Replacement Procedure (Relevance: 87.3%)
        <first max_chars_per_doc characters of the content>...

    The relevance annotation is omitted for hits without a similarity
    (lexical results).  Input order is kept.  No documents means an empty
    string; the prompt composer then tells the model nothing was found.
    """

    def __init__(self, max_chars_per_doc: int = 500) -> None:
        if max_chars_per_doc <= 0:
            raise ValueError("max_chars_per_doc must be positive")
        self._max_chars_per_doc = max_chars_per_doc

    def assemble(
        self,
        ranked_docs: list[ScoredDocument],
        max_chars_per_doc: int | None = None,
    ) -> str:
        if not ranked_docs:
            return ""
        limit = max_chars_per_doc or self._max_chars_per_doc

        parts = [CONTEXT_HEADER]
        for position, hit in enumerate(ranked_docs, start=1):
            parts.append(self._format_entry(position, hit, limit))
        return "".join(parts)

    @staticmethod
    def _format_entry(position: int, hit: ScoredDocument, limit: int) -> str:
        relevance = (
            f" (Relevance: {hit.similarity * 100:.1f}%)"
            if hit.similarity is not None
            else ""
        )
        preview = truncate_text(hit.document.content, limit)
        return f"\n{position}. {hit.document.title}{relevance}\n{preview}\n"
