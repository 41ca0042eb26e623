"""Fixed-size overlapping character windows over normalized text.

Splits a long document into :class:`~asash.models.knowledge.Chunk` windows
of at most ``window_size`` characters, each starting ``overlap``
characters before the previous one ended.  The overlap keeps a procedure
step that straddles a boundary intact in at least one chunk, so "bring
your clearance form to the Registrar" is still retrievable even if the
raw cut falls inside it.

Properties the rest of the pipeline relies on:

- ``chunk.text == text[chunk.char_start:chunk.char_end]``
- consecutive chunks overlap by exactly ``overlap`` characters
- indices are zero-based and contiguous
- dropping each chunk's overlapping prefix and concatenating reconstructs
  the source exactly (see :meth:`TextChunker.reconstruct`)
- with fixed-size windows a text of length ``L > window_size`` yields
  ``ceil((L - overlap) / (window_size - overlap))`` chunks

With ``break_on_whitespace`` enabled, a window that would end mid-word is
pulled back to just after the last whitespace character inside it, as
long as that still leaves the window longer than the overlap.  All of the
properties above except the count formula still hold.
"""

from __future__ import annotations

import structlog

from asash.models.knowledge import Chunk
from asash.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


class TextChunker:
    """Splits text into overlapping fixed-size character windows.

    Parameters
    ----------
    window_size:
        Maximum characters per chunk (default 1000).
    overlap:
        Characters shared by consecutive chunks (default 200).  Must be
        smaller than *window_size*, otherwise the window never advances.
    threshold:
        Documents whose length is at most this many characters are stored
        as a single unit and never chunked (default 2000).
    break_on_whitespace:
        Prefer ending windows on whitespace instead of mid-word.
    """

    def __init__(
        self,
        window_size: int = 1000,
        overlap: int = 200,
        threshold: int = 2000,
        break_on_whitespace: bool = False,
    ) -> None:
        if window_size <= 0:
            raise ConfigurationError(f"Chunk window size must be positive, got {window_size}")
        if overlap < 0:
            raise ConfigurationError(f"Chunk overlap must be non-negative, got {overlap}")
        if overlap >= window_size:
            raise ConfigurationError(
                f"Chunk overlap ({overlap}) must be smaller than the window size "
                f"({window_size}); the chunker would never advance"
            )
        if threshold <= 0:
            raise ConfigurationError(f"Chunk threshold must be positive, got {threshold}")
        self._window_size = window_size
        self._overlap = overlap
        self._threshold = threshold
        self._break_on_whitespace = break_on_whitespace

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def overlap(self) -> int:
        return self._overlap

    @property
    def threshold(self) -> int:
        return self._threshold

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def needs_chunking(self, text: str) -> bool:
        """Return ``True`` when *text* is longer than the chunking threshold."""
        return len(text) > self._threshold

    def chunk(self, text: str) -> list[Chunk]:
        """Split *text* into overlapping windows.

        Empty input returns an empty list; text no longer than the window
        returns a single chunk covering all of it.
        """
        if not text:
            return []

        length = len(text)
        chunks: list[Chunk] = []
        start = 0
        while True:
            end = min(start + self._window_size, length)
            if end < length and self._break_on_whitespace:
                end = self._pull_back_to_whitespace(text, start, end)

            chunks.append(
                Chunk(
                    index=len(chunks),
                    text=text[start:end],
                    char_start=start,
                    char_end=end,
                )
            )
            if end >= length:
                break
            start = end - self._overlap

        logger.debug(
            "chunking_complete",
            text_chars=length,
            num_chunks=len(chunks),
            window_size=self._window_size,
            overlap=self._overlap,
        )
        return chunks

    @staticmethod
    def reconstruct(chunks: list[Chunk]) -> str:
        """Rebuild the source text from chunks produced by :meth:`chunk`."""
        if not chunks:
            return ""
        ordered = sorted(chunks, key=lambda c: c.index)
        parts = [ordered[0].text]
        for previous, current in zip(ordered, ordered[1:]):
            shared = previous.char_end - current.char_start
            parts.append(current.text[shared:])
        return "".join(parts)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pull_back_to_whitespace(self, text: str, start: int, end: int) -> int:
        """Return a window end just after the last whitespace in ``text[start:end]``.

        Only positions that leave the window longer than the overlap are
        considered, so the next window still starts after *start*.
        Returns *end* unchanged when no such whitespace exists.
        """
        lowest = start + self._overlap
        for pos in range(end - 1, lowest - 1, -1):
            if text[pos].isspace():
                return pos + 1
        return end
