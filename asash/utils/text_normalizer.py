"""Text normalization for extracted document and question text.

Administrators paste content from web pages and upload PDFs exported by
office suites, so raw text arrives with Windows line endings, form feeds
between pages, zero-width characters, non-breaking spaces, ligatures and
UTF-8 punctuation that was decoded as cp1252 somewhere upstream.
``normalize_text`` cleans all of that into a single canonical form before
chunking and embedding, so that identical content always produces
identical chunks.

The function is idempotent: ``normalize_text(normalize_text(x)) ==
normalize_text(x)``.  Every step either maps into a form the later steps
leave alone or only removes characters no later step can reintroduce.
"""

from __future__ import annotations

import re
import unicodedata

# cp1252 leaves these bytes undefined; lenient decoders pass them through
# as the C1 code point with the same value.
_CP1252_UNDEFINED = frozenset({0x81, 0x8D, 0x8F, 0x90, 0x9D})

# Curly quotes, dashes, ellipsis and NBSP: the punctuation that survives
# a UTF-8 -> cp1252 round trip as two or three garbage characters.
_MOJIBAKE_PRONE = (0x2018, 0x2019, 0x201C, 0x201D, 0x2013, 0x2014, 0x2026, 0x00A0)


def _as_cp1252_mojibake(char: str) -> str:
    return "".join(
        chr(byte) if byte in _CP1252_UNDEFINED else bytes([byte]).decode("cp1252")
        for byte in char.encode("utf-8")
    )


_MOJIBAKE: list[tuple[str, str]] = [
    (_as_cp1252_mojibake(chr(code_point)), chr(code_point))
    for code_point in _MOJIBAKE_PRONE
]

# PDF extractors emit a form feed between pages.
_FORM_FEED = re.compile(r"\f")

# C0/C1 control characters except \t and \n, zero-width space/joiners,
# word joiner and the byte-order mark.
_CONTROL_CHARS = re.compile(
    "[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f"
    + "".join(chr(cp) for cp in (0x200B, 0x200C, 0x200D, 0x2060, 0xFEFF))
    + "]"
)

# Collapse runs of spaces/tabs to a single space
_MULTI_SPACE = re.compile(r"[ \t]+")

# Spaces hugging a newline
_LINE_EDGE_SPACE = re.compile(r" *\n *")

# Collapse 3+ newlines to double-newline (preserves paragraph breaks)
_MULTI_NEWLINE = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    """Return *text* with consistent line endings and collapsed whitespace.

    Never raises.  Already-clean text is returned unchanged.

    Args:
        text: Raw text from an upload, a form field or a question.

    Returns:
        Normalized text, stripped of leading and trailing whitespace.
    """
    if not text:
        return ""

    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = _FORM_FEED.sub("\n\n", cleaned)

    # Mojibake repair runs before control stripping (one broken quote
    # contains a C1 byte) and before NFKC (which rewrites part of another).
    for broken, fixed in _MOJIBAKE:
        cleaned = cleaned.replace(broken, fixed)
    cleaned = _CONTROL_CHARS.sub("", cleaned)

    # NFKC folds ligatures and maps NBSP to a plain space.
    cleaned = unicodedata.normalize("NFKC", cleaned)

    cleaned = _MULTI_SPACE.sub(" ", cleaned)
    cleaned = _LINE_EDGE_SPACE.sub("\n", cleaned)
    cleaned = _MULTI_NEWLINE.sub("\n\n", cleaned)

    return cleaned.strip()


def truncate_text(text: str, max_chars: int, marker: str = "...") -> str:
    """Cut *text* to *max_chars* characters, appending *marker* when cut."""
    if max_chars < 0:
        raise ValueError("max_chars must be non-negative")
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + marker
