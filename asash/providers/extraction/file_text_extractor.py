"""Plain-text extraction from uploaded PDF and TXT files.

PDFs are read in memory with PyMuPDF (``fitz``), page by page, joined with
blank lines.  Text files are decoded as UTF-8 (with or without BOM) and
fall back to cp1252, which decodes any byte sequence the older office
exports produce.  Scanned PDFs without a text layer are rejected: OCR is
out of scope.
"""

from __future__ import annotations

from pathlib import PurePath

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from asash.models.knowledge import DocumentSource
from asash.utils.errors import InputValidationError

logger = structlog.get_logger(logger_name=__name__)

_PDF_MIME = "application/pdf"
_TEXT_MIMES = frozenset({"text/plain"})


def detect_source(name_or_mime: str) -> DocumentSource:
    """Map a filename or MIME type to a supported :class:`DocumentSource`.

    Raises
    ------
    InputValidationError
        The type is neither PDF nor plain text.
    """
    value = (name_or_mime or "").strip().lower()
    mime = value.split(";", 1)[0].strip()
    if mime == _PDF_MIME or PurePath(value).suffix == ".pdf":
        return DocumentSource.PDF
    if mime in _TEXT_MIMES or PurePath(value).suffix == ".txt":
        return DocumentSource.TXT
    raise InputValidationError(
        message=f"Unsupported file type '{name_or_mime}'. Only PDF and TXT files are accepted."
    )


class FileTextExtractor:
    """Turns uploaded bytes into plain text."""

    def extract_text(self, data: bytes, name_or_mime: str) -> str:
        """Return the text content of *data*.

        Parameters
        ----------
        data:
            Raw file bytes.
        name_or_mime:
            Original filename (``handbook.pdf``) or MIME type
            (``application/pdf``); decides the parser.

        Raises
        ------
        InputValidationError
            Empty file, unsupported type, unreadable PDF, or no text found.
        """
        if not data:
            raise InputValidationError(message="Uploaded file is empty")

        source = detect_source(name_or_mime)
        if source is DocumentSource.PDF:
            text = self._extract_pdf(data)
        else:
            text = self._decode_text(data)

        if not text.strip():
            raise InputValidationError(
                message="No text could be extracted from the uploaded file"
            )
        logger.info(
            "text_extracted",
            source=source.value,
            bytes=len(data),
            chars=len(text),
        )
        return text

    @staticmethod
    def _extract_pdf(data: bytes) -> str:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            logger.warning("pdf_open_failed", error=str(exc))
            raise InputValidationError(message="The PDF file could not be read") from exc

        pages: list[str] = []
        try:
            page_count = doc.page_count
            for page in doc:
                page_text = page.get_text("text").strip()
                if page_text:
                    pages.append(page_text)
        finally:
            doc.close()

        if not pages:
            logger.warning("pdf_no_text_extracted", page_count=page_count)
        return "\n\n".join(pages)

    @staticmethod
    def _decode_text(data: bytes) -> str:
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError:
            return data.decode("cp1252", errors="replace")
