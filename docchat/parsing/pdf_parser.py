"""PDF parsing module using pypdf.

Extracts per-page text and metadata from uploaded PDFs so that answers
can cite a page number and show a snippet from it.
"""

import io
import logging

from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

# Constants
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
PDF_MAGIC_BYTES = b"%PDF"
SNIPPET_LENGTH = 200


class PDFContent(BaseModel):
    """Extracted content from a PDF file.

    Attributes:
        page_texts: Text of each page, in page order (may be empty strings).
        metadata: Document metadata (title, author, etc.).
    """

    page_texts: list[str] = Field(default_factory=list)
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def pages(self) -> int:
        return len(self.page_texts)

    @property
    def text(self) -> str:
        return "\n\n".join(t for t in self.page_texts if t)

    def snippet(self, page_number: int, length: int = SNIPPET_LENGTH) -> str | None:
        """Return a whitespace-normalized preview of a 1-based page."""
        if not 1 <= page_number <= self.pages:
            return None
        text = " ".join(self.page_texts[page_number - 1].split())
        if not text:
            return None
        if len(text) <= length:
            return text
        return text[:length].rsplit(" ", 1)[0] + "..."

    def first_text_page(self) -> int | None:
        """Return the first 1-based page with extractable text."""
        for i, text in enumerate(self.page_texts, start=1):
            if text.strip():
                return i
        return None


class PDFParseError(Exception):
    """Raised when PDF parsing fails."""

    pass


def _validate_pdf_bytes(file_content: bytes, max_size: int) -> None:
    """Validate PDF file content before parsing.

    Raises:
        PDFParseError: If validation fails.
    """
    if not file_content:
        raise PDFParseError("Empty file provided")

    if len(file_content) > max_size:
        size_mb = len(file_content) / (1024 * 1024)
        limit_mb = max_size / (1024 * 1024)
        raise PDFParseError(
            f"File size ({size_mb:.1f}MB) exceeds maximum allowed ({limit_mb:.0f}MB)"
        )

    if not file_content.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        raise PDFParseError("Invalid PDF: file does not start with PDF header")


def _extract_metadata(reader: PdfReader) -> dict[str, str]:
    metadata: dict[str, str | None] = {}

    try:
        if reader.metadata:
            metadata["title"] = reader.metadata.get("/Title")
            metadata["author"] = reader.metadata.get("/Author")
            metadata["subject"] = reader.metadata.get("/Subject")
    except Exception as e:
        logger.warning(f"Failed to extract some metadata: {e}")

    return {k: str(v) for k, v in metadata.items() if v is not None}


def parse_pdf(file_content: bytes, max_size: int = MAX_FILE_SIZE) -> PDFContent:
    """Parse a PDF file into per-page text.

    Args:
        file_content: Raw bytes of the PDF file.
        max_size: Maximum accepted size in bytes.

    Returns:
        PDFContent with page texts and metadata.

    Raises:
        PDFParseError: If the file is invalid, too large, empty, or corrupt.
    """
    _validate_pdf_bytes(file_content, max_size)

    try:
        reader = PdfReader(io.BytesIO(file_content))
        pages = list(reader.pages)
    except PdfReadError as e:
        raise PDFParseError(f"Corrupt or invalid PDF: {e}") from e
    except Exception as e:
        raise PDFParseError(f"Failed to read PDF: {e}") from e

    if not pages:
        raise PDFParseError("PDF contains no pages")

    page_texts: list[str] = []
    for i, page in enumerate(pages):
        try:
            page_texts.append(page.extract_text() or "")
        except Exception as e:
            logger.warning(f"Failed to extract text from page {i + 1}: {e}")
            page_texts.append("")

    if not any(t.strip() for t in page_texts):
        logger.warning("PDF contains no extractable text (may be scanned/image-based)")

    return PDFContent(page_texts=page_texts, metadata=_extract_metadata(reader))
