"""PDF parsing utilities for uploaded documents.

Responsibilities:
    - PDF validation (header, size limit)
    - Per-page text extraction with pypdf
    - Snippet previews for citation tooltips
    - Metadata extraction (title, author, subject)
"""

from docchat.parsing.pdf_parser import PDFContent, PDFParseError, parse_pdf

__all__ = ["PDFContent", "PDFParseError", "parse_pdf"]
