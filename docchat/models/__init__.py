"""Pydantic models for answers, citations and API payloads.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - Source: Citable excerpt referenced by ``[id]`` markers
    - MarkdownBlock / TableBlock: Content block variants of an answer
    - Answer: Ordered blocks plus answer-level sources
    - TextToken / CitationToken: Render-agnostic citation extraction output
    - ChatRequest / ChatResponse / StreamChunk: Chat endpoint payloads
    - Collection / FileItem / PDFUploadResponse: Document collection payloads
"""

from docchat.models.schemas import (
    Answer,
    BackendAnswer,
    ChatRequest,
    ChatResponse,
    CitationToken,
    Collection,
    CollectionCreate,
    ContentBlock,
    ContentBlocks,
    FileItem,
    MarkdownBlock,
    PDFUploadResponse,
    Source,
    StreamChunk,
    StreamStatus,
    TableBlock,
    TableColumn,
    TableData,
    TextToken,
    Token,
)

__all__ = [
    "Answer",
    "BackendAnswer",
    "ChatRequest",
    "ChatResponse",
    "CitationToken",
    "Collection",
    "CollectionCreate",
    "ContentBlock",
    "ContentBlocks",
    "FileItem",
    "MarkdownBlock",
    "PDFUploadResponse",
    "Source",
    "StreamChunk",
    "StreamStatus",
    "TableBlock",
    "TableColumn",
    "TableData",
    "TextToken",
    "Token",
]
