import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

BLOCK_TYPES = frozenset({"markdown", "table"})


class WireModel(BaseModel):
    """Base for models exchanged with the frontend and backend.

    JSON keys are camelCase; Python attributes stay snake_case and either
    spelling is accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Source(WireModel):
    """A citable excerpt from an indexed document.

    Attributes:
        id: Identifier referenced by ``[id]`` markers in answer text.
        file_name: Display name of the source file.
        file_url: Link used to open the file viewer.
        page_number: 1-based page of the excerpt, if known.
        snippet: Preview text shown next to the citation.
    """

    id: str = Field(..., min_length=1)
    file_name: str
    file_url: str = ""
    page_number: int | None = Field(None, ge=1)
    snippet: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric ids from loosely typed fixtures."""
        if isinstance(v, int):
            return str(v)
        return v


class TableColumn(WireModel):
    key: str
    title: str


class TableData(WireModel):
    headers: list[TableColumn] = Field(default_factory=list)
    rows: list[dict[str, str]] = Field(default_factory=list)


class MarkdownBlock(WireModel):
    """A markdown text segment, revealed word by word while streaming."""

    type: Literal["markdown"] = "markdown"
    body: str
    block_sources: list[Source] = Field(default_factory=list)


class TableBlock(WireModel):
    """Tabular data, always revealed as a whole."""

    type: Literal["table"] = "table"
    data: TableData
    block_sources: list[Source] = Field(default_factory=list)


ContentBlock = Annotated[MarkdownBlock | TableBlock, Field(discriminator="type")]


def drop_unknown_blocks(v: Any) -> Any:
    """Skip raw blocks whose type this client cannot render."""
    if not isinstance(v, list):
        return v
    kept = []
    for raw in v:
        if isinstance(raw, dict) and raw.get("type") not in BLOCK_TYPES:
            logger.warning(f"Skipping content block with unknown type: {raw.get('type')!r}")
            continue
        kept.append(raw)
    return kept


ContentBlocks = Annotated[list[ContentBlock], BeforeValidator(drop_unknown_blocks)]


class Answer(WireModel):
    """The full response for one chat turn.

    Attributes:
        blocks: Content blocks in render order.
        sources: Answer-level sources, unique by id.
    """

    blocks: ContentBlocks = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)

    @field_validator("sources")
    @classmethod
    def dedupe_sources(cls, v: list[Source]) -> list[Source]:
        """Keep the first source for each id."""
        seen: set[str] = set()
        unique: list[Source] = []
        for source in v:
            if source.id in seen:
                logger.warning(f"Duplicate source id {source.id!r} ignored")
                continue
            seen.add(source.id)
            unique.append(source)
        return unique


class TextToken(BaseModel):
    """A verbatim run of answer text between citation markers."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class CitationToken(BaseModel):
    """A ``[id]`` marker bound to its source, or to nothing if unresolved."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["citation"] = "citation"
    id: str
    source: Source | None = None

    @property
    def marker(self) -> str:
        return f"[{self.id}]"

    @property
    def resolved(self) -> bool:
        return self.source is not None


Token = Annotated[TextToken | CitationToken, Field(discriminator="kind")]


class StreamStatus(str, Enum):
    """Status values for streaming updates."""

    RECEIVED = "received"
    STREAMING = "streaming"
    COMPLETE = "complete"
    ERROR = "error"


class ChatRequest(BaseModel):
    """Request payload for the chat endpoints.

    Attributes:
        message: User's question.
        collections: Selected collection names; empty or ``["*"]`` means all.
        session_id: Optional session for conversation continuity.
    """

    message: str = Field(..., min_length=1)
    collections: list[str] = Field(default_factory=list)
    session_id: str | None = None

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, v: str) -> str:
        """Strip whitespace from message before validation."""
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def collection_name(self) -> str | None:
        """First concrete collection selected, if any."""
        for name in self.collections:
            if name and name != "*":
                return name
        return None


class ChatResponse(WireModel):
    """A complete assistant turn as returned by an answer provider.

    Attributes:
        message_id: Identifier of the assistant message.
        timestamp: Creation time (UTC).
        answer: Markdown bodies joined for plain-text consumers.
        blocks: Structured content blocks.
        sources: Answer-level sources.
    """

    message_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    answer: str = ""
    blocks: ContentBlocks = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)

    def to_answer(self) -> Answer:
        return Answer(blocks=self.blocks, sources=self.sources)


class StreamChunk(WireModel):
    """A snapshot of the revealed answer sent over SSE.

    Attributes:
        blocks: The currently revealed prefix of the answer.
        sources: Answer-level sources (sent with every chunk).
        done: Whether this is the final chunk.
        status: Current processing status.
        error: Error message if something went wrong.
    """

    blocks: ContentBlocks = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)
    done: bool
    status: StreamStatus | None = None
    error: str | None = None


class BackendAnswer(BaseModel):
    """One item of the QA backend's response list."""

    text: str
    file_citation: list[str] = Field(default_factory=list)


class Collection(WireModel):
    id: str
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class FileItem(WireModel):
    """A file stored in a collection.

    Attributes:
        id: File identifier.
        name: Original file name.
        size: Size in bytes.
        type: MIME type.
        upload_date: Upload time (UTC).
        url: View link for the file.
        pages: Page count for parsed PDFs.
    """

    id: str
    name: str
    size: int = Field(..., ge=0)
    type: str = "application/pdf"
    upload_date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    url: str = ""
    pages: int = Field(0, ge=0)


class CollectionCreate(BaseModel):
    name: str = Field(..., min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class PDFUploadResponse(WireModel):
    """Response after PDF upload processing.

    Attributes:
        filename: Name of the uploaded file.
        pages: Number of pages in the document.
        collection: Collection the file was stored in.
        file_id: Identifier of the stored file.
        success: Whether the upload was successful.
        error: Error message if upload failed.
    """

    filename: str
    pages: int
    collection: str
    file_id: str
    success: bool
    error: str | None = None
