"""Answer provider interface."""

import uuid
from abc import ABC, abstractmethod

from docchat.models.schemas import ChatRequest, ChatResponse, MarkdownBlock, Source, TableBlock


class ChatApiError(Exception):
    """Raised when an answer provider cannot produce an answer."""

    pass


class ChatApi(ABC):
    """Source of complete answers for a chat turn."""

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Answer a question.

        Args:
            request: The user's question and selected collections.

        Returns:
            The full answer with blocks and sources.

        Raises:
            ChatApiError: If no answer can be produced.
        """


def build_response(
    blocks: list[MarkdownBlock | TableBlock],
    sources: list[Source],
) -> ChatResponse:
    """Wrap blocks and sources in a ChatResponse with a plain-text answer."""
    answer = "\n\n".join(b.body for b in blocks if isinstance(b, MarkdownBlock))
    return ChatResponse(
        message_id=f"msg_{uuid.uuid4().hex[:12]}",
        answer=answer,
        blocks=blocks,
        sources=sources,
    )
