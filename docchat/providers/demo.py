"""Rotating demo responses for offline demonstrations.

Loads a transcript of recorded bot messages and hands them out in turn,
looping back to the first after the last.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from docchat.models.schemas import (
    ChatRequest,
    ChatResponse,
    ContentBlocks,
    MarkdownBlock,
    Source,
    WireModel,
)
from docchat.providers.base import ChatApi, build_response

logger = logging.getLogger(__name__)

DEMO_FIXTURE = Path(__file__).parent.parent / "data" / "demo_responses.json"

FALLBACK_ANSWER = "This is a sample demo answer. The demo transcript could not be loaded."


class DemoContent(WireModel):
    answer: str | None = None
    blocks: ContentBlocks = Field(default_factory=list)
    sources: list[Source] = Field(default_factory=list)


class DemoMessage(WireModel):
    message_id: str
    sender: Literal["bot", "user"]
    timestamp: datetime | None = None
    content: DemoContent


class DemoTranscript(BaseModel):
    messages: list[DemoMessage]


class DemoResponseService(ChatApi):
    """Serves recorded bot responses round-robin."""

    def __init__(self, fixture_path: Path = DEMO_FIXTURE) -> None:
        self._fixture_path = fixture_path
        self._responses: list[DemoMessage] = []
        self._index = 0
        self._loaded = False

    def load(self) -> None:
        """Load the transcript once, keeping only bot messages."""
        if self._loaded:
            return
        try:
            raw = json.loads(self._fixture_path.read_text(encoding="utf-8"))
            transcript = DemoTranscript.model_validate({"messages": raw})
            self._responses = [m for m in transcript.messages if m.sender == "bot"]
            logger.info(f"Loaded {len(self._responses)} demo responses")
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Error loading demo responses: {e}")
            self._responses = []
        if not self._responses:
            self._responses = [
                DemoMessage(
                    message_id="fallback_1",
                    sender="bot",
                    content=DemoContent(answer=FALLBACK_ANSWER),
                )
            ]
        self._loaded = True

    def next_response(self) -> ChatResponse:
        """Return the next recorded response and advance the rotation."""
        self.load()
        message = self._responses[self._index]
        self._index = (self._index + 1) % len(self._responses)

        blocks = list(message.content.blocks)
        if not blocks and message.content.answer:
            blocks = [MarkdownBlock(body=message.content.answer)]
        response = build_response(blocks, list(message.content.sources))
        response.message_id = message.message_id
        return response

    def reset(self) -> None:
        self._index = 0
        logger.debug("Reset demo response index")

    @property
    def total(self) -> int:
        self.load()
        return len(self._responses)

    @property
    def current_index(self) -> int:
        return self._index

    async def chat(self, request: ChatRequest) -> ChatResponse:
        return self.next_response()
