"""Chat endpoints: one-shot answers and paced SSE streaming.

The answer provider returns a complete answer; ``/chat/stream`` paces it
with the block streaming engine and sends every revealed prefix as a
Server-Sent Event through sse-starlette.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, status
from sse_starlette.sse import EventSourceResponse

from docchat.config import AppConfig, get_app_config
from docchat.models.schemas import (
    ChatRequest,
    ChatResponse,
    MarkdownBlock,
    StreamChunk,
    StreamStatus,
    TableBlock,
)
from docchat.providers import ChatApi, ChatApiError, get_chat_api
from docchat.streaming import (
    BlockStreamingEngine,
    CompletedSessions,
    SessionRegistries,
    get_session_registries,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

SSE_HEADERS = {"Cache-Control": "no-cache"}


def sse_event(chunk: StreamChunk) -> dict[str, str]:
    """Wrap a chunk as one SSE ``data`` event."""
    return {"data": chunk.model_dump_json(by_alias=True)}


async def stream_answer(
    answer: ChatResponse,
    speed: float,
    registry: CompletedSessions | None = None,
) -> AsyncGenerator[dict[str, str]]:
    """Yield SSE events revealing an answer at the given pace.

    The engine is cancelled when the client goes away, so no timer
    outlives the response.

    Args:
        answer: The complete answer to reveal.
        speed: Seconds between reveal ticks.
        registry: Completed answers of the requesting chat session.

    Yields:
        StreamChunk events; the last one has ``done=true``.
    """
    queue: asyncio.Queue[StreamChunk] = asyncio.Queue()

    def on_tick(revealed: list[MarkdownBlock | TableBlock]) -> None:
        queue.put_nowait(
            StreamChunk(blocks=revealed, done=False, status=StreamStatus.STREAMING)
        )

    def on_complete() -> None:
        queue.put_nowait(
            StreamChunk(
                blocks=engine.revealed,
                sources=answer.sources,
                done=True,
                status=StreamStatus.COMPLETE,
            )
        )

    engine = BlockStreamingEngine(
        answer.blocks,
        speed=speed,
        on_tick=on_tick,
        on_complete=on_complete,
        registry=registry,
    )

    yield sse_event(
        StreamChunk(sources=answer.sources, done=False, status=StreamStatus.RECEIVED)
    )
    try:
        engine.start()
        while True:
            chunk = await queue.get()
            yield sse_event(chunk)
            if chunk.done:
                break
    finally:
        if engine.is_streaming:
            logger.info("Client disconnected mid-stream; cancelling engine")
        engine.cancel()


async def _error_stream(message: str) -> AsyncGenerator[dict[str, str]]:
    yield sse_event(StreamChunk(done=True, status=StreamStatus.ERROR, error=message))


@router.post("/api/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    chat_api: ChatApi = Depends(get_chat_api),
) -> ChatResponse:
    """Return a complete answer without pacing.

    Raises:
        502: The answer provider failed.
    """
    try:
        return await chat_api.chat(request)
    except ChatApiError as e:
        logger.error(f"Answer provider failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        ) from e


@router.post("/chat/stream")
async def chat_stream(
    request: ChatRequest,
    chat_api: ChatApi = Depends(get_chat_api),
    config: AppConfig = Depends(get_app_config),
    registries: SessionRegistries = Depends(get_session_registries),
) -> EventSourceResponse:
    """Stream an answer as Server-Sent Events.

    The first event carries the answer-level sources with status
    ``received``; each following event carries the revealed blocks; the
    final event has ``done=true``. An answer the same session has already
    streamed is replayed without pacing. Provider failures are reported as
    a single ``error`` event.
    """
    try:
        answer = await chat_api.chat(request)
    except ChatApiError as e:
        logger.error(f"Answer provider failed: {e}")
        return EventSourceResponse(_error_stream(str(e)), headers=SSE_HEADERS)

    return EventSourceResponse(
        stream_answer(
            answer, config.stream_speed, registries.for_session(request.session_id)
        ),
        headers=SSE_HEADERS,
    )
