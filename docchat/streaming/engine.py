"""Simulated token streaming for already-complete answers.

The QA backend returns a whole answer at once. These engines reveal it
progressively on the event loop so the chat reads like live LLM output:
markdown bodies one word (or whitespace run) per tick, tables whole.

Two engines share one lifecycle:
    - BlockStreamingEngine: reveals an ordered list of content blocks
    - TextStreamingEngine: reveals a single plain string

Lifecycle rules:
    - completion fires exactly once, and never after cancel()
    - an answer already streamed once (same fingerprint) is shown in full
    - hidden-then-visible mid-stream fast-forwards to the full answer
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from docchat.models.schemas import MarkdownBlock, TableBlock
from docchat.streaming.registry import CompletedSessions, fingerprint

logger = logging.getLogger(__name__)

DEFAULT_SPEED = 0.03  # seconds between ticks

_WORD_PATTERN = re.compile(r"\s+|\S+")

BlockTickCallback = Callable[[list[MarkdownBlock | TableBlock]], None]
TextTickCallback = Callable[[str], None]
CompleteCallback = Callable[[], None]


def tokenize_words(body: str) -> list[str]:
    """Split text into alternating word and whitespace tokens.

    Joining the tokens gives back ``body`` exactly.
    """
    return _WORD_PATTERN.findall(body)


def _is_renderable(block: Any) -> bool:
    return isinstance(block, (MarkdownBlock, TableBlock))


@dataclass
class StreamState:
    """Progress of one block streaming session.

    Attributes:
        blocks: The answer's blocks, fixed for the session.
        block_index: Index of the block being revealed.
        word_index: Number of tokens revealed in the current markdown block.
        revealed: Visible prefix of the answer.
        is_streaming: False once everything is revealed.
    """

    blocks: tuple[Any, ...]
    block_index: int = 0
    word_index: int = 0
    revealed: list[MarkdownBlock | TableBlock] = field(default_factory=list)
    is_streaming: bool = True


@dataclass
class TextStreamState:
    text: str
    word_index: int = 0
    displayed_text: str = ""
    is_streaming: bool = True


class _RevealEngine(ABC):
    """Timer, cancellation, visibility and completion shared by both engines."""

    state: StreamState | TextStreamState

    def __init__(
        self,
        speed: float,
        on_complete: CompleteCallback | None,
        registry: CompletedSessions | None,
    ) -> None:
        if speed < 0:
            raise ValueError("speed must not be negative")
        self._speed = speed
        self._on_complete = on_complete
        self._registry = registry if registry is not None else CompletedSessions()
        self._task: asyncio.Task[None] | None = None
        self._key: str | None = None
        self._started = False
        self._cancelled = False
        self._completed = False
        self._hidden = False
        self._done = asyncio.Event()

    @property
    def is_streaming(self) -> bool:
        return self.state.is_streaming

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def speed(self) -> float:
        return self._speed

    def start(self) -> None:
        """Begin the session.

        Empty content completes immediately. Content already streamed once
        is revealed in full without animation. Otherwise a timer task is
        scheduled on the running event loop.
        """
        if self._started:
            logger.warning("Streaming engine already started; ignoring start()")
            return
        self._started = True

        if self._at_end():
            self._finish(record=False)
            return

        self._key = self._fingerprint()
        if self._key in self._registry:
            logger.debug(f"Replaying completed answer {self._key[:12]} without animation")
            self._reveal_all()
            self._emit_tick()
            self._finish()
            return

        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            while self.state.is_streaming and not self._cancelled:
                await asyncio.sleep(self._speed)
                self.tick()
        except Exception:
            logger.exception("Streaming callback failed; revealing the rest of the answer")
            self._task = None
            self._recover()

    def _recover(self) -> None:
        try:
            self.fast_forward()
        except Exception:
            logger.exception("Fast-forward failed; cancelling the stream")
            self.cancel()

    def tick(self) -> bool:
        """Reveal the next step.

        A tick after cancellation or completion is a no-op.

        Returns:
            True while there is more to reveal.
        """
        if self._cancelled or not self.state.is_streaming:
            return False
        if self._step():
            self._emit_tick()
        if self._cancelled:
            return False
        if self._at_end():
            self._finish()
        return self.state.is_streaming

    def fast_forward(self) -> None:
        """Stop the timer and reveal everything that is left."""
        if self._cancelled or not self.state.is_streaming:
            return
        self._stop_timer()
        self._reveal_all()
        self._emit_tick()
        self._finish()

    def set_visible(self, visible: bool) -> None:
        """Track visibility of the hosting page.

        Becoming visible again after being hidden mid-stream fast-forwards
        the session instead of letting the timer catch up on screen.
        """
        if not visible:
            if self.state.is_streaming and not self._cancelled:
                self._hidden = True
            return
        if self._hidden:
            self._hidden = False
            logger.debug("Page visible again mid-stream; fast-forwarding")
            self.fast_forward()

    def cancel(self) -> None:
        """Tear down the session; no reveal or completion fires afterwards."""
        if self._cancelled or self._completed:
            return
        self._cancelled = True
        self._stop_timer()
        self._done.set()

    async def wait(self) -> None:
        """Wait until the session completes or is cancelled."""
        await self._done.wait()

    def _stop_timer(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    def _finish(self, record: bool = True) -> None:
        if self._cancelled:
            return
        self.state.is_streaming = False
        self._stop_timer()
        if record and self._key is not None:
            self._registry.add(self._key)
        if self._completed:
            self._done.set()
            return
        self._completed = True
        try:
            if self._on_complete is not None:
                self._on_complete()
        finally:
            self._done.set()

    @abstractmethod
    def _step(self) -> bool:
        """Advance one tick; return True if the visible content changed."""

    @abstractmethod
    def _at_end(self) -> bool: ...

    @abstractmethod
    def _reveal_all(self) -> None: ...

    @abstractmethod
    def _fingerprint(self) -> str: ...

    @abstractmethod
    def _emit_tick(self) -> None: ...


class BlockStreamingEngine(_RevealEngine):
    """Reveals an answer's content blocks at a fixed pace.

    Markdown blocks are revealed one token per tick, tables in a single
    tick. Unknown block variants are logged and skipped.

    Args:
        blocks: The answer's blocks. Treated as immutable for the session.
        speed: Seconds between ticks.
        on_tick: Called with the revealed prefix after every visible change.
        on_complete: Called once when everything is revealed.
        registry: Completed-answer registry of the chat session (a private one by default).
    """

    def __init__(
        self,
        blocks: Sequence[Any],
        speed: float = DEFAULT_SPEED,
        on_tick: BlockTickCallback | None = None,
        on_complete: CompleteCallback | None = None,
        registry: CompletedSessions | None = None,
    ) -> None:
        super().__init__(speed, on_complete, registry)
        self.state = StreamState(blocks=tuple(blocks))
        self._on_tick = on_tick
        self._tokens: list[str] | None = None
        self._prefix = ""
        self._skip_inert()

    @property
    def revealed(self) -> list[MarkdownBlock | TableBlock]:
        return self.state.revealed

    def _current(self) -> Any:
        return self.state.blocks[self.state.block_index]

    def _skip_inert(self) -> None:
        state = self.state
        while state.block_index < len(state.blocks) and not _is_renderable(self._current()):
            logger.warning(
                f"Skipping unsupported content block at index {state.block_index}: "
                f"{type(self._current()).__name__}"
            )
            state.block_index += 1

    def _advance(self) -> None:
        self.state.block_index += 1
        self.state.word_index = 0
        self._tokens = None
        self._prefix = ""
        self._skip_inert()

    def _step(self) -> bool:
        block = self._current()
        if isinstance(block, MarkdownBlock):
            if self._tokens is None:
                self._tokens = tokenize_words(block.body)
            if self.state.word_index < len(self._tokens):
                self._prefix += self._tokens[self.state.word_index]
                self.state.word_index += 1
            if self.state.word_index >= len(self._tokens):
                self._advance()
        else:
            self._advance()
        self._refresh()
        return True

    def _refresh(self) -> None:
        state = self.state
        revealed = [b for b in state.blocks[: state.block_index] if _is_renderable(b)]
        if state.block_index < len(state.blocks) and state.word_index > 0:
            current = self._current()
            revealed.append(current.model_copy(update={"body": self._prefix}))
        state.revealed = revealed

    def _at_end(self) -> bool:
        return self.state.block_index >= len(self.state.blocks)

    def _reveal_all(self) -> None:
        self.state.block_index = len(self.state.blocks)
        self.state.word_index = 0
        self._tokens = None
        self._prefix = ""
        self._refresh()

    def _fingerprint(self) -> str:
        return fingerprint([b for b in self.state.blocks if _is_renderable(b)])

    def _emit_tick(self) -> None:
        if self._on_tick is not None:
            self._on_tick(list(self.state.revealed))


class TextStreamingEngine(_RevealEngine):
    """Reveals a single string one token per tick.

    Args:
        text: The full text.
        speed: Seconds between ticks.
        on_tick: Called with the displayed prefix after every tick.
        on_complete: Called once when the whole text is displayed.
        registry: Completed-answer registry of the chat session (a private one by default).
    """

    def __init__(
        self,
        text: str,
        speed: float = DEFAULT_SPEED,
        on_tick: TextTickCallback | None = None,
        on_complete: CompleteCallback | None = None,
        registry: CompletedSessions | None = None,
    ) -> None:
        super().__init__(speed, on_complete, registry)
        self.state = TextStreamState(text=text)
        self._on_tick = on_tick
        self._tokens = tokenize_words(text)

    @property
    def displayed_text(self) -> str:
        return self.state.displayed_text

    def _step(self) -> bool:
        self.state.displayed_text += self._tokens[self.state.word_index]
        self.state.word_index += 1
        return True

    def _at_end(self) -> bool:
        return self.state.word_index >= len(self._tokens)

    def _reveal_all(self) -> None:
        self.state.word_index = len(self._tokens)
        self.state.displayed_text = self.state.text

    def _fingerprint(self) -> str:
        return fingerprint(self.state.text)

    def _emit_tick(self) -> None:
        if self._on_tick is not None:
            self._on_tick(self.state.displayed_text)


def start_streaming(
    blocks: Sequence[Any],
    speed: float = DEFAULT_SPEED,
    on_tick: BlockTickCallback | None = None,
    on_complete: CompleteCallback | None = None,
    registry: CompletedSessions | None = None,
) -> BlockStreamingEngine:
    """Create and start a block streaming session.

    Must be called from a running event loop when the answer needs
    animating. The caller owns the returned engine and must cancel() it
    before replacing it.
    """
    engine = BlockStreamingEngine(blocks, speed, on_tick, on_complete, registry)
    engine.start()
    return engine


def start_text_streaming(
    text: str,
    speed: float = DEFAULT_SPEED,
    on_tick: TextTickCallback | None = None,
    on_complete: CompleteCallback | None = None,
    registry: CompletedSessions | None = None,
) -> TextStreamingEngine:
    """Create and start a plain-text streaming session."""
    engine = TextStreamingEngine(text, speed, on_tick, on_complete, registry)
    engine.start()
    return engine
