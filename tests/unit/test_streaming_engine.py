"""Unit tests for the paced block and text streaming engines.

Most tests start an engine with a long tick interval so the timer never
fires, then drive it with explicit tick() calls.
"""

import asyncio
import logging

import pytest
import pytest_check as check

from docchat.models.schemas import MarkdownBlock, TableBlock, TableColumn, TableData
from docchat.streaming import (
    BlockStreamingEngine,
    CompletedSessions,
    TextStreamingEngine,
    fingerprint,
    start_streaming,
    start_text_streaming,
    tokenize_words,
)

SLOW = 60.0


def markdown(body: str) -> MarkdownBlock:
    return MarkdownBlock(body=body)


def table() -> TableBlock:
    return TableBlock(
        data=TableData(
            headers=[TableColumn(key="plan", title="Plan")],
            rows=[{"plan": "Basic [1]"}],
        )
    )


def bodies(revealed: list) -> list[str]:
    return [b.body if isinstance(b, MarkdownBlock) else "<table>" for b in revealed]


class Recorder:
    """Collects tick payloads and completion calls."""

    def __init__(self) -> None:
        self.ticks: list = []
        self.completions = 0

    def on_tick(self, payload) -> None:
        self.ticks.append(payload)

    def on_complete(self) -> None:
        self.completions += 1


@pytest.fixture
def registry() -> CompletedSessions:
    return CompletedSessions()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


def block_engine(blocks, registry, recorder, speed=SLOW) -> BlockStreamingEngine:
    return BlockStreamingEngine(
        blocks,
        speed=speed,
        on_tick=recorder.on_tick,
        on_complete=recorder.on_complete,
        registry=registry,
    )


def drain(engine) -> int:
    """Tick until the engine stops; return the number of ticks taken."""
    count = 0
    while engine.tick():
        count += 1
    return count + 1


class TestTokenizeWords:
    """Tests for the word/whitespace tokenizer."""

    def test_alternates_words_and_whitespace(self) -> None:
        assert tokenize_words("Hello [1] world") == ["Hello", " ", "[1]", " ", "world"]

    def test_keeps_whitespace_runs(self) -> None:
        text = "  two\t\tspaces\n\nand newlines  "
        tokens = tokenize_words(text)

        check.equal("".join(tokens), text)
        check.equal(tokens[0], "  ")
        check.equal(tokens[-1], "  ")

    def test_empty_string(self) -> None:
        assert tokenize_words("") == []


class TestBlockStreaming:
    """Tests for BlockStreamingEngine reveal order and completion."""

    async def test_markdown_then_table(self, registry, recorder) -> None:
        """Words reveal one per tick, then the table appears whole."""
        engine = block_engine([markdown("Hello [1] world"), table()], registry, recorder)
        engine.start()

        for _ in range(5):
            engine.tick()

        check.equal(
            [bodies(r) for r in recorder.ticks],
            [
                ["Hello"],
                ["Hello "],
                ["Hello [1]"],
                ["Hello [1] "],
                ["Hello [1] world"],
            ],
        )
        check.is_true(engine.is_streaming)
        check.equal(recorder.completions, 0)

        assert engine.tick() is False
        check.equal(bodies(recorder.ticks[-1]), ["Hello [1] world", "<table>"])
        check.is_false(engine.is_streaming)
        check.equal(recorder.completions, 1)
        check.is_true(engine.completed)

    async def test_table_only_reveals_in_one_tick(self, registry, recorder) -> None:
        blocks = [table()]
        engine = block_engine(blocks, registry, recorder)
        engine.start()

        assert drain(engine) == 1
        check.equal(engine.revealed, blocks)
        check.equal(recorder.completions, 1)

    async def test_empty_answer_completes_immediately(self, registry, recorder) -> None:
        engine = block_engine([], registry, recorder)
        engine.start()

        check.is_false(engine.is_streaming)
        check.equal(engine.revealed, [])
        check.equal(recorder.completions, 1)
        check.equal(recorder.ticks, [])
        check.equal(len(registry), 0)

    async def test_reconstructs_original_bodies(self, registry, recorder) -> None:
        blocks = [
            markdown("  Leading\tspace and\n\ntrailing  "),
            table(),
            markdown("**Bold** [2] end."),
        ]
        engine = block_engine(blocks, registry, recorder)
        engine.start()
        drain(engine)

        assert engine.revealed == blocks

    async def test_revealed_prefix_only_grows(self, registry, recorder) -> None:
        blocks = [markdown("one two three"), table(), markdown("four five")]
        engine = block_engine(blocks, registry, recorder)
        engine.start()
        drain(engine)

        for previous, current in zip(recorder.ticks, recorder.ticks[1:]):
            check.greater_equal(len(current), len(previous))
            check.equal(current[: len(previous) - 1], previous[:-1])
            last = previous[-1]
            if isinstance(last, MarkdownBlock):
                check.is_true(current[len(previous) - 1].body.startswith(last.body))

    async def test_partial_block_keeps_block_sources(self, registry, recorder, sources) -> None:
        block = MarkdownBlock(body="See [1] here", block_sources=sources[:1])
        engine = block_engine([block], registry, recorder)
        engine.start()
        engine.tick()

        partial = engine.revealed[0]
        check.equal(partial.body, "See")
        check.equal(partial.block_sources, sources[:1])
        check.equal(block.body, "See [1] here")
        engine.cancel()

    async def test_unknown_blocks_are_skipped(self, registry, recorder, caplog) -> None:
        blocks = [{"type": "chart"}, markdown("a"), object(), markdown("b")]
        with caplog.at_level(logging.WARNING):
            engine = block_engine(blocks, registry, recorder)
            engine.start()
            drain(engine)

        check.equal(bodies(engine.revealed), ["a", "b"])
        check.equal(recorder.completions, 1)
        check.is_in("Skipping unsupported content block", caplog.text)

    async def test_only_unknown_blocks_complete_empty(self, registry, recorder) -> None:
        engine = block_engine([{"type": "chart"}], registry, recorder)
        engine.start()

        check.is_false(engine.is_streaming)
        check.equal(engine.revealed, [])
        check.equal(recorder.completions, 1)

    async def test_tick_after_completion_is_noop(self, registry, recorder) -> None:
        engine = block_engine([markdown("done")], registry, recorder)
        engine.start()
        drain(engine)
        ticks = len(recorder.ticks)

        check.is_false(engine.tick())
        engine.fast_forward()

        check.equal(len(recorder.ticks), ticks)
        check.equal(recorder.completions, 1)

    async def test_start_twice_is_ignored(self, registry, recorder) -> None:
        engine = block_engine([markdown("x y")], registry, recorder)
        engine.start()
        engine.start()
        drain(engine)

        assert recorder.completions == 1

    def test_negative_speed_rejected(self, registry) -> None:
        with pytest.raises(ValueError):
            BlockStreamingEngine([], speed=-1, registry=registry)


class TestReplaySkip:
    """Tests for skipping animation of already-streamed answers."""

    async def test_replay_reveals_everything_at_once(self, registry) -> None:
        first = Recorder()
        engine = block_engine([markdown("Hello [1] world"), table()], registry, first)
        engine.start()
        drain(engine)

        second = Recorder()
        replay = block_engine([markdown("Hello [1] world"), table()], registry, second)
        replay.start()

        check.is_false(replay.is_streaming)
        check.equal(bodies(replay.revealed), ["Hello [1] world", "<table>"])
        check.equal(len(second.ticks), 1)
        check.equal(second.completions, 1)

    async def test_completed_answer_is_recorded(self, registry, recorder) -> None:
        blocks = [markdown("recorded")]
        engine = block_engine(blocks, registry, recorder)
        engine.start()

        check.is_false(fingerprint(blocks) in registry)
        drain(engine)
        check.is_true(fingerprint(blocks) in registry)

    async def test_cancelled_answer_is_not_recorded(self, registry, recorder) -> None:
        blocks = [markdown("never finished")]
        engine = block_engine(blocks, registry, recorder)
        engine.start()
        engine.tick()
        engine.cancel()

        assert fingerprint(blocks) not in registry

    async def test_different_tail_still_animates(self, registry) -> None:
        prefix = "x" * 80
        engine = block_engine([markdown(prefix + " first")], registry, Recorder())
        engine.start()
        drain(engine)

        other = block_engine([markdown(prefix + " second")], registry, Recorder())
        other.start()

        check.is_true(other.is_streaming)
        other.cancel()


class TestVisibility:
    """Tests for fast-forward when the page becomes visible again."""

    async def test_hidden_then_visible_fast_forwards(self, registry, recorder) -> None:
        body = " ".join(f"w{i}" for i in range(1, 21))
        engine = block_engine([markdown(body)], registry, recorder)
        engine.start()
        for _ in range(5):
            engine.tick()
        check.equal(bodies(engine.revealed), ["w1 w2 w3"])

        engine.set_visible(False)
        check.is_true(engine.is_streaming)
        engine.set_visible(True)

        check.equal(bodies(engine.revealed), [body])
        check.is_false(engine.is_streaming)
        check.equal(recorder.completions, 1)
        check.is_false(engine.tick())
        check.equal(recorder.completions, 1)

    async def test_visible_without_hide_does_nothing(self, registry, recorder) -> None:
        engine = block_engine([markdown("a b c")], registry, recorder)
        engine.start()
        engine.tick()
        engine.set_visible(True)

        check.is_true(engine.is_streaming)
        check.equal(bodies(engine.revealed), ["a"])
        engine.cancel()

    async def test_hide_after_completion_is_ignored(self, registry, recorder) -> None:
        engine = block_engine([markdown("a")], registry, recorder)
        engine.start()
        drain(engine)
        engine.set_visible(False)
        engine.set_visible(True)

        check.equal(len(recorder.ticks), 1)
        check.equal(recorder.completions, 1)


class TestCancellation:
    """Tests for teardown mid-stream."""

    async def test_cancel_stops_ticks_and_completion(self, registry, recorder) -> None:
        engine = block_engine([markdown("one two three")], registry, recorder)
        engine.start()
        engine.tick()
        engine.tick()
        engine.cancel()

        check.is_false(engine.tick())
        engine.fast_forward()
        engine.set_visible(False)
        engine.set_visible(True)

        check.equal(len(recorder.ticks), 2)
        check.equal(recorder.completions, 0)
        check.is_true(engine.cancelled)

    async def test_cancel_from_tick_callback_suppresses_completion(self, registry) -> None:
        completions: list[bool] = []
        holder: dict = {}

        def on_tick(revealed) -> None:
            holder["engine"].cancel()

        engine = BlockStreamingEngine(
            [markdown("last")],
            speed=SLOW,
            on_tick=on_tick,
            on_complete=lambda: completions.append(True),
            registry=registry,
        )
        holder["engine"] = engine
        engine.start()

        check.is_false(engine.tick())
        check.equal(completions, [])

    async def test_cancel_stops_the_timer(self, registry, recorder) -> None:
        engine = block_engine(
            [markdown(" ".join(["word"] * 200))], registry, recorder, speed=0.001
        )
        engine.start()
        await asyncio.sleep(0.02)
        engine.cancel()
        ticks = len(recorder.ticks)
        await asyncio.sleep(0.02)

        check.equal(len(recorder.ticks), ticks)
        check.equal(recorder.completions, 0)
        await asyncio.wait_for(engine.wait(), timeout=1)


class TestTimer:
    """Tests for the real event-loop timer."""

    async def test_timer_reveals_whole_answer(self, registry, recorder) -> None:
        blocks = [markdown("quick timer run"), table()]
        engine = start_streaming(
            blocks,
            speed=0.001,
            on_tick=recorder.on_tick,
            on_complete=recorder.on_complete,
            registry=registry,
        )

        await asyncio.wait_for(engine.wait(), timeout=2)

        check.equal(engine.revealed, blocks)
        check.equal(recorder.completions, 1)
        check.is_true(fingerprint(blocks) in registry)

    async def test_failing_tick_callback_fast_forwards(self, registry, recorder, caplog) -> None:
        """A tick callback that raises once does not strand the session."""
        blocks = [markdown("one two three four")]
        calls = 0

        def flaky_tick(revealed) -> None:
            nonlocal calls
            calls += 1
            if calls == 2:
                raise RuntimeError("render failed")

        engine = start_streaming(
            blocks,
            speed=0.001,
            on_tick=flaky_tick,
            on_complete=recorder.on_complete,
            registry=registry,
        )

        with caplog.at_level(logging.ERROR):
            await asyncio.wait_for(engine.wait(), timeout=2)

        check.is_true(engine.completed)
        check.equal(engine.revealed, blocks)
        check.equal(recorder.completions, 1)
        check.is_in("Streaming callback failed", caplog.text)

    async def test_always_failing_tick_callback_cancels(self, registry, recorder) -> None:
        def broken_tick(revealed) -> None:
            raise RuntimeError("render failed")

        engine = start_streaming(
            [markdown("one two three")],
            speed=0.001,
            on_tick=broken_tick,
            on_complete=recorder.on_complete,
            registry=registry,
        )

        await asyncio.wait_for(engine.wait(), timeout=2)

        check.is_true(engine.cancelled)
        check.equal(recorder.completions, 0)
        check.equal(len(registry), 0)

    async def test_failing_completion_callback_still_releases_waiters(self, registry) -> None:
        def broken_complete() -> None:
            raise RuntimeError("finish failed")

        engine = start_streaming(
            [markdown("short")], speed=0.001, on_complete=broken_complete, registry=registry
        )

        await asyncio.wait_for(engine.wait(), timeout=2)

        check.is_true(engine.completed)
        check.is_false(engine.is_streaming)


class TestTextStreaming:
    """Tests for TextStreamingEngine."""

    async def test_reveals_words_in_order(self, registry, recorder) -> None:
        engine = TextStreamingEngine(
            "Hello world",
            speed=SLOW,
            on_tick=recorder.on_tick,
            on_complete=recorder.on_complete,
            registry=registry,
        )
        engine.start()
        drain(engine)

        check.equal(recorder.ticks, ["Hello", "Hello ", "Hello world"])
        check.equal(engine.displayed_text, "Hello world")
        check.equal(recorder.completions, 1)

    async def test_empty_text_completes_immediately(self, registry, recorder) -> None:
        engine = start_text_streaming(
            "", on_tick=recorder.on_tick, on_complete=recorder.on_complete, registry=registry
        )

        check.is_false(engine.is_streaming)
        check.equal(recorder.ticks, [])
        check.equal(recorder.completions, 1)

    async def test_replayed_text_shows_in_full(self, registry) -> None:
        await asyncio.wait_for(
            start_text_streaming("seen before", speed=0.001, registry=registry).wait(),
            timeout=2,
        )

        recorder = Recorder()
        engine = start_text_streaming(
            "seen before",
            on_tick=recorder.on_tick,
            on_complete=recorder.on_complete,
            registry=registry,
        )

        check.is_false(engine.is_streaming)
        check.equal(recorder.ticks, ["seen before"])
        check.equal(recorder.completions, 1)
