"""Paced reveal of already-complete answers.

Simulates token-by-token LLM output when the backend only returns whole
answers.

Responsibilities:
    - Word-by-word reveal of markdown blocks, whole-table reveal
    - Exactly-once completion with cancellation on teardown
    - Fast-forward when a hidden page becomes visible again
    - Skipping animation for answers already streamed once
"""

from docchat.streaming.engine import (
    DEFAULT_SPEED,
    BlockStreamingEngine,
    StreamState,
    TextStreamingEngine,
    TextStreamState,
    start_streaming,
    start_text_streaming,
    tokenize_words,
)
from docchat.streaming.registry import (
    CompletedSessions,
    SessionRegistries,
    fingerprint,
    get_session_registries,
)

__all__ = [
    "DEFAULT_SPEED",
    "BlockStreamingEngine",
    "CompletedSessions",
    "SessionRegistries",
    "StreamState",
    "TextStreamState",
    "TextStreamingEngine",
    "fingerprint",
    "get_session_registries",
    "start_streaming",
    "start_text_streaming",
    "tokenize_words",
]
