"""Registry of answers that have already been streamed once.

Re-displaying an answer whose fingerprint is known shows it in full
instead of animating it again. Registries are scoped to one chat session.
"""

import hashlib
import json
import logging
from collections import OrderedDict
from collections.abc import Sequence

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def fingerprint(content: Sequence[BaseModel] | str) -> str:
    """Hash the full content of an answer.

    Every block is serialized completely, so answers sharing a long common
    prefix never collide.

    Args:
        content: Content blocks, or a plain answer string.

    Returns:
        Hex SHA-256 digest.
    """
    if isinstance(content, str):
        payload = json.dumps({"text": content})
    else:
        payload = json.dumps(
            [block.model_dump(mode="json", by_alias=True) for block in content],
            sort_keys=True,
            ensure_ascii=False,
        )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class CompletedSessions:
    """Set of fingerprints of fully streamed answers.

    Append-only unless ``max_entries`` is set, in which case the oldest
    entries are evicted first. All access happens on the event loop
    thread, so no locking is needed.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, None] = OrderedDict()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_entries(self) -> int | None:
        return self._max_entries

    def add(self, key: str) -> None:
        if key in self._entries:
            return
        self._entries[key] = None
        if self._max_entries is not None and len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted completed session {evicted[:12]}")

    def clear(self) -> None:
        self._entries.clear()



class SessionRegistries:
    """Completed-answer registries keyed by chat session id.

    Each chat session replays only the answers it has already streamed
    itself. The least recently used sessions are forgotten once
    ``max_sessions`` is exceeded.
    """

    def __init__(self, max_sessions: int = 1000, max_entries: int | None = None) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._max_sessions = max_sessions
        self._max_entries = max_entries
        self._sessions: OrderedDict[str, CompletedSessions] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def for_session(self, session_id: str | None) -> CompletedSessions:
        """Return the registry of a session.

        Requests without a session id get a fresh registry, so their
        answers are always animated.
        """
        if session_id is None:
            return CompletedSessions(self._max_entries)
        registry = self._sessions.get(session_id)
        if registry is None:
            registry = CompletedSessions(self._max_entries)
            self._sessions[session_id] = registry
            if len(self._sessions) > self._max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug(f"Forgot completed answers of session {evicted}")
        else:
            self._sessions.move_to_end(session_id)
        return registry

    def clear(self) -> None:
        self._sessions.clear()


# Module-level singleton instance
_session_registries: SessionRegistries | None = None


def get_session_registries() -> SessionRegistries:
    """Get or create the per-session registries of this process.

    The per-session size bound is read from configuration on first use.

    Returns:
        The shared SessionRegistries instance.
    """
    global _session_registries
    if _session_registries is None:
        from docchat.config import get_app_config

        _session_registries = SessionRegistries(
            max_entries=get_app_config().max_completed_sessions
        )
    return _session_registries
