"""Process-local per-session state, keyed by session (thread) id."""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import Message, QAExtraction


@dataclass
class SessionState:
    """Everything retained for one session.

    ``stream_messages`` is written only by the stream port and
    ``polled_messages`` only by the poll port; ``messages`` is the reconciled
    list consumers read.
    """

    stream_messages: list[Message] = field(default_factory=list)
    polled_messages: list[Message] = field(default_factory=list)
    is_stream_active: bool = False
    messages: list[Message] = field(default_factory=list)
    cached_summary: QAExtraction | None = None
    summary_is_live: bool = False
    reported_error: str | None = None
    poll_fingerprint: str = ""


class SessionStore:
    """Keyed store of SessionState, one slot per session key."""

    def __init__(self):
        self._sessions: dict[str, SessionState] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, key: str) -> SessionState:
        """Return the state for ``key``, creating an empty one on first use."""
        state = self._sessions.get(key)
        if state is None:
            state = self._sessions[key] = SessionState()
        return state

    def reset(self, key: str) -> SessionState:
        """Discard everything held for ``key`` and start from empty state."""
        state = self._sessions[key] = SessionState()
        return state

    def drop(self, key: str):
        self._sessions.pop(key, None)

    def cache_summary(self, key: str, summary: QAExtraction | None):
        """Record the summary detected in the latest reconciled list.

        None means the list had no Q&A block; the previous summary is kept.
        """
        state = self.get(key)
        state.summary_is_live = summary is not None
        if summary is not None:
            state.cached_summary = summary

    def cached_summary(self, key: str) -> QAExtraction | None:
        state = self._sessions.get(key)
        return state.cached_summary if state else None
