"""Merge the live stream and the polled history into one message list.

The stream and the poll are written independently, each through its own port
(``update_stream`` and ``apply_poll``). After every write the pure
``reconcile`` function picks the list to trust, the projector derives the
transcript and summary, and subscribers get a fresh ThreadSnapshot when
anything they can see changed.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from .config import DO_NOT_RENDER_ID_PREFIX
from .models import ContentBlock, Message, Submission, ThreadSnapshot
from .projector import detect_summary, is_awaiting_reply, project_transcript
from .storage import SessionState, SessionStore

logger = logging.getLogger(__name__)

Listener = Callable[[ThreadSnapshot], None]


def content_fingerprint(msg: Message) -> str:
    return json.dumps(msg.model_dump(mode="json")["content"], sort_keys=True)


def history_fingerprint(messages: list[Message]) -> str:
    return json.dumps(
        [{"id": m.id, "content": m.model_dump(mode="json")["content"]} for m in messages],
        sort_keys=True,
    )


def reconcile(
    stream: list[Message],
    polled: list[Message],
    is_stream_active: bool,
) -> list[Message]:
    """Pick the message list to treat as ground truth right now.

    While the stream is producing tokens it always wins, so a stale poll never
    overwrites in-progress output. Otherwise the poll wins when it has seen
    more turns, or the same number of turns with a different last message
    (a server-side edit or regeneration the stream has not shown yet).
    """
    if is_stream_active:
        return stream
    if len(polled) > len(stream):
        return polled
    if polled and len(polled) == len(stream):
        if content_fingerprint(polled[-1]) != content_fingerprint(stream[-1]):
            return polled
    return stream


def pending_tool_responses(messages: list[Message]) -> list[Message]:
    """Placeholder tool messages for assistant tool calls that were never answered.

    A run cannot resume on top of an unanswered tool call, so these go in
    front of a new human turn. They use the do-not-render id prefix and never
    show in the transcript.
    """
    answered = {m.tool_call_id for m in messages if m.role == "tool" and m.tool_call_id}
    responses: list[Message] = []
    for i, msg in enumerate(messages):
        if msg.role != "assistant" or not msg.tool_calls:
            continue
        if i + 1 < len(messages) and messages[i + 1].role == "tool":
            continue
        for call in msg.tool_calls:
            if call.id in answered:
                continue
            responses.append(
                Message(
                    id=f"{DO_NOT_RENDER_ID_PREFIX}{uuid.uuid4()}",
                    role="tool",
                    content="Successfully handled tool call.",
                    name=call.name or None,
                    tool_call_id=call.id or "",
                )
            )
    return responses


@dataclass(frozen=True)
class PollTicket:
    """Identifies the session a poll was issued for."""

    key: str
    epoch: int


class SessionReconciler:
    """Owns the reconciled message list for the active session."""

    def __init__(
        self,
        store: SessionStore | None = None,
        on_error: Callable[[str], None] | None = None,
    ):
        self.store = store or SessionStore()
        self._on_error = on_error
        self._key: str | None = None
        self._epoch = 0
        self._listeners: list[Listener] = []
        self._published: ThreadSnapshot | None = None

    @property
    def session_key(self) -> str | None:
        return self._key

    @property
    def messages(self) -> list[Message]:
        if self._key is None:
            return []
        return list(self._state().messages)

    @property
    def is_stream_active(self) -> bool:
        return self._key is not None and self._state().is_stream_active

    def _state(self) -> SessionState:
        return self.store.get(self._key)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for snapshots; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def switch_session(self, key: str | None):
        """Make ``key`` the active session, discarding all state of the previous one.

        Polls issued before the switch become stale and are ignored when they
        resolve.
        """
        if key == self._key:
            return

        if self._key is not None:
            self.store.drop(self._key)
        self._epoch += 1
        logger.info("Switching session %s -> %s", self._key, key)
        self._key = key
        if key is not None:
            self.store.reset(key)
        self._publish()

    def update_stream(
        self,
        messages: list[Message],
        is_loading: bool,
        error: str | None = None,
    ):
        """Stream port: record the stream's current message list and activity."""
        if self._key is None:
            logger.debug("Stream update with no open session ignored")
            return

        state = self._state()
        self._track_error(state, error)
        state.stream_messages = list(messages)
        state.is_stream_active = is_loading
        self._refresh(state)

    def begin_poll(self) -> PollTicket | None:
        """Return a ticket for a history poll, or None if polling should be skipped."""
        if self._key is None or self._state().is_stream_active:
            return None
        return PollTicket(key=self._key, epoch=self._epoch)

    def apply_poll(self, ticket: PollTicket, messages: list[Message] | None) -> bool:
        """Poll port: record a history snapshot fetched with ``ticket``.

        Returns True if the snapshot was taken. Responses for a session that is
        no longer active, failed polls (None) and unchanged snapshots are
        ignored.
        """
        if ticket.key != self._key or ticket.epoch != self._epoch:
            logger.debug("Dropping stale poll response for session %s", ticket.key)
            return False
        if messages is None:
            return False

        state = self._state()
        fingerprint = history_fingerprint(messages)
        if fingerprint == state.poll_fingerprint:
            return False

        state.poll_fingerprint = fingerprint
        state.polled_messages = list(messages)
        self._refresh(state)
        return True

    def submit(self, text: str, attachments: list[ContentBlock] | None = None) -> Submission | None:
        """Append a new human turn optimistically and mark the stream active.

        Unanswered tool calls get placeholder tool responses ahead of the new
        turn, both in the submission and in the optimistic list.

        Returns None when there is nothing to send, no open session, or a run
        is already in progress.
        """
        attachments = attachments or []
        if self._key is None:
            logger.warning("Cannot submit without an open session")
            return None
        if not text.strip() and not attachments:
            return None
        if self.is_stream_active:
            logger.debug("Submission ignored while a run is in progress")
            return None

        blocks = ([ContentBlock(type="text", text=text)] if text.strip() else []) + attachments
        message = Message(
            id=str(uuid.uuid4()),
            role="human",
            content=blocks,
            timestamp=datetime.now(timezone.utc),
        )
        tool_responses = pending_tool_responses(self.messages)
        optimistic = self.messages + tool_responses + [message]
        self.update_stream(optimistic, is_loading=True)
        return Submission(message=message, tool_responses=tool_responses, messages=optimistic)

    def snapshot(self) -> ThreadSnapshot:
        if self._key is None:
            return ThreadSnapshot(session_key=None)

        state = self._state()
        return ThreadSnapshot(
            session_key=self._key,
            transcript=project_transcript(state.messages),
            summary=state.cached_summary,
            summary_is_live=state.summary_is_live,
            awaiting_reply=is_awaiting_reply(state.messages, state.is_stream_active),
        )

    def _track_error(self, state: SessionState, error: str | None):
        if not error:
            state.reported_error = None
            return
        if error == state.reported_error:
            return

        state.reported_error = error
        logger.error("Stream error in session %s: %s", self._key, error)
        if self._on_error is not None:
            self._on_error(error)

    def _refresh(self, state: SessionState):
        """Recompute the reconciled list and publish it.

        A candidate shorter than the list on screen is held back, even while
        streaming: tokens from a stream that restarted with fewer turns stay
        hidden until its list catches up.
        """
        candidate = reconcile(
            state.stream_messages, state.polled_messages, state.is_stream_active
        )

        # Never show fewer turns than are already on screen
        if len(candidate) < len(state.messages):
            logger.debug(
                "Keeping %d messages over shorter candidate (%d)",
                len(state.messages),
                len(candidate),
            )
        elif candidate != state.messages:
            state.messages = list(candidate)
            self.store.cache_summary(self._key, detect_summary(state.messages))

        self._publish()

    def _publish(self):
        snap = self.snapshot()
        if snap == self._published:
            return
        self._published = snap

        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.warning("Snapshot listener failed", exc_info=True)
