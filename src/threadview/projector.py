"""Project the reconciled message list into what is actually displayed."""

from __future__ import annotations

from datetime import datetime, timedelta

from .config import DO_NOT_RENDER_ID_PREFIX
from .models import Message, QAExtraction
from .qa import dedupe_questions, extract_from_message, strip_addendum


def _is_hidden(msg: Message) -> bool:
    if msg.role in ("internal", "tool"):
        return True
    return bool(msg.id and msg.id.startswith(DO_NOT_RENDER_ID_PREFIX))


def _display_form(msg: Message) -> Message | None:
    """Return the message as it should appear, or None to withhold it.

    Assistant messages that are purely a Q&A block are withheld; they surface
    through the summary instead. A Q&A block followed by an addendum is shown
    as the addendum alone.
    """
    if msg.role != "assistant":
        return msg

    text = msg.text
    if not text.strip() and not msg.has_attachments:
        return None

    if extract_from_message(msg) is None:
        return msg

    _, addendum = strip_addendum(text)
    if addendum is None:
        return None
    return msg.model_copy(update={"content": addendum})


def _dedupe_by_id(messages: list[Message]) -> list[Message]:
    """Keep each id at its last position; id-less messages are keyed by role and index."""
    seen: set[str] = set()
    kept: list[Message] = []
    for i in range(len(messages) - 1, -1, -1):
        msg = messages[i]
        key = msg.id or f"{msg.role}-{i}"
        if key in seen:
            continue
        seen.add(key)
        kept.append(msg)
    kept.reverse()
    return kept


def project_transcript(messages: list[Message]) -> list[Message]:
    """Build the on-screen transcript from a reconciled message list."""
    visible: list[Message] = []
    for msg in messages:
        if _is_hidden(msg):
            continue
        shown = _display_form(msg)
        if shown is not None:
            visible.append(shown)
    return _dedupe_by_id(visible)


def detect_summary(messages: list[Message]) -> QAExtraction | None:
    """Find the newest Q&A-bearing assistant message and return its deduped extraction."""
    for msg in reversed(messages):
        if msg.role != "assistant":
            continue
        parsed = extract_from_message(msg)
        if parsed is not None:
            return parsed.model_copy(update={"items": dedupe_questions(parsed.items)})
    return None


def is_awaiting_reply(messages: list[Message], is_stream_active: bool) -> bool:
    """True while a run is in flight and the newest message is not from the assistant."""
    if not is_stream_active:
        return False
    if not messages:
        return True
    return messages[-1].role != "assistant"


def format_timestamp(ts: datetime, now: datetime | None = None) -> str:
    """Format a message time relative to ``now``.

    - today: ``2:30 PM``
    - yesterday: ``Yesterday 2:30 PM``
    - older: ``Jan 15, 2:30 PM``

    Aware timestamps are shown in the zone of ``now``, which defaults to the
    local zone.
    """
    if now is None:
        now = datetime.now().astimezone() if ts.tzinfo else datetime.now()
    if ts.tzinfo is not None and now.tzinfo is not None:
        ts = ts.astimezone(now.tzinfo)
    clock = f"{ts.hour % 12 or 12}:{ts.minute:02d} {'AM' if ts.hour < 12 else 'PM'}"
    if ts.date() == now.date():
        return clock
    if ts.date() == (now - timedelta(days=1)).date():
        return f"Yesterday {clock}"
    return f"{ts.strftime('%b')} {ts.day}, {clock}"
