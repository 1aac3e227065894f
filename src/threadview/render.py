"""Plain-text rendering of thread snapshots for the CLI and MCP tools."""

from __future__ import annotations

from datetime import datetime

from .config import MAX_TRANSCRIPT_CHARS
from .models import QAExtraction, ThreadSnapshot
from .projector import format_timestamp

_ROLE_LABELS = {"human": "**You**", "assistant": "**Agent**"}


def format_summary(summary: QAExtraction | None, is_live: bool = True) -> str:
    if summary is None:
        return "No vetting questions in this thread yet."

    party = summary.counterparty
    count = len(summary.items)
    plural = "s" if count != 1 else ""

    if summary.mode == "withheld":
        lines = [f"The matched {party} has answered {count} vetting question{plural}.", ""]
        for i, item in enumerate(summary.items, 1):
            lines.append(f"{i}. {item.question}")
    else:
        lines = [f"Vetting answers from the matched {party} ({count}):", ""]
        for i, item in enumerate(summary.items, 1):
            lines.append(f"{i}. **{item.question}**")
            lines.append(f"   {item.answer}")

    if not is_live:
        lines.append("")
        lines.append(f"Answer to view {party}'s responses")
    return "\n".join(lines)


def format_transcript(
    snapshot: ThreadSnapshot,
    max_chars: int = MAX_TRANSCRIPT_CHARS,
    now: datetime | None = None,
) -> str:
    """Render the transcript as markdown, truncated to ``max_chars`` of content."""
    lines = [f"# Thread {snapshot.session_key}", f"Messages: {len(snapshot.transcript)}", "", "---", ""]

    char_count = 0
    for msg in snapshot.transcript:
        role = _ROLE_LABELS.get(msg.role, msg.role)
        ts = format_timestamp(msg.timestamp, now) if msg.timestamp else ""
        header = role + (f" ({ts})" if ts else "")
        content = msg.text or "[attachment]"

        remaining_budget = max_chars - char_count
        if remaining_budget <= 0 or len(content) > remaining_budget:
            if remaining_budget > 0:
                lines.append(f"{header}:")
                lines.append(content[:remaining_budget])
            lines.append(f"\n... [Truncated: transcript exceeds {max_chars:,} chars]")
            break

        char_count += len(content)
        lines.append(f"{header}:")
        lines.append(content)
        lines.append("")

    if snapshot.awaiting_reply:
        lines.append("_Agent is typing..._")

    return "\n".join(lines)
