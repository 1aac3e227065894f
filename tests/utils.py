from __future__ import annotations

from typing import Any

from threadview.models import ContentBlock, Message

DISCLOSED_TEXT = (
    "Good news! Here are 2 vetting answers from the matched seller:\n\n"
    "**1. Are pets allowed?**\n"
    "Yes, cats only.\n\n"
    "**2. What is the budget?**\n"
    "Around 500k.\n"
)

TEASER_TEXT = (
    "The matched seller has answered 2 vetting questions. "
    "Please complete your vetting to see their answers.\n\n"
    "**1. Are pets allowed?**\n"
    "**2. Is parking included?**\n"
)


def human(msg_id: str | None, text: str) -> Message:
    return Message(id=msg_id, role="human", content=[ContentBlock(type="text", text=text)])


def ai(msg_id: str | None, text: str, name: str | None = None) -> Message:
    return Message(id=msg_id, role="assistant", content=text, name=name)


def tool(msg_id: str, text: str) -> Message:
    return Message(id=msg_id, role="tool", content=text)


def raw_message(kind: str, msg_id: str, content: Any, **extra: Any) -> dict[str, Any]:
    return {"type": kind, "id": msg_id, "content": content, **extra}


def history_payload(*raw_messages: dict[str, Any]) -> list[dict[str, Any]]:
    """A /history response: newest snapshot first, older ones after it."""
    return [
        {"values": {"messages": list(raw_messages)}, "checkpoint": {"checkpoint_id": "c2"}},
        {"values": {"messages": list(raw_messages[:1])}, "checkpoint": {"checkpoint_id": "c1"}},
    ]
