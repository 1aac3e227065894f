"""Parse raw agent-server message dicts and history snapshots into Messages."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from .config import DO_NOT_RENDER_ID_PREFIX
from .models import Message, Role

logger = logging.getLogger(__name__)

_ROLE_ALIASES: dict[str, Role] = {
    "human": "human",
    "user": "human",
    "ai": "assistant",
    "assistant": "assistant",
    "tool": "tool",
}


def _resolve_role(raw: dict[str, Any]) -> Role:
    kind = raw.get("type") or raw.get("role") or ""
    msg_id = raw.get("id")
    if isinstance(msg_id, str) and msg_id.startswith(DO_NOT_RENDER_ID_PREFIX):
        return "internal"
    return _ROLE_ALIASES.get(str(kind).lower(), "internal")


def _normalize_content(content: Any) -> str | list[dict[str, Any]]:
    """Keep strings and block lists, drop anything else to an empty string."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        blocks = []
        for block in content:
            if isinstance(block, str):
                blocks.append({"type": "text", "text": block})
            elif isinstance(block, dict) and isinstance(block.get("type"), str):
                blocks.append(block)
        return blocks
    return ""


def _normalize_tool_calls(tool_calls: Any) -> list[dict[str, Any]]:
    """Keep well-formed tool call dicts from an assistant message."""
    if not isinstance(tool_calls, list):
        return []
    calls = []
    for call in tool_calls:
        if not isinstance(call, dict):
            continue
        calls.append(
            {
                "id": call.get("id") if isinstance(call.get("id"), str) else None,
                "name": call.get("name") if isinstance(call.get("name"), str) else "",
                "args": call.get("args") if isinstance(call.get("args"), dict) else {},
            }
        )
    return calls


def parse_message(raw: dict[str, Any]) -> Message | None:
    """Parse a single wire message dict.

    Returns None if the dict cannot be turned into a Message.
    """
    if not isinstance(raw, dict):
        logger.warning("Skipping non-object message entry: %r", type(raw).__name__)
        return None

    fields = {
        "id": raw.get("id") if isinstance(raw.get("id"), str) else None,
        "role": _resolve_role(raw),
        "content": _normalize_content(raw.get("content")),
        "name": raw.get("name") if isinstance(raw.get("name"), str) else None,
        "tool_calls": _normalize_tool_calls(raw.get("tool_calls")),
        "tool_call_id": raw.get("tool_call_id") if isinstance(raw.get("tool_call_id"), str) else None,
    }

    try:
        return Message(**fields, timestamp=raw.get("timestamp"))
    except ValidationError:
        # An unreadable timestamp should not cost us the message itself
        logger.debug("Dropping unparseable timestamp on message %s", fields["id"])

    try:
        return Message(**fields)
    except ValidationError:
        logger.warning("Skipping malformed message %s", fields["id"], exc_info=True)
        return None


def parse_messages(data: list[Any]) -> list[Message]:
    """Parse a message array, dropping entries that fail to parse."""
    messages: list[Message] = []
    for raw in data:
        msg = parse_message(raw)
        if msg is not None:
            messages.append(msg)
    return messages


def parse_history(payload: Any) -> list[Message] | None:
    """Pull the message list out of a thread history response.

    The response is a list of state snapshots, newest first. Only the newest
    snapshot's ``values.messages`` is used. Returns None when the payload has
    no usable messages, so callers keep whatever they had before.
    """
    if not isinstance(payload, list) or not payload:
        return None

    latest = payload[0]
    if not isinstance(latest, dict):
        logger.warning("History snapshot is not an object")
        return None

    values = latest.get("values")
    raw_messages = values.get("messages") if isinstance(values, dict) else None
    if not isinstance(raw_messages, list) or not raw_messages:
        return None

    return parse_messages(raw_messages)
