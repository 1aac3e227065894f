"""Data models for thread messages and vetting Q&A extractions."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

Role = Literal["human", "assistant", "tool", "internal"]
Counterparty = Literal["buyer", "seller"]
QAMode = Literal["disclosed", "withheld"]


class ContentBlock(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str
    text: str | None = None


class ToolCall(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str | None = None
    name: str = ""
    args: dict = {}


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str | None = None
    role: Role
    content: str | list[ContentBlock] = ""
    name: str | None = None
    timestamp: datetime | None = None
    tool_calls: list[ToolCall] = []
    tool_call_id: str | None = None

    @property
    def text(self) -> str:
        """Plain text of the message; text blocks are joined with a space."""
        if isinstance(self.content, str):
            return self.content
        return " ".join(b.text or "" for b in self.content if b.type == "text")

    @property
    def has_attachments(self) -> bool:
        if isinstance(self.content, str):
            return False
        return any(b.type != "text" for b in self.content)


class QAItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str = ""


class QAExtraction(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[QAItem]
    counterparty: Counterparty
    mode: QAMode


class ThreadSnapshot(BaseModel):
    """What consumers see after each reconciled-list change."""

    model_config = ConfigDict(frozen=True)

    session_key: str | None
    transcript: list[Message] = []
    summary: QAExtraction | None = None
    summary_is_live: bool = False
    awaiting_reply: bool = False


class Submission(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: Message
    tool_responses: list[Message] = []
    messages: list[Message]
