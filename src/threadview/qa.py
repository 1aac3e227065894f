"""Extract vetting Q&A blocks embedded as plain text in assistant messages.

Two header shapes are recognized (case-insensitive):

    disclosed:  here are <N> vetting answers from the matched <party>:
    withheld:   the matched <party> has answered <N> vetting question(s).

where <party> is ``buyer``, ``seller`` or the placeholder ``opposing party``.
Entries follow the header, one per line, as ``<n>. <question>`` (optionally
bold, ``**<n>. <question>**``). Withheld entries may also run inline on one
line when each is bold. In disclosed mode each entry is followed by its
answer on the next non-blank line(s), ending at a blank line, the next entry or
end of text. A header with no entries is not a Q&A block.

A Q&A message may carry a trailing addendum, separated by a blank line and
starting with ``the counterparty has answered your question:``. The addendum is
split off before extraction and shown as ordinary text.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .config import ADDENDUM_MARKER, DEFAULT_COUNTERPARTY, KNOWN_COUNTERPARTIES
from .models import Counterparty, Message, QAExtraction, QAItem

logger = logging.getLogger(__name__)

_PARTY = r"(?P<party>buyer|seller|opposing party)"

_DISCLOSED_HEADER = re.compile(
    rf"here are (?P<count>\d+) vetting answers from the matched {_PARTY}:",
    re.IGNORECASE,
)
_WITHHELD_HEADER = re.compile(
    rf"the matched {_PARTY} has answered (?P<count>\d+) vetting questions?\.",
    re.IGNORECASE,
)
_ENTRY = re.compile(
    r"^\s*(?P<bold>\*\*)?(?P<num>\d+)\.(?(bold)\s*|\s+)"
    r"(?P<question>(?(bold)(?:(?!\*\*).)*?|.*?))\s*(?(bold)\*\*)\s*$"
)
_INLINE_ENTRY = re.compile(r"\*\*(?P<num>\d+)\.\s*(?P<question>[^*\n]+?)\s*\*\*")


def normalize_question(question: str) -> str:
    return question.strip().casefold()


def _normalize_counterparty(value: Any) -> Counterparty | None:
    if not isinstance(value, str):
        return None
    v = value.strip().casefold()
    return v if v in KNOWN_COUNTERPARTIES else None


def _resolve_counterparty(captured: str, hint: Any) -> Counterparty:
    return (
        _normalize_counterparty(captured)
        or _normalize_counterparty(hint)
        or DEFAULT_COUNTERPARTY
    )


def parse_entries(text: str, with_answers: bool = True) -> list[QAItem]:
    """Parse numbered entries from the body of a Q&A block.

    When any entry line is bold, only bold lines count as entries, so plain
    numbered lists inside an answer stay part of that answer.
    """
    lines = text.replace("\r\n", "\n").split("\n")
    matches = [_ENTRY.match(line) for line in lines]
    bold_only = any(m is not None and m.group("bold") for m in matches)

    def is_entry(idx: int) -> bool:
        m = matches[idx]
        return m is not None and (not bold_only or bool(m.group("bold")))

    items: list[QAItem] = []
    i = 0
    while i < len(lines):
        if not is_entry(i):
            i += 1
            continue

        question = matches[i].group("question").strip()
        i += 1

        if not with_answers:
            if question:
                items.append(QAItem(question=question))
            continue

        # Blank lines are allowed between a question and its answer
        j = i
        while j < len(lines) and not lines[j].strip():
            j += 1
        answer_lines: list[str] = []
        if j < len(lines) and not is_entry(j):
            i = j
            while i < len(lines) and lines[i].strip() and not is_entry(i):
                answer_lines.append(lines[i].strip())
                i += 1

        if question and answer_lines:
            items.append(QAItem(question=question, answer="\n".join(answer_lines)))
        elif question:
            logger.debug("Entry without an answer skipped: %r", question)

    return items


def _inline_entries(text: str) -> list[QAItem]:
    """Bold entries run together on one line, as some withheld teasers are sent."""
    return [QAItem(question=m.group("question")) for m in _INLINE_ENTRY.finditer(text)]


def extract_qa(text: str, counterparty_hint: Any = None) -> QAExtraction | None:
    """Extract a Q&A block from message text.

    Disclosed mode is tried first. If it yields no entries, withheld mode is
    tried on the same text. Returns None when neither produces entries.
    """
    header = _DISCLOSED_HEADER.search(text)
    if header:
        items = parse_entries(text[header.end():], with_answers=True)
        if items:
            return QAExtraction(
                items=items,
                counterparty=_resolve_counterparty(header.group("party"), counterparty_hint),
                mode="disclosed",
            )

    header = _WITHHELD_HEADER.search(text)
    if header:
        body = text[header.end():]
        items = parse_entries(body, with_answers=False) or _inline_entries(body)
        if items:
            return QAExtraction(
                items=items,
                counterparty=_resolve_counterparty(header.group("party"), counterparty_hint),
                mode="withheld",
            )

    return None


def strip_addendum(text: str) -> tuple[str, str | None]:
    """Split ``text`` into the part before the addendum and the addendum itself."""
    normalized = text.replace("\r\n", "\n").rstrip()
    head, sep, tail = normalized.rpartition("\n\n")
    tail = tail.strip()
    if sep and tail.casefold().startswith(ADDENDUM_MARKER):
        return head, tail
    return normalized, None


def split_addendum(text: str) -> str | None:
    return strip_addendum(text)[1]


def extract_from_message(message: Message) -> QAExtraction | None:
    """Q&A extraction for an assistant message, ignoring any addendum."""
    if message.role != "assistant":
        return None
    body, _ = strip_addendum(message.text)
    return extract_qa(body, counterparty_hint=message.name)


def dedupe_questions(items: list[QAItem]) -> list[QAItem]:
    """Collapse repeated questions to one entry each.

    Each question keeps the slot and wording of its first appearance and the
    answer of its last, so a later full answer replaces an earlier teaser
    without reordering the list.
    """
    first: dict[str, QAItem] = {}
    last_answer: dict[str, str] = {}
    for item in items:
        key = normalize_question(item.question)
        first.setdefault(key, item)
        last_answer[key] = item.answer

    return [
        item if item.answer == last_answer[key] else QAItem(question=item.question, answer=last_answer[key])
        for key, item in first.items()
    ]
