from __future__ import annotations

from threadview.models import QAItem
from threadview.qa import (
    dedupe_questions,
    extract_from_message,
    extract_qa,
    parse_entries,
    split_addendum,
    strip_addendum,
)

from .utils import DISCLOSED_TEXT, TEASER_TEXT, ai, human

ADDENDUM_TEXT = "**1. Q?**\nA\n\nthe counterparty has answered your question: X"


def test_disclosed_mode_extracts_questions_and_answers():
    parsed = extract_qa(DISCLOSED_TEXT)
    assert parsed is not None
    assert parsed.mode == "disclosed"
    assert parsed.counterparty == "seller"
    assert parsed.items == [
        QAItem(question="Are pets allowed?", answer="Yes, cats only."),
        QAItem(question="What is the budget?", answer="Around 500k."),
    ]


def test_headers_are_case_insensitive():
    parsed = extract_qa("HERE ARE 1 VETTING ANSWERS FROM THE MATCHED BUYER:\n**1. Q?**\nA")
    assert parsed is not None
    assert parsed.counterparty == "buyer"
    assert parsed.items == [QAItem(question="Q?", answer="A")]


def test_teaser_mode_has_questions_without_answers():
    parsed = extract_qa(TEASER_TEXT)
    assert parsed is not None
    assert parsed.mode == "withheld"
    assert parsed.counterparty == "seller"
    assert [i.question for i in parsed.items] == ["Are pets allowed?", "Is parking included?"]
    assert all(i.answer == "" for i in parsed.items)


def test_teaser_header_accepts_singular_question():
    parsed = extract_qa("The matched buyer has answered 1 vetting question.\n**1. Budget?**")
    assert parsed is not None
    assert parsed.items == [QAItem(question="Budget?")]


def test_header_without_entries_is_not_a_qa_block():
    assert extract_qa("Here are 3 vetting answers from the matched buyer:\n\nNothing yet.") is None
    assert extract_qa("The matched seller has answered 2 vetting questions.") is None


def test_plain_text_is_not_a_qa_block():
    assert extract_qa("**1. Pick a date**\nTomorrow works.") is None


def test_disclosed_takes_precedence_over_teaser():
    text = (
        "The matched seller has answered 1 vetting question.\n\n"
        "Here are 1 vetting answers from the matched seller:\n"
        "**1. Q?**\nA"
    )
    parsed = extract_qa(text)
    assert parsed is not None
    assert parsed.mode == "disclosed"
    assert parsed.items == [QAItem(question="Q?", answer="A")]


def test_falls_back_to_teaser_when_disclosed_yields_nothing():
    text = (
        "Here are 2 vetting answers from the matched buyer:\n\n"
        "The matched buyer has answered 2 vetting questions.\n"
        "**1. Q1?**\n**2. Q2?**"
    )
    parsed = extract_qa(text)
    assert parsed is not None
    assert parsed.mode == "withheld"
    assert [i.question for i in parsed.items] == ["Q1?", "Q2?"]


def test_placeholder_party_uses_hint_then_default():
    text = "Here are 1 vetting answers from the matched opposing party:\n**1. Q?**\nA"
    assert extract_qa(text, counterparty_hint=" Seller ").counterparty == "seller"
    assert extract_qa(text, counterparty_hint="agent").counterparty == "buyer"
    assert extract_qa(text).counterparty == "buyer"


def test_literal_party_wins_over_hint():
    text = "Here are 1 vetting answers from the matched seller:\n**1. Q?**\nA"
    assert extract_qa(text, counterparty_hint="buyer").counterparty == "seller"


def test_entries_before_header_are_ignored():
    text = (
        "**1. Old?**\nStale\n"
        "Here are 1 vetting answers from the matched buyer:\n"
        "**1. New?**\nFresh"
    )
    assert extract_qa(text).items == [QAItem(question="New?", answer="Fresh")]


def test_answer_ends_at_blank_line():
    text = "Here are 1 vetting answers from the matched buyer:\n**1. Q?**\nA\n\nThanks for your patience."
    assert extract_qa(text).items == [QAItem(question="Q?", answer="A")]


def test_answer_may_follow_a_blank_line():
    assert parse_entries("**1. Q?**\n\nA") == [QAItem(question="Q?", answer="A")]


def test_multiline_answer_keeps_plain_numbered_lines():
    body = "**1. Q?**\nSteps:\n1. call\n2. visit\n**2. R?**\nok"
    assert parse_entries(body) == [
        QAItem(question="Q?", answer="Steps:\n1. call\n2. visit"),
        QAItem(question="R?", answer="ok"),
    ]


def test_unbolded_entries_are_recognized():
    assert parse_entries("1. Q?\nA\n2. R?\nB") == [
        QAItem(question="Q?", answer="A"),
        QAItem(question="R?", answer="B"),
    ]


def test_trailing_entry_without_answer_is_dropped():
    assert parse_entries("**1. Q?**\nA\n**2. R?**") == [QAItem(question="Q?", answer="A")]


def test_empty_question_is_skipped():
    assert parse_entries("**1. **\nA\n**2. R?**\nB") == [QAItem(question="R?", answer="B")]


def test_addendum_is_isolated_from_qa_block():
    assert parse_entries(strip_addendum(ADDENDUM_TEXT)[0]) == [QAItem(question="Q?", answer="A")]
    assert split_addendum(ADDENDUM_TEXT) == "the counterparty has answered your question: X"

    msg = ai("m1", "Here are 1 vetting answers from the matched buyer:\n" + ADDENDUM_TEXT)
    parsed = extract_from_message(msg)
    assert parsed is not None
    assert parsed.items == [QAItem(question="Q?", answer="A")]


def test_addendum_marker_is_case_insensitive_and_trimmed():
    text = "**1. Q?**\nA\n\n  The Counterparty Has Answered Your Question: yes  \n"
    assert split_addendum(text) == "The Counterparty Has Answered Your Question: yes"


def test_addendum_must_be_the_last_segment():
    text = "**1. Q?**\nA\n\nthe counterparty has answered your question: X\n\nAnything else?"
    assert split_addendum(text) is None


def test_no_double_line_break_means_no_addendum():
    assert split_addendum("the counterparty has answered your question: X") is None
    body, addendum = strip_addendum("just text")
    assert body == "just text"
    assert addendum is None


def test_extract_from_message_only_reads_assistant_messages():
    assert extract_from_message(human("h1", DISCLOSED_TEXT)) is None
    assert extract_from_message(ai("a1", DISCLOSED_TEXT)) is not None


def test_extract_from_message_uses_name_as_hint():
    text = "The matched opposing party has answered 1 vetting question.\n**1. Q?**"
    assert extract_from_message(ai("a1", text, name="seller")).counterparty == "seller"


def test_dedupe_keeps_first_slot_and_last_answer():
    items = [
        QAItem(question="Are pets allowed?", answer=""),
        QAItem(question="Budget?", answer=""),
        QAItem(question="are pets allowed?", answer="Yes"),
    ]
    assert dedupe_questions(items) == [
        QAItem(question="Are pets allowed?", answer="Yes"),
        QAItem(question="Budget?", answer=""),
    ]


def test_dedupe_normalizes_whitespace_and_case():
    items = [QAItem(question="  Budget? "), QAItem(question="BUDGET?", answer="500k")]
    assert dedupe_questions(items) == [QAItem(question="  Budget? ", answer="500k")]


def test_dedupe_is_idempotent_and_preserves_first_appearance_order():
    items = [
        QAItem(question="C"),
        QAItem(question="a"),
        QAItem(question="B", answer="1"),
        QAItem(question="A", answer="2"),
        QAItem(question="c", answer="3"),
    ]
    once = dedupe_questions(items)
    assert [i.question for i in once] == ["C", "a", "B"]
    assert [i.answer for i in once] == ["3", "2", "1"]
    assert dedupe_questions(once) == once


def test_teaser_entries_may_run_inline():
    parsed = extract_qa("The matched buyer has answered 2 vetting questions. **1. A?** **2. B?**")
    assert parsed is not None
    assert parsed.mode == "withheld"
    assert parsed.counterparty == "buyer"
    assert parsed.items == [QAItem(question="A?"), QAItem(question="B?")]


def test_bold_entry_line_does_not_absorb_a_second_entry():
    assert parse_entries("**1. A?** **2. B?**", with_answers=False) == []
