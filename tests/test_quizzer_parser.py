from __future__ import annotations

import logging

import pytest

from adaptive_quizzer.quizzer.models import Difficulty
from adaptive_quizzer.quizzer.parser import (
    BankParser,
    ParseError,
    parse_bank,
    parse_bank_file,
)
from fixtures import make_bank, record


def test_level_record_fields() -> None:
    text = make_bank(
        record(
            "What is 2 + 2?",
            options=("3", "4", "5", "22"),
            answer=1,
            level=2,
            topic="Arithmetic",
            weight=2,
        )
    )

    (question,) = parse_bank(text)

    assert question.text == "What is 2 + 2?"
    assert question.options == ("3", "4", "5", "22")
    assert question.correct_index == 1
    assert question.correct_option == "4"
    assert question.difficulty is Difficulty.MEDIUM
    assert question.topic == "Arithmetic"
    assert question.weight == 2
    assert question.line == 1


def test_inline_tag_overrides_level() -> None:
    text = make_bank(record("Tricky", level=1, tag="Hard"))

    (question,) = parse_bank(text)

    assert question.difficulty is Difficulty.HARD
    assert question.text == "Tricky (Hard)"


def test_blank_format_defaults_to_easy_and_reads_tags() -> None:
    text = make_bank(
        record("Plain question"),
        record("Tagged question", tag="Medium"),
    )

    questions = parse_bank(text)

    assert [q.difficulty for q in questions] == [
        Difficulty.EASY,
        Difficulty.MEDIUM,
    ]


def test_level_outside_range_defaults_to_easy() -> None:
    (question,) = parse_bank(make_bank(record("Odd level", level=7)))

    assert question.difficulty is Difficulty.EASY


def test_topic_keeps_text_after_first_colon() -> None:
    (question,) = parse_bank(
        make_bank(record("Ports?", topic="Networking: TCP"))
    )

    assert question.topic == "Networking: TCP"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("7", 3), ("0", 1), ("-2", 1), ("abc", 1), ("3", 3)],
)
def test_weight_is_clamped(raw: str, expected: int) -> None:
    (question,) = parse_bank(make_bank(record("Weighted", weight=raw)))

    assert question.weight == expected


def test_missing_weight_and_topic_defaults() -> None:
    (question,) = parse_bank(make_bank(record("Bare")))

    assert question.weight == 1
    assert question.topic == ""


def test_multiline_question_body_in_level_format() -> None:
    text = (
        "Level: 2\n"
        "Q: First line\n"
        "continued line\n"
        "\n"
        "A) a\nB) b\nC) c\nD) d\n"
        "Answer: 3\n"
    )

    (question,) = parse_bank(text)

    assert question.text == "First line\ncontinued line"
    assert question.correct_index == 3


def test_crlf_line_endings() -> None:
    text = make_bank(record("Windows", level=1)).replace("\n", "\r\n")

    (question,) = parse_bank(text)

    assert question.text == "Windows"
    assert question.options[-1] == "delta"


def test_malformed_records_are_skipped_and_reported(caplog) -> None:
    incomplete = "Q: Missing D\nA) 1\nB) 2\nC) 3\nAnswer: 0"
    text = make_bank(
        record("Good one"),
        incomplete,
        record("Bad answer", answer=4),
        record("Not a number", answer="x"),
        record("Good two"),
    )
    parser = BankParser()

    with caplog.at_level(logging.WARNING, logger="adaptive_quizzer"):
        questions = parser.parse(text)

    assert [q.text for q in questions] == ["Good one", "Good two"]
    assert len(parser.errors) == 3
    assert "missing D" in parser.errors[0].reason
    assert parser.errors[0].record_line == 8
    assert "outside 0..3" in parser.errors[1].reason
    assert "unparsable" in parser.errors[2].reason
    assert any(
        "Skipping malformed" in message for message in caplog.messages
    )


def test_raise_policy_rejects_whole_bank() -> None:
    text = make_bank(record("Good"), record("Bad", answer=9))

    with pytest.raises(ParseError) as excinfo:
        parse_bank(text, on_error="raise")

    assert "outside" in str(excinfo.value)


def test_bank_without_valid_records_fails() -> None:
    with pytest.raises(ParseError, match="no valid records"):
        parse_bank(make_bank(record("Bad", answer=5)))

    with pytest.raises(ParseError):
        parse_bank("just some notes\nwithout any records\n")


def test_open_record_at_end_of_input_is_validated() -> None:
    text = make_bank(record("Complete")) + "Q: Unfinished\nA) 1\nB) 2\nC) 3\nD) 4"
    parser = BankParser()

    questions = parser.parse(text)

    assert len(questions) == 1
    assert len(parser.errors) == 1
    assert "Answer" in parser.errors[0].reason


def test_keyword_outside_record_is_reported() -> None:
    text = "Answer: 2\n\n" + make_bank(record("After stray"))
    parser = BankParser()

    questions = parser.parse(text)

    assert [q.text for q in questions] == ["After stray"]
    assert parser.errors[0].line == 1


def test_level_line_starts_new_record_even_without_blank_line() -> None:
    text = (
        "Level: 1\nQ: one\nA) a\nB) b\nC) c\nD) d\nAnswer: 0\n"
        "Level: 3\nQ: two\nA) a\nB) b\nC) c\nD) d\nAnswer: 2\n"
    )

    questions = parse_bank(text)

    assert [(q.text, q.difficulty) for q in questions] == [
        ("one", Difficulty.EASY),
        ("two", Difficulty.HARD),
    ]


def test_forced_blank_format_ignores_level_detection() -> None:
    text = make_bank(record("Levelled", level=3))

    (question,) = parse_bank(text, fmt="blank")

    assert question.difficulty is Difficulty.HARD


def test_parse_bank_file_tolerates_bom(workspace) -> None:
    path = workspace.write("bank.txt", "\ufeff" + make_bank(record("BOM")))

    (question,) = parse_bank_file(path)

    assert question.text == "BOM"


def test_parser_rejects_unknown_options() -> None:
    with pytest.raises(ValueError):
        BankParser(fmt="yaml")
    with pytest.raises(ValueError):
        BankParser(on_error="ignore")


def test_empty_option_text_is_accepted() -> None:
    text = make_bank(record("Pick the blank", options=("", "b", "c", "d")))
    parser = BankParser()

    (question,) = parser.parse(text)

    assert question.options == ("", "b", "c", "d")
    assert question.correct_option == ""
    assert parser.errors == []
