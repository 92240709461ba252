"""Parser for the line-oriented question bank format.

A bank is plain text made of records such as::

    Level: 1
    Q: What is 2 + 2? (Easy)
    Topic: Arithmetic
    Weight: 1
    A) 3
    B) 4
    C) 5
    D) 22
    Answer: 1

Two layouts exist in the wild. ``level`` banks open every record with a
``Level:`` line and may contain blank lines inside a question body. ``blank``
banks open records with ``Q:`` and separate them with blank lines. In both
layouts an ``Answer:`` line terminates the record, and a still-open record is
committed at the end of the input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .models import OPTION_KEYS, Difficulty, Question, QuizzerError

__all__ = [
    "BANK_FORMATS",
    "ERROR_POLICIES",
    "ParseError",
    "BankParser",
    "parse_bank",
    "parse_bank_file",
]

BANK_FORMATS = ("auto", "level", "blank")
ERROR_POLICIES = ("skip", "raise")

MIN_WEIGHT = 1
MAX_WEIGHT = 3

_DIFFICULTY_TAGS = (
    ("(Easy)", Difficulty.EASY),
    ("(Medium)", Difficulty.MEDIUM),
    ("(Hard)", Difficulty.HARD),
)
_OPTION_PREFIXES = {f"{key})": index for index, key in enumerate(OPTION_KEYS)}
_RECORD_KEYWORDS = ("Topic:", "Weight:", "Answer:") + tuple(_OPTION_PREFIXES)

logger = logging.getLogger(__name__)


class ParseError(QuizzerError, ValueError):
    """Raised when a bank record is missing a required field."""

    def __init__(
        self, reason: str, *, line: int, record_line: Optional[int] = None
    ) -> None:
        self.reason = reason
        self.line = line
        self.record_line = record_line
        location = f"line {line}"
        if record_line is not None and record_line != line:
            location += f" (record starting at line {record_line})"
        super().__init__(f"{location}: {reason}")


@dataclass
class _RecordBuilder:
    start_line: int
    level: Optional[int] = None
    text_lines: List[str] = field(default_factory=list)
    has_question: bool = False
    tagged: Optional[Difficulty] = None
    topic: str = ""
    weight: int = MIN_WEIGHT
    options: List[Optional[str]] = field(
        default_factory=lambda: [None] * len(OPTION_KEYS)
    )
    answer_raw: Optional[str] = None
    answer_line: Optional[int] = None

    def add_question_line(self, body: str) -> None:
        self.has_question = True
        self.text_lines.append(body)
        for tag, difficulty in _DIFFICULTY_TAGS:
            if tag in body:
                self.tagged = difficulty
                break

    def difficulty(self) -> Difficulty:
        if self.tagged is not None:
            return self.tagged
        if self.level in (1, 2, 3):
            return Difficulty(self.level)
        return Difficulty.EASY

    def build(self, end_line: int) -> Question:
        text = "\n".join(self.text_lines).strip()
        if not self.has_question or not text:
            raise ParseError(
                "record has no question text",
                line=self.start_line,
                record_line=self.start_line,
            )
        missing = [
            OPTION_KEYS[index]
            for index, option in enumerate(self.options)
            if option is None
        ]
        if missing:
            raise ParseError(
                "record has fewer than 4 options (missing {0})".format(
                    ", ".join(missing)
                ),
                line=end_line,
                record_line=self.start_line,
            )
        if self.answer_raw is None:
            raise ParseError(
                "record has no 'Answer:' line",
                line=end_line,
                record_line=self.start_line,
            )
        answer_line = self.answer_line or end_line
        try:
            index = int(self.answer_raw)
        except ValueError as exc:
            raise ParseError(
                f"unparsable answer index '{self.answer_raw}'",
                line=answer_line,
                record_line=self.start_line,
            ) from exc
        if not 0 <= index < len(OPTION_KEYS):
            raise ParseError(
                f"answer index {index} is outside 0..{len(OPTION_KEYS) - 1}",
                line=answer_line,
                record_line=self.start_line,
            )
        return Question(
            text=text,
            options=tuple(self.options),  # type: ignore[arg-type]
            correct_index=index,
            difficulty=self.difficulty(),
            topic=self.topic,
            weight=self.weight,
            line=self.start_line,
        )


def _value_after_colon(line: str) -> str:
    return line.partition(":")[2].strip()


def _parse_level(raw: str) -> Optional[int]:
    try:
        return int(raw)
    except ValueError:
        return None


def _parse_weight(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        return MIN_WEIGHT
    return max(MIN_WEIGHT, min(MAX_WEIGHT, value))


def _detect_format(lines: Sequence[str]) -> str:
    for line in lines:
        if line.lstrip().startswith("Level:"):
            return "level"
    return "blank"


class BankParser:
    """Turn raw question-bank text into validated :class:`Question` records.

    ``on_error="skip"`` logs and collects malformed records in ``errors`` and
    keeps going; the parse still fails when no valid record remains.
    ``on_error="raise"`` rejects the whole bank on the first malformed record.
    """

    def __init__(self, *, fmt: str = "auto", on_error: str = "skip") -> None:
        if fmt not in BANK_FORMATS:
            raise ValueError(
                f"Unknown bank format '{fmt}'; expected one of {BANK_FORMATS}."
            )
        if on_error not in ERROR_POLICIES:
            raise ValueError(
                f"Unknown error policy '{on_error}'; expected one of "
                f"{ERROR_POLICIES}."
            )
        self.fmt = fmt
        self.on_error = on_error
        self.errors: List[ParseError] = []

    def parse(self, text: str) -> List[Question]:
        self.errors = []
        lines = text.splitlines()
        fmt = _detect_format(lines) if self.fmt == "auto" else self.fmt
        questions: List[Question] = []
        record: Optional[_RecordBuilder] = None

        for number, raw in enumerate(lines, start=1):
            stripped = raw.strip()
            if not stripped:
                if record is None:
                    continue
                if fmt == "blank":
                    self._commit(record, number - 1, questions)
                    record = None
                else:
                    record.text_lines.append("")
                continue

            if stripped.startswith("Level:"):
                if record is not None:
                    self._commit(record, number - 1, questions)
                record = _RecordBuilder(
                    start_line=number,
                    level=_parse_level(_value_after_colon(stripped)),
                )
                continue

            if stripped.startswith("Q:"):
                if record is None:
                    record = _RecordBuilder(start_line=number)
                elif fmt == "blank" and record.has_question:
                    self._commit(record, number - 1, questions)
                    record = _RecordBuilder(start_line=number)
                record.add_question_line(stripped[2:].strip())
                continue

            if record is None:
                if stripped.startswith(_RECORD_KEYWORDS):
                    self._fail(
                        ParseError(
                            "'{0}' line outside of a question record".format(
                                stripped.split()[0]
                            ),
                            line=number,
                        )
                    )
                continue

            if stripped.startswith("Topic:"):
                record.topic = _value_after_colon(stripped)
            elif stripped.startswith("Weight:"):
                record.weight = _parse_weight(_value_after_colon(stripped))
            elif stripped[:2] in _OPTION_PREFIXES:
                record.options[_OPTION_PREFIXES[stripped[:2]]] = stripped[
                    2:
                ].strip()
            elif stripped.startswith("Answer:"):
                record.answer_raw = _value_after_colon(stripped)
                record.answer_line = number
                self._commit(record, number, questions)
                record = None
            else:
                record.text_lines.append(raw.rstrip())

        if record is not None:
            self._commit(record, len(lines), questions)

        if not questions:
            raise ParseError(
                "question bank contains no valid records", line=len(lines)
            )
        logger.debug(
            "Parsed question bank",
            extra={
                "format": fmt,
                "question_count": len(questions),
                "skipped_records": len(self.errors),
            },
        )
        return questions

    def _commit(
        self,
        record: _RecordBuilder,
        end_line: int,
        questions: List[Question],
    ) -> None:
        try:
            questions.append(record.build(end_line))
        except ParseError as exc:
            self._fail(exc)

    def _fail(self, exc: ParseError) -> None:
        if self.on_error == "raise":
            raise exc
        self.errors.append(exc)
        logger.warning(
            "Skipping malformed question record",
            extra={
                "line": exc.line,
                "record_line": exc.record_line,
                "reason": exc.reason,
            },
        )


def parse_bank(
    text: str, *, fmt: str = "auto", on_error: str = "skip"
) -> List[Question]:
    """Parse ``text`` with a fresh :class:`BankParser`."""

    return BankParser(fmt=fmt, on_error=on_error).parse(text)


def parse_bank_file(
    path: Path, *, fmt: str = "auto", on_error: str = "skip"
) -> List[Question]:
    """Read and parse a bank file; a UTF-8 BOM is tolerated."""

    text = Path(path).read_text(encoding="utf-8-sig")
    return parse_bank(text, fmt=fmt, on_error=on_error)
