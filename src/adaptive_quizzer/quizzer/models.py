"""Immutable records shared by the adaptive quiz engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

__all__ = [
    "OPTION_KEYS",
    "Difficulty",
    "Question",
    "Response",
    "QuizzerError",
    "ConfigurationError",
    "SessionStateError",
]

OPTION_KEYS = ("A", "B", "C", "D")


class QuizzerError(RuntimeError):
    """Base class for errors raised by the quiz engine."""


class ConfigurationError(QuizzerError):
    """Raised when a session cannot be started from the given inputs."""


class SessionStateError(QuizzerError):
    """Raised when session operations are invoked out of order."""


class Difficulty(Enum):
    """Difficulty tier used to bucket questions and track adaptive state."""

    EASY = 1
    MEDIUM = 2
    HARD = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def harder(self) -> "Difficulty":
        return Difficulty(min(self.value + 1, Difficulty.HARD.value))

    def easier(self) -> "Difficulty":
        return Difficulty(max(self.value - 1, Difficulty.EASY.value))

    @classmethod
    def from_label(cls, label: str) -> "Difficulty":
        try:
            return cls[label.strip().upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown difficulty '{label}'.") from exc


@dataclass(frozen=True)
class Question:
    """A validated multiple-choice question parsed from a bank."""

    text: str
    options: tuple[str, str, str, str]
    correct_index: int
    difficulty: Difficulty = Difficulty.EASY
    topic: str = ""
    weight: int = 1
    line: int = 0

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]

    def option_for(self, index: int) -> str:
        if not 0 <= index < len(self.options):
            raise ValueError(
                f"Option index {index} is outside 0..{len(self.options) - 1}."
            )
        return self.options[index]


@dataclass(frozen=True)
class Response:
    """A single answered question, in the order it was served."""

    question: Question
    selected_index: int
    is_correct: bool
    order: int
    answered_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def topic(self) -> str:
        return self.question.topic

    @property
    def weight(self) -> int:
        return self.question.weight

    @property
    def selected_text(self) -> str:
        return self.question.options[self.selected_index]

    @property
    def correct_text(self) -> str:
        return self.question.correct_option
