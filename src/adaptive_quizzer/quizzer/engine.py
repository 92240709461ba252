"""Session API consumed by presentation layers.

A presentation layer drives one :class:`QuizSession` strictly in turn::

    session = start_session(bank_text, SessionConfig(total_questions=10))
    while True:
        prompt = next_question(session)
        if isinstance(prompt, SessionComplete):
            break
        result = submit_answer(session, chosen_index)
    report = get_report(session)

The engine never blocks. Any pause between an answer and the next question
belongs to the caller (a timer, a deferred callback or a plain sleep).
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from .knowledge import KnowledgeTracker, LikelihoodModel
from .models import (
    ConfigurationError,
    Difficulty,
    Question,
    SessionStateError,
)
from .parser import BANK_FORMATS, ERROR_POLICIES, BankParser, ParseError
from .pools import DifficultyPools
from .recorder import SessionRecorder, SessionReport
from .selector import (
    SELECTION_POLICIES,
    AdaptiveSelector,
    FixedSelector,
    fixed_counts,
)

__all__ = [
    "SESSION_MODES",
    "SessionConfig",
    "QuestionPrompt",
    "SessionComplete",
    "AnswerResult",
    "QuizSession",
    "start_session",
    "next_question",
    "submit_answer",
    "get_report",
]

SESSION_MODES = ("adaptive", "fixed")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    """Tunable session parameters; ``level`` replaces a global level setting."""

    total_questions: int = 20
    correct_to_level_up: int = 3
    wrong_to_level_down: int = 2
    mode: str = "adaptive"
    selection_policy: str = "confidence_weighted"
    level: int = 1
    easy_questions: int = 7
    medium_questions: int = 7
    hard_questions: int = 6
    correct_if_mastered: float = 0.85
    correct_if_not_mastered: float = 0.20
    initial_mastery: float = 0.5
    bank_format: str = "auto"
    on_parse_error: str = "skip"

    def validate(self) -> None:
        for name in (
            "total_questions",
            "correct_to_level_up",
            "wrong_to_level_down",
            "level",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"'{name}' must be a positive integer.")
        for name in ("easy_questions", "medium_questions", "hard_questions"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ConfigurationError(
                    f"'{name}' must be a non-negative integer."
                )
        for name in (
            "correct_if_mastered",
            "correct_if_not_mastered",
            "initial_mastery",
        ):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"'{name}' must be between 0 and 1.")
        _require_choice(self.mode, SESSION_MODES, "mode")
        _require_choice(
            self.selection_policy, SELECTION_POLICIES, "selection_policy"
        )
        _require_choice(self.bank_format, BANK_FORMATS, "bank_format")
        _require_choice(self.on_parse_error, ERROR_POLICIES, "on_parse_error")

    @property
    def likelihood_model(self) -> LikelihoodModel:
        return LikelihoodModel(
            correct_if_mastered=float(self.correct_if_mastered),
            correct_if_not_mastered=float(self.correct_if_not_mastered),
        )


def _require_choice(value: str, allowed: Sequence[str], field: str) -> None:
    if value not in allowed:
        raise ConfigurationError(
            "'{0}' must be one of {1}; got '{2}'.".format(
                field, ", ".join(allowed), value
            )
        )


@dataclass(frozen=True)
class QuestionPrompt:
    """What a presentation layer needs to show one question."""

    number: int
    total: int
    text: str
    options: tuple[str, ...]
    difficulty: Difficulty
    topic: str


@dataclass(frozen=True)
class SessionComplete:
    """Returned by :func:`next_question` once no more questions are served."""

    served: int
    total: int
    score: int


@dataclass(frozen=True)
class AnswerResult:
    correct: bool
    correct_index: int
    selected_index: int
    mastery: Optional[float] = None
    tier: Optional[Difficulty] = None


class QuizSession:
    """One learner's run through a question bank.

    The session owns its knowledge tracker, pools and recorder. Exactly one
    question is in flight between :meth:`next_question` and
    :meth:`submit_answer`.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        config: Optional[SessionConfig] = None,
        *,
        rng: Optional[random.Random] = None,
        parse_errors: Sequence[ParseError] = (),
    ) -> None:
        self.config = config or SessionConfig()
        self.config.validate()
        if not questions:
            raise ConfigurationError("Question bank is empty.")
        self.questions: List[Question] = list(questions)
        self.parse_errors: List[ParseError] = list(parse_errors)
        self.rng = rng if rng is not None else random.Random()

        self.tracker = KnowledgeTracker(
            self.config.likelihood_model,
            initial=self.config.initial_mastery,
        )
        self.tracker.seed_topics(self.questions)
        self.pools = DifficultyPools.build(self.questions, self.rng)
        self.selector: Union[AdaptiveSelector, FixedSelector]
        if self.config.mode == "fixed":
            self.selector = FixedSelector(
                self.pools,
                self.tracker,
                counts=fixed_counts(
                    self.config.easy_questions,
                    self.config.medium_questions,
                    self.config.hard_questions,
                ),
            )
        else:
            self.selector = AdaptiveSelector(
                self.pools,
                self.tracker,
                total_questions=self.config.total_questions,
                correct_to_level_up=self.config.correct_to_level_up,
                wrong_to_level_down=self.config.wrong_to_level_down,
                policy=self.config.selection_policy,
                rng=self.rng,
            )
        self.recorder = SessionRecorder(
            mode=self.config.mode, level=self.config.level
        )
        self._in_flight: Optional[Question] = None
        self._finished_logged = False

        logger.info(
            "Started quiz session",
            extra={
                "mode": self.config.mode,
                "policy": self.config.selection_policy,
                "level": self.config.level,
                "bank_size": len(self.questions),
                "total": self.total_questions,
                "topics": self.tracker.topics,
            },
        )

    @classmethod
    def from_text(
        cls,
        bank_text: Optional[str],
        config: Optional[SessionConfig] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> "QuizSession":
        if bank_text is None or not bank_text.strip():
            raise ConfigurationError("No question bank supplied.")
        cfg = config or SessionConfig()
        cfg.validate()
        parser = BankParser(fmt=cfg.bank_format, on_error=cfg.on_parse_error)
        questions = parser.parse(bank_text)
        return cls(questions, cfg, rng=rng, parse_errors=parser.errors)

    @property
    def total_questions(self) -> int:
        return self.selector.total_questions

    @property
    def served(self) -> int:
        return self.selector.served

    @property
    def score(self) -> int:
        return self.recorder.score

    @property
    def tier(self) -> Difficulty:
        return self.selector.current_tier

    @property
    def in_flight(self) -> Optional[Question]:
        return self._in_flight

    @property
    def is_complete(self) -> bool:
        return self._in_flight is None and self.selector.is_complete

    def next_question(self) -> Union[QuestionPrompt, SessionComplete]:
        if self._in_flight is not None:
            raise SessionStateError(
                "The current question must be answered before the next one."
            )
        question = self.selector.next()
        if question is None:
            self._log_finished()
            return SessionComplete(
                served=self.served,
                total=self.total_questions,
                score=self.score,
            )
        self._in_flight = question
        return QuestionPrompt(
            number=self.served,
            total=self.total_questions,
            text=question.text,
            options=question.options,
            difficulty=question.difficulty,
            topic=question.topic,
        )

    def submit_answer(self, option_index: int) -> AnswerResult:
        question = self._in_flight
        if question is None:
            raise SessionStateError("No question is awaiting an answer.")
        correct = self.selector.submit(question, option_index)
        self.recorder.record(question, option_index, correct)
        self._in_flight = None
        return AnswerResult(
            correct=correct,
            correct_index=question.correct_index,
            selected_index=option_index,
            mastery=(
                self.tracker.mastery(question.topic) if question.topic else None
            ),
            tier=self.selector.current_tier,
        )

    def report(self) -> SessionReport:
        return self.recorder.report(
            self.tracker.snapshot(), total_questions=self.total_questions
        )

    def _log_finished(self) -> None:
        if self._finished_logged:
            return
        self._finished_logged = True
        logger.info(
            "Quiz session complete",
            extra={
                "served": self.served,
                "total": self.total_questions,
                "score": self.score,
            },
        )


def start_session(
    bank_text: Optional[str],
    config: Optional[SessionConfig] = None,
    *,
    rng: Optional[random.Random] = None,
) -> QuizSession:
    """Parse ``bank_text`` and return a ready-to-run session."""

    return QuizSession.from_text(bank_text, config, rng=rng)


def next_question(
    session: QuizSession,
) -> Union[QuestionPrompt, SessionComplete]:
    return session.next_question()


def submit_answer(session: QuizSession, option_index: int) -> AnswerResult:
    return session.submit_answer(option_index)


def get_report(session: QuizSession) -> SessionReport:
    return session.report()
