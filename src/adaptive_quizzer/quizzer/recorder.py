"""Response log and end-of-session reporting (structured and CSV)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import Difficulty, Question, Response

__all__ = [
    "CSV_HEADER",
    "SessionRecorder",
    "SessionReport",
    "csv_filename",
]

CSV_HEADER = "Question,Topic,Weight,SelectedAnswer,CorrectAnswer,Correct"

logger = logging.getLogger(__name__)


def _clean_field(value: str) -> str:
    text = value.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    return text.replace(",", " ")


def csv_filename(mode: str, level: int, when: Optional[datetime] = None) -> str:
    """Return ``<Mode>_QuizResults_Level<level>_<timestamp>.csv``."""

    stamp = (when or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{mode.capitalize()}_QuizResults_Level{level}_{stamp}.csv"


@dataclass(frozen=True)
class SessionReport:
    """Read-only summary built from the recorded responses."""

    score: int
    total_questions: int
    responses: tuple[Response, ...]
    mastery: Dict[str, float] = field(default_factory=dict)
    mode: str = "adaptive"
    level: int = 1
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def served(self) -> int:
        return len(self.responses)

    @property
    def accuracy(self) -> float:
        if not self.responses:
            return 0.0
        return self.score / len(self.responses)

    @property
    def is_partial(self) -> bool:
        return self.served < self.total_questions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "total_questions": self.total_questions,
            "served": self.served,
            "mode": self.mode,
            "level": self.level,
            "started_at": _iso(self.started_at),
            "finished_at": _iso(self.finished_at),
            "mastery": dict(self.mastery),
            "responses": [_response_to_dict(r) for r in self.responses],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionReport":
        responses = tuple(
            _response_from_dict(item, order)
            for order, item in enumerate(data.get("responses") or [])
        )
        return cls(
            score=int(data.get("score", 0)),
            total_questions=int(data.get("total_questions", len(responses))),
            responses=responses,
            mastery={
                str(k): float(v) for k, v in (data.get("mastery") or {}).items()
            },
            mode=str(data.get("mode", "adaptive")),
            level=int(data.get("level", 1)),
            started_at=_parse_iso(data.get("started_at")),
            finished_at=_parse_iso(data.get("finished_at")),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)

    def to_csv(self) -> str:
        lines: List[str] = [CSV_HEADER]
        for response in self.responses:
            lines.append(
                ",".join(
                    [
                        _clean_field(response.question.text),
                        _clean_field(response.topic),
                        str(response.weight),
                        _clean_field(response.selected_text),
                        _clean_field(response.correct_text),
                        str(response.is_correct),
                    ]
                )
            )
        # A leading quote keeps spreadsheets from reading the score as a date.
        lines.append("")
        lines.append(f"Total Score,'{self.score}/{self.total_questions}'")
        lines.append("Knowledge States:")
        for topic, probability in self.mastery.items():
            lines.append(f"{_clean_field(topic)},{probability:.2f}")
        return "\n".join(lines) + "\n"

    def write_csv(self, path: Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_csv(), encoding="utf-8")
        logger.info(
            "Wrote session CSV",
            extra={"path": str(target), "responses": self.served},
        )
        return target

    def write_json(self, path: Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_json() + "\n", encoding="utf-8")
        return target


class SessionRecorder:
    """Append-only log of responses with a running score."""

    def __init__(self, *, mode: str = "adaptive", level: int = 1) -> None:
        self.mode = mode
        self.level = level
        self.started_at = datetime.now(timezone.utc)
        self._responses: List[Response] = []
        self._score = 0

    @property
    def score(self) -> int:
        return self._score

    @property
    def served(self) -> int:
        return len(self._responses)

    @property
    def responses(self) -> tuple[Response, ...]:
        return tuple(self._responses)

    def record(
        self, question: Question, selected_index: int, correct: bool
    ) -> Response:
        response = Response(
            question=question,
            selected_index=selected_index,
            is_correct=correct,
            order=len(self._responses),
        )
        self._responses.append(response)
        if correct:
            self._score += 1
        return response

    def report(
        self, mastery: Mapping[str, float], *, total_questions: int
    ) -> SessionReport:
        return SessionReport(
            score=self._score,
            total_questions=total_questions,
            responses=tuple(self._responses),
            mastery=dict(mastery),
            mode=self.mode,
            level=self.level,
            started_at=self.started_at,
            finished_at=datetime.now(timezone.utc),
        )


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_iso(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _response_to_dict(response: Response) -> Dict[str, Any]:
    question = response.question
    return {
        "order": response.order,
        "question": question.text,
        "options": list(question.options),
        "correct_index": question.correct_index,
        "difficulty": question.difficulty.label,
        "topic": question.topic,
        "weight": question.weight,
        "selected_index": response.selected_index,
        "correct": response.is_correct,
        "answered_at": _iso(response.answered_at),
    }


def _response_from_dict(item: Mapping[str, Any], order: int) -> Response:
    options: Sequence[str] = item.get("options") or ("", "", "", "")
    question = Question(
        text=str(item.get("question", "")),
        options=tuple(str(o) for o in options),  # type: ignore[arg-type]
        correct_index=int(item.get("correct_index", 0)),
        difficulty=Difficulty.from_label(str(item.get("difficulty", "Easy"))),
        topic=str(item.get("topic", "")),
        weight=int(item.get("weight", 1)),
    )
    answered_at = _parse_iso(item.get("answered_at"))
    return Response(
        question=question,
        selected_index=int(item.get("selected_index", 0)),
        is_correct=bool(item.get("correct")),
        order=int(item.get("order", order)),
        answered_at=answered_at or datetime.now(timezone.utc),
    )
