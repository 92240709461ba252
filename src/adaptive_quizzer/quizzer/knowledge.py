"""Per-topic mastery estimates updated with a weight-scaled Bayesian rule."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar, Dict, Iterable, Optional

from .models import Question

__all__ = [
    "DEFAULT_PRIOR",
    "LikelihoodModel",
    "KnowledgeTracker",
    "clamp01",
]

DEFAULT_PRIOR = 0.5

logger = logging.getLogger(__name__)


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class LikelihoodModel:
    """Likelihood of a correct answer given mastery and non-mastery.

    Heavier questions push the two likelihoods apart: each weight step above
    1 adds ``0.2 * 0.10`` to the mastered likelihood and removes it from the
    non-mastered one.
    """

    correct_if_mastered: float = 0.85
    correct_if_not_mastered: float = 0.20

    DEFAULT: ClassVar["LikelihoodModel"]
    ALTERNATE: ClassVar["LikelihoodModel"]

    def likelihoods(self, weight: int) -> tuple[float, float]:
        weight_factor = (weight - 1) * 0.2
        lc = clamp01(self.correct_if_mastered + weight_factor * 0.10)
        ln = clamp01(self.correct_if_not_mastered - weight_factor * 0.10)
        return lc, ln

    def posterior(self, prior: float, was_correct: bool, weight: int) -> float:
        lc, ln = self.likelihoods(weight)
        if was_correct:
            numerator = prior * lc
            denominator = numerator + (1.0 - prior) * ln
        else:
            numerator = prior * (1.0 - lc)
            denominator = numerator + (1.0 - prior) * (1.0 - ln)
        if denominator <= 0.0:
            return clamp01(prior)
        return clamp01(numerator / denominator)


LikelihoodModel.DEFAULT = LikelihoodModel()
LikelihoodModel.ALTERNATE = LikelihoodModel(0.80, 0.20)


class KnowledgeTracker:
    """Single-writer mapping of topic name to mastery probability."""

    def __init__(
        self,
        model: Optional[LikelihoodModel] = None,
        *,
        initial: float = DEFAULT_PRIOR,
    ) -> None:
        self.model = model or LikelihoodModel.DEFAULT
        self.initial = clamp01(initial)
        self._states: Dict[str, float] = {}

    @property
    def topics(self) -> list[str]:
        return list(self._states)

    def seed_topics(self, questions: Iterable[Question]) -> None:
        """Start every non-empty topic of ``questions`` at the initial prior."""

        for question in questions:
            if question.topic and question.topic not in self._states:
                self._states[question.topic] = self.initial

    def mastery(self, topic: Optional[str]) -> float:
        if not topic:
            return self.initial
        return self._states.get(topic, self.initial)

    def snapshot(self) -> Dict[str, float]:
        return dict(self._states)

    def update(self, topic: Optional[str], was_correct: bool, weight: int) -> float:
        """Apply one observed answer and return the new mastery estimate."""

        if not topic:
            return self.initial
        prior = self._states.setdefault(topic, self.initial)
        posterior = self.model.posterior(prior, was_correct, weight)
        self._states[topic] = posterior
        logger.debug(
            "Updated topic mastery",
            extra={
                "topic": topic,
                "prior": prior,
                "posterior": posterior,
                "correct": was_correct,
                "weight": weight,
            },
        )
        return posterior
