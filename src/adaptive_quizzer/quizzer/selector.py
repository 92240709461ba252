"""Question selection policies and the difficulty tier state machine.

``AdaptiveSelector`` serves questions from the pool of the current tier and
moves between tiers two ways:

- a mastery override applied in :meth:`AdaptiveSelector.next` right after a
  question is drawn, based on the drawn question's topic mastery;
- a streak transition applied in :meth:`AdaptiveSelector.submit` from the
  per-tier correct counters and the wrong counter at the current tier.

Calls alternate strictly (``next`` then ``submit``), so the tier seen by the
following ``next`` is always the result of the streak transition.

``FixedSelector`` reproduces the non-adaptive mode: a fixed number of
questions per tier served Easy first, then Medium, then Hard.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .knowledge import KnowledgeTracker
from .models import Difficulty, Question
from .pools import DifficultyPools

__all__ = [
    "SELECTION_POLICIES",
    "MIN_TOPIC_WEIGHT",
    "TierState",
    "AdaptiveSelector",
    "FixedSelector",
    "fixed_counts",
]

SELECTION_POLICIES = ("confidence_weighted", "plain")
MIN_TOPIC_WEIGHT = 0.01

MASTERY_HARD = 0.8
MASTERY_MEDIUM = 0.6
MASTERY_EASY = 0.4

logger = logging.getLogger(__name__)


@dataclass
class TierState:
    """Current tier plus the streak counters that drive transitions."""

    tier: Difficulty = Difficulty.EASY
    correct_by_tier: Dict[Difficulty, int] = field(
        default_factory=lambda: {tier: 0 for tier in Difficulty}
    )
    wrong_in_tier: int = 0

    def move_to(self, tier: Difficulty) -> bool:
        if tier is self.tier:
            return False
        self.tier = tier
        self.reset_counters()
        return True

    def reset_counters(self) -> None:
        for level in Difficulty:
            self.correct_by_tier[level] = 0
        self.wrong_in_tier = 0


class _BaseSelector:
    def __init__(
        self, tracker: KnowledgeTracker, total_questions: int
    ) -> None:
        self.tracker = tracker
        self.total_questions = total_questions
        self.served = 0
        self._exhausted = False

    @property
    def is_complete(self) -> bool:
        return self._exhausted or self.served >= self.total_questions

    def _check_answer(self, question: Question, chosen_index: int) -> bool:
        question.option_for(chosen_index)
        correct = chosen_index == question.correct_index
        self.tracker.update(question.topic, correct, question.weight)
        return correct


class AdaptiveSelector(_BaseSelector):
    """Choose questions by topic confidence and a difficulty state machine."""

    def __init__(
        self,
        pools: DifficultyPools,
        tracker: KnowledgeTracker,
        *,
        total_questions: int = 20,
        correct_to_level_up: int = 3,
        wrong_to_level_down: int = 2,
        policy: str = "confidence_weighted",
        rng: Optional[random.Random] = None,
    ) -> None:
        if policy not in SELECTION_POLICIES:
            raise ValueError(
                f"Unknown selection policy '{policy}'; expected one of "
                f"{SELECTION_POLICIES}."
            )
        super().__init__(tracker, total_questions)
        self.pools = pools
        self.correct_to_level_up = correct_to_level_up
        self.wrong_to_level_down = wrong_to_level_down
        self.policy = policy
        self.rng = rng if rng is not None else random.Random()
        self.state = TierState()

    @property
    def current_tier(self) -> Difficulty:
        return self.state.tier

    def select_topic(self) -> Optional[str]:
        """Roulette draw favouring topics with low mastery."""

        topics = self.tracker.topics
        if not topics:
            return None
        weights = [
            max(MIN_TOPIC_WEIGHT, 1.0 - self.tracker.mastery(topic))
            for topic in topics
        ]
        r = self.rng.random() * sum(weights)
        cumulative = 0.0
        for topic, weight in zip(topics, weights):
            cumulative += weight
            if r <= cumulative:
                return topic
        return topics[0]

    def next(self) -> Optional[Question]:
        """Draw the next question, or ``None`` once the session is over."""

        if self.is_complete:
            return None
        pool = self.pools.remaining(self.state.tier)
        if not pool:
            pool = self.pools.remaining()
        if not pool:
            self._exhausted = True
            logger.info(
                "Question bank exhausted",
                extra={"served": self.served, "total": self.total_questions},
            )
            return None

        candidates = pool
        if self.policy == "confidence_weighted":
            topic = self.select_topic()
            candidates = [q for q in pool if q.topic == topic] or pool

        question = candidates[self.rng.randrange(len(candidates))]
        self.pools.remove(question)
        self.served += 1

        if self.policy == "confidence_weighted":
            self._apply_mastery_override(question)
        return question

    def submit(self, question: Question, chosen_index: int) -> bool:
        """Score an answer, update mastery and run the streak transition."""

        correct = self._check_answer(question, chosen_index)
        self._apply_streak(correct)
        return correct

    def _apply_mastery_override(self, question: Question) -> None:
        mastery = self.tracker.mastery(question.topic)
        tier = self.state.tier
        target = tier
        if mastery >= MASTERY_HARD:
            target = Difficulty.HARD
        elif mastery >= MASTERY_MEDIUM and tier is Difficulty.EASY:
            target = Difficulty.MEDIUM
        elif mastery <= MASTERY_EASY and tier is not Difficulty.EASY:
            target = Difficulty.EASY
        self._transition(target, reason="mastery", mastery=mastery)

    def _apply_streak(self, correct: bool) -> None:
        state = self.state
        if correct:
            state.correct_by_tier[state.tier] += 1
        else:
            state.wrong_in_tier += 1

        if (
            state.tier is not Difficulty.HARD
            and state.correct_by_tier[state.tier] >= self.correct_to_level_up
        ):
            self._transition(state.tier.harder(), reason="streak")
        elif (
            state.tier is not Difficulty.EASY
            and state.wrong_in_tier >= self.wrong_to_level_down
        ):
            self._transition(state.tier.easier(), reason="streak")

    def _transition(
        self,
        target: Difficulty,
        *,
        reason: str,
        mastery: Optional[float] = None,
    ) -> None:
        previous = self.state.tier
        if not self.state.move_to(target):
            return
        logger.info(
            "Difficulty tier changed",
            extra={
                "from": previous.label,
                "to": target.label,
                "reason": reason,
                "mastery": mastery,
                "served": self.served,
            },
        )


class FixedSelector(_BaseSelector):
    """Serve a fixed Easy/Medium/Hard composition in order."""

    def __init__(
        self,
        pools: DifficultyPools,
        tracker: KnowledgeTracker,
        *,
        counts: Dict[Difficulty, int],
    ) -> None:
        self.queue: List[Question] = []
        for tier in Difficulty:
            self.queue.extend(pools.take(tier, counts.get(tier, 0)))
        super().__init__(tracker, len(self.queue))

    @property
    def current_tier(self) -> Difficulty:
        if self.served < len(self.queue):
            return self.queue[self.served].difficulty
        return self.queue[-1].difficulty if self.queue else Difficulty.EASY

    def next(self) -> Optional[Question]:
        if self.is_complete:
            return None
        question = self.queue[self.served]
        self.served += 1
        return question

    def submit(self, question: Question, chosen_index: int) -> bool:
        return self._check_answer(question, chosen_index)


def fixed_counts(easy: int, medium: int, hard: int) -> Dict[Difficulty, int]:
    return {
        Difficulty.EASY: easy,
        Difficulty.MEDIUM: medium,
        Difficulty.HARD: hard,
    }

