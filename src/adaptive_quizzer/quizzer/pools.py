"""Per-tier question pools drawn without replacement."""

from __future__ import annotations

import random
from typing import Dict, Iterable, List, Optional

from .models import Difficulty, Question

__all__ = ["DifficultyPools"]


class DifficultyPools:
    """Remaining, not-yet-served questions bucketed by difficulty tier.

    Each pool is shuffled once at build time with the caller's random source
    (``random.Random.shuffle`` is a Fisher-Yates shuffle). Questions are
    removed by identity so two records with identical text stay distinct.
    """

    def __init__(self, pools: Dict[Difficulty, List[Question]]) -> None:
        self._pools: Dict[Difficulty, List[Question]] = {
            tier: list(pools.get(tier, [])) for tier in Difficulty
        }

    @classmethod
    def build(
        cls,
        questions: Iterable[Question],
        rng: Optional[random.Random] = None,
    ) -> "DifficultyPools":
        rnd = rng if rng is not None else random.Random()
        buckets: Dict[Difficulty, List[Question]] = {
            tier: [] for tier in Difficulty
        }
        for question in questions:
            buckets[question.difficulty].append(question)
        for tier in Difficulty:
            rnd.shuffle(buckets[tier])
        return cls(buckets)

    def __len__(self) -> int:
        return sum(len(pool) for pool in self._pools.values())

    def is_empty(self, tier: Optional[Difficulty] = None) -> bool:
        if tier is None:
            return len(self) == 0
        return not self._pools[tier]

    def count(self, tier: Difficulty) -> int:
        return len(self._pools[tier])

    def remaining(self, tier: Optional[Difficulty] = None) -> List[Question]:
        """Return a copy of the remaining questions, all tiers when ``None``."""

        if tier is not None:
            return list(self._pools[tier])
        out: List[Question] = []
        for level in Difficulty:
            out.extend(self._pools[level])
        return out

    def draw(self, tier: Difficulty) -> Optional[Question]:
        """Remove and return the next question of ``tier``, if any."""

        pool = self._pools[tier]
        if not pool:
            return None
        return pool.pop()

    def take(self, tier: Difficulty, count: int) -> List[Question]:
        """Draw up to ``count`` questions of ``tier`` in shuffled order."""

        taken: List[Question] = []
        while len(taken) < count:
            question = self.draw(tier)
            if question is None:
                break
            taken.append(question)
        return taken

    def remove(self, question: Question) -> bool:
        pool = self._pools[question.difficulty]
        for index, candidate in enumerate(pool):
            if candidate is question:
                del pool[index]
                return True
        return False
