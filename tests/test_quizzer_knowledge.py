from __future__ import annotations

import random

import pytest

from adaptive_quizzer.quizzer.knowledge import (
    KnowledgeTracker,
    LikelihoodModel,
    clamp01,
)
from adaptive_quizzer.quizzer.models import Question


def _question(topic: str) -> Question:
    return Question("q", ("a", "b", "c", "d"), 0, topic=topic)


def test_weight_one_correct_then_weight_three_wrong() -> None:
    tracker = KnowledgeTracker()

    after_correct = tracker.update("Algebra", True, 1)
    after_wrong = tracker.update("Algebra", False, 3)

    assert after_correct == 0.5 * 0.85 / (0.5 * 0.85 + (1.0 - 0.5) * 0.20)
    assert after_correct == pytest.approx(0.8095238, abs=1e-6)
    weight_factor = (3 - 1) * 0.2
    lc = 0.85 + weight_factor * 0.10
    ln = 0.20 - weight_factor * 0.10
    numerator = after_correct * (1.0 - lc)
    expected = numerator / (numerator + (1.0 - after_correct) * (1.0 - ln))
    assert after_wrong == expected
    assert after_wrong == pytest.approx(0.35755, abs=1e-4)
    assert tracker.mastery("Algebra") == after_wrong


def test_likelihoods_spread_with_weight() -> None:
    model = LikelihoodModel.DEFAULT

    assert model.likelihoods(1) == pytest.approx((0.85, 0.20))
    assert model.likelihoods(2) == pytest.approx((0.87, 0.18))
    assert model.likelihoods(3) == pytest.approx((0.89, 0.16))


def test_alternate_model_constants() -> None:
    assert LikelihoodModel.ALTERNATE.correct_if_mastered == 0.80
    assert LikelihoodModel.ALTERNATE.correct_if_not_mastered == 0.20


def test_heavier_questions_move_mastery_further() -> None:
    light = KnowledgeTracker().update("t", True, 1)
    heavy = KnowledgeTracker().update("t", True, 3)

    assert heavy > light > 0.5


def test_updates_are_monotonic_in_answer_direction() -> None:
    rng = random.Random(7)
    tracker = KnowledgeTracker()
    for _ in range(200):
        correct = rng.random() < 0.5
        weight = rng.randint(1, 3)
        before = tracker.mastery("topic")
        after = tracker.update("topic", correct, weight)
        assert 0.0 <= after <= 1.0
        if correct:
            assert after >= before - 1e-12
        else:
            assert after <= before + 1e-12


def test_extreme_priors_stay_in_bounds() -> None:
    model = LikelihoodModel.DEFAULT

    assert model.posterior(0.0, True, 3) == 0.0
    assert model.posterior(1.0, False, 1) == 1.0
    degenerate = LikelihoodModel(correct_if_mastered=1.0, correct_if_not_mastered=1.0)
    assert degenerate.posterior(0.4, False, 1) == 0.4


def test_empty_topic_is_not_tracked() -> None:
    tracker = KnowledgeTracker()

    assert tracker.update("", True, 2) == 0.5
    assert tracker.topics == []
    assert tracker.mastery(None) == 0.5


def test_seed_topics_starts_at_initial_prior() -> None:
    tracker = KnowledgeTracker(initial=0.3)

    tracker.seed_topics([_question("b"), _question("a"), _question("b"), _question("")])

    assert tracker.topics == ["b", "a"]
    assert tracker.snapshot() == {"b": 0.3, "a": 0.3}
    assert tracker.mastery("unknown") == 0.3


def test_snapshot_is_a_copy() -> None:
    tracker = KnowledgeTracker()
    tracker.update("x", True, 1)

    snap = tracker.snapshot()
    snap["x"] = 0.0

    assert tracker.mastery("x") > 0.5


def test_clamp01() -> None:
    assert clamp01(-0.1) == 0.0
    assert clamp01(1.5) == 1.0
    assert clamp01(0.25) == 0.25
