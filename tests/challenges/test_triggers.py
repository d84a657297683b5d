"""Tests for fund_wars.challenges.triggers."""

import random

import pytest

from fund_wars.challenges.triggers import (
    difficulty_for_week,
    select_puzzle,
    trigger_matches,
    triggered_dialogues,
)
from fund_wars.config import ChallengeSettings
from fund_wars.models import TriggerCondition


class FixedRoll(random.Random):
    """A Random whose random() always returns ``value`` and counts calls."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


# ── difficulty_for_week ─────────────────────────────────────


@pytest.mark.parametrize("week,difficulty", [
    (1, "EASY"),
    (8, "EASY"),
    (9, "MEDIUM"),
    (16, "MEDIUM"),
    (17, "HARD"),
    (52, "HARD"),
])
def test_difficulty_for_week(week, difficulty):
    assert difficulty_for_week(week, ChallengeSettings()) == difficulty


def test_difficulty_thresholds_configurable():
    settings = ChallengeSettings(medium_after_week=2, hard_after_week=4)
    assert difficulty_for_week(3, settings) == "MEDIUM"
    assert difficulty_for_week(5, settings) == "HARD"


# ── select_puzzle ───────────────────────────────────────────


class TestSelectPuzzle:
    def test_filters(self, registry, rng):
        puzzles = registry.puzzles
        assert select_puzzle(puzzles, rng, difficulty="HARD").id == "p_hard"
        assert select_puzzle(puzzles, rng, category="basics").id == "p_easy"
        picked = select_puzzle(puzzles, rng, category="valuation", exclude=["p_medium"])
        assert picked.id == "p_hard"

    def test_nothing_left(self, registry, rng):
        everything = [p.id for p in registry.puzzles]
        assert select_puzzle(registry.puzzles, rng, exclude=everything) is None
        assert select_puzzle(registry.puzzles, rng, category="tax") is None

    def test_seeded_generator_replays(self, registry):
        first = [select_puzzle(registry.puzzles, r).id for r in [random.Random(5)] * 5]
        second = [select_puzzle(registry.puzzles, r).id for r in [random.Random(5)] * 5]
        assert first == second


# ── trigger_matches ─────────────────────────────────────────


class TestTriggerMatches:
    def test_week_range_inclusive(self):
        condition = TriggerCondition(week_range=(2, 6))
        roll = FixedRoll(0.0)
        assert not trigger_matches(condition, 1, set(), roll)
        assert trigger_matches(condition, 2, set(), roll)
        assert trigger_matches(condition, 6, set(), roll)
        assert not trigger_matches(condition, 7, set(), roll)

    def test_required_flags(self):
        condition = TriggerCondition(required_flags=["MET_HUNTER"])
        assert not trigger_matches(condition, 1, set(), FixedRoll(0.0))
        assert trigger_matches(condition, 1, {"MET_HUNTER"}, FixedRoll(0.0))

    def test_chance_is_a_percentage(self):
        condition = TriggerCondition(chance=40)
        assert trigger_matches(condition, 1, set(), FixedRoll(0.39))
        assert not trigger_matches(condition, 1, set(), FixedRoll(0.41))

    def test_chance_rolled_only_after_other_checks(self):
        condition = TriggerCondition(week_range=(5, 5), chance=100)
        roll = FixedRoll(0.0)
        trigger_matches(condition, 1, set(), roll)
        assert roll.calls == 0
        trigger_matches(condition, 5, set(), roll)
        assert roll.calls == 1

    def test_no_condition_always_matches(self):
        assert trigger_matches(TriggerCondition(), 99, set(), FixedRoll(0.99))


def test_triggered_dialogues_in_library_order(registry):
    matched = triggered_dialogues(registry.dialogues, 3, {"RIVAL"}, FixedRoll(0.0))
    assert [d.id for d in matched] == ["d_mentor", "d_rival"]
    assert triggered_dialogues(registry.dialogues, 10, set(), FixedRoll(0.0)) == []
