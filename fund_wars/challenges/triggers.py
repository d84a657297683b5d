"""Trigger selection for puzzles and dialogues.

All randomness comes from the ``random.Random`` passed in, so a seeded
generator replays the same selections.
"""

from __future__ import annotations

import random
from collections.abc import Collection, Iterable

from fund_wars.config import ChallengeSettings
from fund_wars.models import NPCDialogue, Puzzle, PuzzleDifficulty, TriggerCondition


def difficulty_for_week(week: int, settings: ChallengeSettings) -> PuzzleDifficulty:
    if week > settings.hard_after_week:
        return "HARD"
    if week > settings.medium_after_week:
        return "MEDIUM"
    return "EASY"


def select_puzzle(
    puzzles: Iterable[Puzzle],
    rng: random.Random,
    *,
    difficulty: PuzzleDifficulty | None = None,
    category: str | None = None,
    exclude: Collection[str] = (),
) -> Puzzle | None:
    """Pick uniformly among puzzles matching the filters. None if nothing matches."""
    candidates = [
        p for p in puzzles
        if (difficulty is None or p.difficulty == difficulty)
        and (category is None or p.category == category)
        and p.id not in exclude
    ]
    if not candidates:
        return None
    return rng.choice(candidates)


def trigger_matches(
    condition: TriggerCondition,
    week: int,
    flags: Collection[str],
    rng: random.Random,
) -> bool:
    if condition.week_range is not None:
        low, high = condition.week_range
        if week < low or week > high:
            return False
    if any(flag not in flags for flag in condition.required_flags):
        return False
    # chance is a percentage; rolled only once the deterministic checks pass
    if condition.chance is not None and rng.random() * 100 > condition.chance:
        return False
    return True


def triggered_dialogues(
    dialogues: Iterable[NPCDialogue],
    week: int,
    flags: Collection[str],
    rng: random.Random,
) -> list[NPCDialogue]:
    """Dialogues whose trigger condition holds, in library order."""
    return [d for d in dialogues if trigger_matches(d.trigger_condition, week, flags, rng)]
