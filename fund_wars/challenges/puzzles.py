"""Puzzle sub-machine: PRESENTED → ANSWERED | TIMED_OUT → RESOLVED.

The countdown is driven by tick() calls from whoever owns the clock; the
session never sleeps. Reaching zero is the same as answering with no option.
"""

from __future__ import annotations

import logging

from fund_wars.errors import NoActiveChallenge
from fund_wars.models import ChoiceEffects, Puzzle, PuzzlePhase, PuzzleResult

logger = logging.getLogger(__name__)

TIMEOUT = "timeout"
SKIPPED = "skipped"


class PuzzleSession:
    def __init__(self, puzzle: Puzzle) -> None:
        self.puzzle = puzzle
        self.phase = PuzzlePhase.PRESENTED
        self.time_remaining = puzzle.time_limit
        self.result: PuzzleResult | None = None

    @property
    def time_spent(self) -> int:
        return self.puzzle.time_limit - self.time_remaining

    def tick(self, seconds: int = 1) -> PuzzleResult | None:
        """Count down; returns the timeout result when the clock hits zero."""
        if self.phase is not PuzzlePhase.PRESENTED:
            return None
        self.time_remaining = max(0, self.time_remaining - seconds)
        if self.time_remaining == 0:
            return self._submit(None)
        return None

    def answer(self, option_id: str | None) -> PuzzleResult:
        """Submit an option id, or None for no answer (scored as a timeout)."""
        if self.phase is not PuzzlePhase.PRESENTED:
            raise NoActiveChallenge(f"Puzzle {self.puzzle.id!r} has already been answered")
        return self._submit(option_id)

    def timeout(self) -> PuzzleResult:
        if self.phase is not PuzzlePhase.PRESENTED:
            raise NoActiveChallenge(f"Puzzle {self.puzzle.id!r} has already been answered")
        self.time_remaining = 0
        return self._submit(None)

    def skip(self) -> PuzzleResult:
        """Resolve immediately as a failure. Skips record no time."""
        if self.phase is not PuzzlePhase.PRESENTED:
            raise NoActiveChallenge(f"Puzzle {self.puzzle.id!r} has already been answered")
        self.result = PuzzleResult(
            puzzle_id=self.puzzle.id,
            passed=False,
            selected_option_id=SKIPPED,
            time_spent=0,
            penalty=self.puzzle.penalty,
        )
        self.phase = PuzzlePhase.RESOLVED
        return self.result

    def resolve(self) -> PuzzleResult:
        if self.result is None:
            raise NoActiveChallenge(f"Puzzle {self.puzzle.id!r} has not been answered")
        self.phase = PuzzlePhase.RESOLVED
        return self.result

    def _submit(self, option_id: str | None) -> PuzzleResult:
        passed = self.puzzle.is_correct(option_id)
        self.result = PuzzleResult(
            puzzle_id=self.puzzle.id,
            passed=passed,
            selected_option_id=option_id if option_id is not None else TIMEOUT,
            time_spent=self.time_spent,
            reward=self.puzzle.reward if passed else None,
            penalty=None if passed else self.puzzle.penalty,
        )
        self.phase = PuzzlePhase.ANSWERED if option_id is not None else PuzzlePhase.TIMED_OUT
        logger.debug(
            "puzzle %s %s (%s)", self.puzzle.id, "passed" if passed else "failed",
            self.result.selected_option_id,
        )
        return self.result


def puzzle_effects(result: PuzzleResult) -> ChoiceEffects | None:
    """Reward effects on a pass, penalty effects on a fail."""
    if result.passed:
        return result.reward.as_choice_effects() if result.reward else None
    return result.penalty.as_choice_effects() if result.penalty else None
