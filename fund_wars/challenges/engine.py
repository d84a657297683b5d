"""Challenge engine: at most one puzzle and one dialogue in flight.

Triggers are checked at week boundaries. A puzzle is considered first (after
its cooldown, on a chance roll); a dialogue only if no puzzle fired. Nothing
triggers while either kind of challenge is active, and overlapping triggers
are dropped rather than queued.

Resolved challenges feed their effects back through an EffectSink, which in
practice is the StoryEngine.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Collection
from typing import Any, Protocol

from pydantic import BaseModel, Field

from fund_wars.challenges.dialogue import DialogueSession
from fund_wars.challenges.puzzles import SKIPPED, PuzzleSession, puzzle_effects
from fund_wars.challenges.triggers import (
    difficulty_for_week,
    select_puzzle,
    triggered_dialogues,
)
from fund_wars.config import ChallengeSettings
from fund_wars.content import ContentRegistry
from fund_wars.errors import NoActiveChallenge, NoActiveGame
from fund_wars.models import (
    ChoiceEffects,
    DialogueEffects,
    DialogueNode,
    DialogueResponse,
    DialogueResult,
    GameState,
    NPCDialogue,
    Puzzle,
    PuzzlePhase,
    PuzzleResult,
)

logger = logging.getLogger(__name__)


class EffectSink(Protocol):
    game: GameState | None

    def apply_effects(
        self, effects: ChoiceEffects | DialogueEffects, *, npc_id: str | None = None
    ) -> Any: ...


class PuzzleStats(BaseModel):
    correct: int = 0
    incorrect: int = 0
    skipped: int = 0
    score: int = 0


class ResponseView(BaseModel):
    response: DialogueResponse
    available: bool


class ChallengeSnapshot(BaseModel):
    active_puzzle: Puzzle | None = None
    puzzle_phase: PuzzlePhase | None = None
    time_remaining: int | None = None
    last_puzzle_result: PuzzleResult | None = None
    active_dialogue: NPCDialogue | None = None
    current_node: DialogueNode | None = None
    responses: list[ResponseView] = Field(default_factory=list)
    dialogue_result: DialogueResult | None = None
    stats: PuzzleStats = Field(default_factory=PuzzleStats)


class ChallengeEngine:
    def __init__(
        self,
        registry: ContentRegistry,
        sink: EffectSink,
        *,
        settings: ChallengeSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.registry = registry
        self.sink = sink
        self.settings = settings or ChallengeSettings()
        self._rng = rng or random.Random()
        self.reset()

    def reset(self) -> None:
        self.puzzle: PuzzleSession | None = None
        self.dialogue: DialogueSession | None = None
        self.stats = PuzzleStats()
        self.puzzle_history: list[str] = []
        self.puzzle_results: list[PuzzleResult] = []
        self.dialogue_history: list[str] = []
        self.dialogue_results: list[DialogueResult] = []
        self.npc_relationships: dict[str, int] = {}
        self.last_puzzle_week = 0
        self.last_dialogue_week = 0

    @property
    def has_active(self) -> bool:
        return self.puzzle is not None or self.dialogue is not None

    @property
    def active_puzzle(self) -> Puzzle | None:
        return self.puzzle.puzzle if self.puzzle else None

    @property
    def active_dialogue(self) -> NPCDialogue | None:
        return self.dialogue.dialogue if self.dialogue else None

    def _game(self) -> GameState:
        if self.sink.game is None:
            raise NoActiveGame("No game in progress")
        return self.sink.game

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def check_triggers(self, week: int, flags: Collection[str]) -> Puzzle | NPCDialogue | None:
        """Maybe start a puzzle or a dialogue for ``week``. Returns what started."""
        if self.has_active:
            logger.debug("trigger check for week %d suppressed, challenge active", week)
            return None

        s = self.settings
        if (
            week - self.last_puzzle_week >= s.puzzle_cooldown_weeks
            and self._rng.random() < s.puzzle_trigger_chance
        ):
            difficulty = difficulty_for_week(week, s) if s.scale_puzzle_difficulty else None
            puzzle = select_puzzle(
                self.registry.puzzles, self._rng,
                difficulty=difficulty, exclude=self.puzzle_history,
            )
            if puzzle is not None:
                self.last_puzzle_week = week
                self._present(puzzle)
                return puzzle

        if week - self.last_dialogue_week >= s.dialogue_cooldown_weeks:
            candidates = [
                d for d in triggered_dialogues(self.registry.dialogues, week, flags, self._rng)
                if d.id not in self.dialogue_history
            ]
            if candidates:
                self.last_dialogue_week = week
                self._open(candidates[0])
                return candidates[0]
        return None

    def random_puzzle_for_week(self, week: int) -> Puzzle | None:
        """An unseen puzzle at the difficulty for ``week``, without starting it."""
        return select_puzzle(
            self.registry.puzzles, self._rng,
            difficulty=difficulty_for_week(week, self.settings),
            exclude=self.puzzle_history,
        )

    # ------------------------------------------------------------------
    # Puzzles
    # ------------------------------------------------------------------

    def _present(self, puzzle: Puzzle) -> None:
        self.puzzle = PuzzleSession(puzzle)
        logger.debug("puzzle %s presented", puzzle.id)

    def start_puzzle(self, puzzle_id: str | None = None) -> Puzzle | None:
        """Present a puzzle by id, or a random unseen one. None if suppressed or none left."""
        if self.puzzle is not None:
            logger.debug("start_puzzle suppressed, %s is active", self.puzzle.puzzle.id)
            return None
        if puzzle_id is not None:
            puzzle = self.registry.get_puzzle(puzzle_id)
        else:
            puzzle = select_puzzle(self.registry.puzzles, self._rng, exclude=self.puzzle_history)
            if puzzle is None:
                return None
        self._present(puzzle)
        return puzzle

    def _require_puzzle(self) -> PuzzleSession:
        if self.puzzle is None:
            raise NoActiveChallenge("No puzzle is active")
        return self.puzzle

    def answer_puzzle(self, option_id: str | None) -> PuzzleResult:
        return self._require_puzzle().answer(option_id)

    def tick_puzzle(self, seconds: int = 1) -> PuzzleResult | None:
        return self._require_puzzle().tick(seconds)

    def complete_puzzle(self, result: PuzzleResult | None = None) -> PuzzleResult:
        """Resolve the active puzzle and apply its reward or penalty.

        Without ``result`` the session's own answer is used. A supplied result
        only decides pass or fail; the reward or penalty always comes from
        the puzzle itself.
        """
        session = self._require_puzzle()
        self._game()
        if result is None:
            if session.result is None:
                raise NoActiveChallenge(f"Puzzle {session.puzzle.id!r} has not been answered")
            result = session.result
        elif result.puzzle_id != session.puzzle.id:
            raise ValueError(
                f"Result is for puzzle {result.puzzle_id!r}, active puzzle is {session.puzzle.id!r}"
            )
        else:
            puzzle = session.puzzle
            result = result.model_copy(update={
                "reward": puzzle.reward if result.passed else None,
                "penalty": None if result.passed else puzzle.penalty,
            })

        self._apply_puzzle(result)
        session.result = result
        session.resolve()
        self.puzzle = None
        self.puzzle_history.append(result.puzzle_id)
        self.puzzle_results.append(result)
        if result.passed:
            self.stats.correct += 1
            if result.reward and result.reward.score:
                self.stats.score += result.reward.score
        else:
            self.stats.incorrect += 1
        return result

    def skip_puzzle(self) -> PuzzleResult:
        """Resolve the active puzzle as a failure. Skipped puzzles may come back."""
        session = self._require_puzzle()
        self._game()
        result = session.skip()
        self._apply_puzzle(result)
        self.puzzle = None
        self.puzzle_results.append(result)
        self.stats.skipped += 1
        return result

    def _apply_puzzle(self, result: PuzzleResult) -> None:
        effects = puzzle_effects(result)
        if effects is not None:
            self.sink.apply_effects(effects)
        logger.debug(
            "puzzle %s resolved: %s",
            result.puzzle_id,
            SKIPPED if result.selected_option_id == SKIPPED else ("passed" if result.passed else "failed"),
        )

    # ------------------------------------------------------------------
    # Dialogues
    # ------------------------------------------------------------------

    def _open(self, dialogue: NPCDialogue) -> None:
        self.dialogue = DialogueSession(dialogue)
        logger.debug("dialogue %s started with %s", dialogue.id, dialogue.npc_id)

    def start_dialogue(self, dialogue_id: str) -> NPCDialogue | None:
        """Open a dialogue by id. None if another dialogue is already open."""
        if self.dialogue is not None:
            logger.debug("start_dialogue suppressed, %s is active", self.dialogue.dialogue.id)
            return None
        dialogue = self.registry.get_dialogue(dialogue_id)
        self._open(dialogue)
        return dialogue

    def _require_dialogue(self) -> DialogueSession:
        if self.dialogue is None:
            raise NoActiveChallenge("No dialogue is active")
        return self.dialogue

    def responses(self) -> list[ResponseView]:
        if self.dialogue is None or self.sink.game is None:
            return []
        game = self.sink.game
        return [
            ResponseView(response=r, available=ok)
            for r, ok in self.dialogue.available_responses(game.stats, game.flags)
        ]

    def respond(self, response_id: str) -> DialogueResult | None:
        game = self._game()
        return self._require_dialogue().respond(response_id, game.stats, game.flags)

    def advance_dialogue(self) -> DialogueResult | None:
        return self._require_dialogue().advance()

    def complete_dialogue(self, result: DialogueResult | None = None) -> DialogueResult:
        """Close the finished dialogue and apply its effects."""
        session = self._require_dialogue()
        self._game()
        if result is None:
            if session.result is None:
                raise NoActiveChallenge(f"Dialogue {session.dialogue.id!r} has not finished")
            result = session.result
        elif result.dialogue_id != session.dialogue.id:
            raise ValueError(
                f"Result is for dialogue {result.dialogue_id!r}, "
                f"active dialogue is {session.dialogue.id!r}"
            )
        return self._close(result)

    def abandon_dialogue(self) -> DialogueResult:
        session = self._require_dialogue()
        self._game()
        return self._close(session.abandon())

    def _close(self, result: DialogueResult) -> DialogueResult:
        self.sink.apply_effects(result.effects, npc_id=result.npc_id)
        self.dialogue = None
        self.dialogue_history.append(result.dialogue_id)
        self.dialogue_results.append(result)
        self.npc_relationships[result.npc_id] = (
            self.npc_relationships.get(result.npc_id, 0) + (result.effects.relationship or 0)
        )
        logger.debug("dialogue %s closed (%s)", result.dialogue_id, result.outcome)
        return result

    def get_npc_relationship(self, npc_id: str) -> int:
        return self.npc_relationships.get(npc_id, 0)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> ChallengeSnapshot:
        snap = ChallengeSnapshot(stats=self.stats.model_copy())
        if self.puzzle is not None:
            snap.active_puzzle = self.puzzle.puzzle
            snap.puzzle_phase = self.puzzle.phase
            snap.time_remaining = self.puzzle.time_remaining
            snap.last_puzzle_result = self.puzzle.result
        if self.dialogue is not None:
            snap.active_dialogue = self.dialogue.dialogue
            snap.current_node = self.dialogue.current_node
            snap.responses = self.responses()
            snap.dialogue_result = self.dialogue.result
        return snap
