"""Story engine: owns the live GameState and the scene transition protocol.

Phases run TITLE → CHARACTER_CREATE → CHAPTER_SELECT → PLAYING and end in
either CHAPTER_COMPLETE or GAME_OVER. Inside PLAYING the scene graph drives
everything: a choice resolves its target, applies effects through the
resolver, and moves the scene pointer; choice-less scenes are walked with
advance_scene().

Every transition computes the next state first and commits it in one step,
so an operation that raises leaves the engine exactly where it was. Only one
transition runs at a time; a re-entrant request (e.g. from a listener) is
logged and ignored.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from fund_wars.availability import Evaluator
from fund_wars.content import ContentRegistry
from fund_wars.effects import apply_effects
from fund_wars.errors import (
    ChapterLocked,
    ChoiceUnavailable,
    EngineError,
    InvalidSavedState,
    NoActiveGame,
    NotFound,
    SceneInaccessible,
    TransitionInProgress,
)
from fund_wars.models import (
    CHAPTER_COMPLETE,
    Chapter,
    Choice,
    ChoiceEffects,
    ChoiceView,
    DialogueEffects,
    EngineSnapshot,
    GamePhase,
    GameState,
    Notification,
    NPCRelationship,
    PlayerStats,
    Scene,
    Terminal,
)
from fund_wars.saves import deserialize_game, serialize_game

logger = logging.getLogger(__name__)


class EffectResolver(Protocol):
    def __call__(
        self,
        state: GameState,
        effects: ChoiceEffects | DialogueEffects,
        *,
        npc_id: str | None = None,
        npc_names: Mapping[str, str] | None = None,
    ) -> GameState: ...


Listener = Callable[[EngineSnapshot], None]


def _exclusive(method):
    """Run ``method`` as the only transition in flight, then notify listeners."""

    @functools.wraps(method)
    def wrapper(self: StoryEngine, *args, **kwargs):
        try:
            self._begin_transition(method.__name__)
        except TransitionInProgress as e:
            logger.warning("Ignored: %s", e)
            return None
        self.error = None
        try:
            result = method(self, *args, **kwargs)
            self._notify()
            return result
        except EngineError as e:
            self.error = str(e)
            raise
        finally:
            self._transitioning = False

    return wrapper


class StoryEngine:
    def __init__(
        self,
        registry: ContentRegistry,
        *,
        resolver: EffectResolver = apply_effects,
        evaluator: Any = Evaluator,
        starting_stats: Mapping[str, int] | None = None,
    ) -> None:
        self.registry = registry
        self._resolve = resolver
        self._evaluator = evaluator
        self.starting_stats = dict(starting_stats or {})
        self._npc_names = registry.npc_names()

        self.game: GameState | None = None
        self.current_scene: Scene | None = None
        self.phase = GamePhase.TITLE
        self.error: str | None = None

        self._transitioning = False
        self._notifications: list[Notification] = []
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Transition plumbing
    # ------------------------------------------------------------------

    @property
    def is_transitioning(self) -> bool:
        return self._transitioning

    def _begin_transition(self, name: str) -> None:
        if self._transitioning:
            raise TransitionInProgress(f"{name} requested while another transition is running")
        self._transitioning = True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every transition."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    def _require_game(self) -> GameState:
        if self.game is None:
            raise NoActiveGame("No game in progress")
        return self.game

    def _require_scene(self) -> Scene:
        if self.phase is not GamePhase.PLAYING or self.current_scene is None:
            raise NoActiveGame("No scene in play")
        return self.current_scene

    def _lookup_scene(self, scene_id: str) -> Scene:
        try:
            return self.registry.get_scene(scene_id)
        except NotFound:
            logger.warning("Transition aborted, scene %r does not exist", scene_id)
            raise

    def _entry_chapter_id(self) -> str | None:
        entry = self.registry.entry_chapter
        return entry.id if entry else None

    @staticmethod
    def _phase_for(scene: Scene) -> GamePhase:
        if isinstance(scene.flow, Terminal) and scene.type != "chapter_end":
            return GamePhase.GAME_OVER
        return GamePhase.PLAYING

    def _enter_scene(self, game: GameState, scene: Scene) -> None:
        self.game = game.model_copy(update={
            "current_scene_id": scene.id,
            "current_chapter_id": scene.chapter_id or game.current_chapter_id,
            "scene_history": [*game.scene_history, scene.id],
        })
        self.current_scene = scene
        self.phase = self._phase_for(scene)
        logger.debug("entered scene %s (%s)", scene.id, self.phase.value)

    def _finish_chapter(self, game: GameState) -> None:
        chapter_id = game.current_chapter_id
        completed = list(game.completed_chapters)
        if chapter_id and chapter_id not in completed:
            completed.append(chapter_id)
        # current_scene stays for display; the saved pointer must not resume here
        self.game = game.model_copy(update={
            "completed_chapters": completed,
            "current_chapter_id": None,
            "current_scene_id": None,
        })
        self.phase = GamePhase.CHAPTER_COMPLETE
        logger.info("chapter %s complete", chapter_id)

    # ------------------------------------------------------------------
    # Game lifecycle
    # ------------------------------------------------------------------

    @_exclusive
    def begin_character_creation(self) -> None:
        self.phase = GamePhase.CHARACTER_CREATE

    @_exclusive
    def start_new_game(self, player_name: str) -> GameState:
        name = player_name.strip()
        if not name:
            raise ValueError("Player name must not be empty")
        self.game = GameState(player_name=name, stats=PlayerStats(**self.starting_stats))
        self.current_scene = None
        self._notifications.clear()
        self.phase = GamePhase.CHAPTER_SELECT
        logger.info("new game started for %s", name)
        return self.game

    @_exclusive
    def load_game(self, data: str | bytes | Mapping[str, Any]) -> bool:
        """Restore a saved game.

        Resumes at the recorded scene when it still exists, otherwise at
        chapter select. An unusable save drops back to character creation and
        returns False.
        """
        try:
            game = deserialize_game(data)
        except InvalidSavedState as e:
            logger.warning("Saved game rejected, starting fresh: %s", e)
            self.game = None
            self.current_scene = None
            self.phase = GamePhase.CHARACTER_CREATE
            self.error = str(e)
            return False

        scene = None
        if game.current_scene_id:
            if self.registry.has_scene(game.current_scene_id):
                scene = self.registry.get_scene(game.current_scene_id)
            else:
                logger.warning(
                    "Saved scene %r no longer exists, resuming at chapter select",
                    game.current_scene_id,
                )
                game = game.model_copy(update={"current_scene_id": None})

        self.game = game
        self.current_scene = scene
        self._notifications.clear()
        self.phase = self._phase_for(scene) if scene else GamePhase.CHAPTER_SELECT
        logger.info("loaded game for %s (%s)", game.player_name, self.phase.value)
        return True

    @_exclusive
    def reset_game(self) -> None:
        self.game = None
        self.current_scene = None
        self._notifications.clear()
        self.phase = GamePhase.TITLE
        logger.info("game reset")

    def export_game(self) -> dict[str, Any]:
        return serialize_game(self._require_game())

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------

    def is_chapter_unlocked(self, chapter: Chapter) -> bool:
        return self._evaluator.is_chapter_unlocked(
            chapter, self.game, entry_chapter_id=self._entry_chapter_id()
        )

    def available_chapters(self) -> list[Chapter]:
        """Unlocked chapters not yet completed, in play order."""
        completed = set(self.game.completed_chapters) if self.game else set()
        return [
            chapter
            for chapter in self.registry.list_chapters_in_order()
            if chapter.id not in completed and self.is_chapter_unlocked(chapter)
        ]

    @property
    def current_chapter(self) -> Chapter | None:
        if self.game is None or self.game.current_chapter_id is None:
            return None
        return self.registry.get_chapter(self.game.current_chapter_id)

    @_exclusive
    def start_chapter(self, chapter_id: str) -> Scene:
        game = self._require_game()
        chapter = self.registry.get_chapter(chapter_id)
        if not self.is_chapter_unlocked(chapter):
            raise ChapterLocked(chapter_id)
        scene = self._lookup_scene(chapter.opening_scene_id)
        self._enter_scene(game.model_copy(update={"current_chapter_id": chapter.id}), scene)
        logger.info("chapter %s started", chapter.id)
        return scene

    @_exclusive
    def complete_chapter(self) -> None:
        game = self._require_game()
        if game.current_chapter_id is None:
            raise NoActiveGame("No chapter in progress")
        self._finish_chapter(game)

    @_exclusive
    def return_to_chapter_select(self) -> None:
        game = self._require_game()
        self.game = game.model_copy(update={"current_scene_id": None})
        self.current_scene = None
        self.phase = GamePhase.CHAPTER_SELECT

    # ------------------------------------------------------------------
    # Scene transitions
    # ------------------------------------------------------------------

    def available_choices(self) -> list[ChoiceView]:
        """Every choice of the current scene, locked ones annotated.

        Locked choices marked ``hidden`` are left out.
        """
        if self.game is None or self.current_scene is None:
            return []
        views = []
        for choice in self.current_scene.choices:
            available, reason = self._evaluator.check_choice(choice, self.game)
            if not available and choice.hidden:
                continue
            views.append(ChoiceView(choice=choice, available=available, reason=reason))
        return views

    @property
    def can_auto_advance(self) -> bool:
        scene = self.current_scene
        if self.phase is not GamePhase.PLAYING or scene is None or scene.choices:
            return False
        return bool(scene.next_scene_id) or scene.type == "chapter_end"

    @_exclusive
    def make_choice(self, choice: Choice | str) -> GameState:
        game = self._require_game()
        scene = self._require_scene()
        choice_id = choice if isinstance(choice, str) else choice.id
        offered = scene.get_choice(choice_id)
        if offered is None:
            raise ChoiceUnavailable(choice_id, f"Not offered in scene {scene.id!r}")
        verdict = self._evaluator.check_choice(offered, game)
        if not verdict.available:
            raise ChoiceUnavailable(choice_id, verdict.reason or "Requirements not met")

        target = None
        if offered.next_scene_id != CHAPTER_COMPLETE:
            target = self._lookup_scene(offered.next_scene_id)

        if offered.effects:
            game = self._resolve(game, offered.effects, npc_names=self._npc_names)
        cost = offered.requirements.money_cost if offered.requirements else None
        if cost:
            game = self._resolve(game, ChoiceEffects(money=-cost))

        if target is not None and not self._evaluator.is_scene_accessible(target, game):
            raise SceneInaccessible(target.id)

        if offered.effects and offered.effects.notification:
            self._notifications.append(offered.effects.notification)
        logger.debug("choice %s made in scene %s", choice_id, scene.id)

        if target is None:
            self.game = game
            self._finish_chapter(game)
        else:
            self._enter_scene(game, target)
        return self.game

    @_exclusive
    def advance_scene(self) -> Scene | None:
        """Follow auto-advance links from the current scene.

        The chain stops at a scene with choices, one that needs
        acknowledgment, a terminal scene, or a chapter end. A choice-less
        chapter end completes the chapter. Returns the scene landed on, or
        None if the current scene does not auto-advance.
        """
        game = self._require_game()
        scene = self._require_scene()
        if scene.choices:
            return None
        if scene.type == "chapter_end":
            self._finish_chapter(game)
            return scene
        if not scene.next_scene_id:
            return None

        path = self._chain_from(scene, game)
        for hop in path[:-1]:
            game = game.model_copy(update={"scene_history": [*game.scene_history, hop.id]})
        landed = path[-1]
        self._enter_scene(game, landed)
        if landed.type == "chapter_end" and not landed.choices:
            self._finish_chapter(self.game)
        return landed

    def _chain_from(self, start: Scene, game: GameState) -> list[Scene]:
        path: list[Scene] = []
        seen = {start.id}
        current = start
        while True:
            nxt = self._lookup_scene(current.next_scene_id)
            if not self._evaluator.is_scene_accessible(nxt, game):
                raise SceneInaccessible(nxt.id)
            path.append(nxt)
            if nxt.id in seen or not self._chains_through(nxt):
                return path
            seen.add(nxt.id)
            current = nxt

    @staticmethod
    def _chains_through(scene: Scene) -> bool:
        return (
            not scene.choices
            and bool(scene.next_scene_id)
            and not scene.requires_acknowledgment
            and scene.type != "chapter_end"
        )

    @_exclusive
    def navigate_to_scene(self, scene_id: str) -> Scene:
        game = self._require_game()
        scene = self._lookup_scene(scene_id)
        if not self._evaluator.is_scene_accessible(scene, game):
            raise SceneInaccessible(scene_id)
        self._enter_scene(game, scene)
        return scene

    # ------------------------------------------------------------------
    # Direct state changes (challenge engine entry points)
    # ------------------------------------------------------------------

    def apply_effects(
        self,
        effects: ChoiceEffects | DialogueEffects,
        *,
        npc_id: str | None = None,
    ) -> GameState:
        """Apply resolved challenge effects to the live game.

        Not a scene transition, so it is never dropped while one is running;
        the resolved state is committed in one step either way.
        """
        game = self._resolve(
            self._require_game(), effects, npc_id=npc_id, npc_names=self._npc_names
        )
        if isinstance(effects, ChoiceEffects) and effects.notification:
            self._notifications.append(effects.notification)
        self.game = game
        if not self._transitioning:
            self._notify()
        return game

    @_exclusive
    def apply_stat_changes(self, changes: Mapping[str, int]) -> GameState:
        """Merge a partial stat delta without moving the scene pointer."""
        self.game = self._resolve(self._require_game(), ChoiceEffects(stats=dict(changes)))
        return self.game

    def advance_week(self, weeks: int = 1) -> GameState:
        return self.apply_stat_changes({"week": weeks})

    @_exclusive
    def add_play_time(self, minutes: int) -> GameState:
        game = self._require_game()
        self.game = game.model_copy(
            update={"play_time_minutes": game.play_time_minutes + minutes}
        )
        return self.game

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_relationship(self, npc_id: str) -> NPCRelationship | None:
        return self.game.relationship_for(npc_id) if self.game else None

    def has_flag(self, flag: str) -> bool:
        return self.game is not None and flag in self.game.flags

    def get_stat(self, stat: str) -> int:
        return getattr(self._require_game().stats, stat)

    def drain_notifications(self) -> list[Notification]:
        pending, self._notifications = self._notifications, []
        return pending

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            game=self.game,
            current_scene=self.current_scene,
            phase=self.phase,
            available_choices=self.available_choices(),
            can_auto_advance=self.can_auto_advance,
            error=self.error,
        )
