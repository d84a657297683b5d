"""Availability evaluator: pure predicates over content and game state.

Checks run in a fixed order and the first failure supplies the reason shown
to the player: required flags, blocking flags, stat minimums, money cost,
relationship minimums. Money cost is a minimum balance here; it is only
deducted when the choice is actually made.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import NamedTuple

from fund_wars.models import (
    Chapter,
    Choice,
    DialogueResponse,
    GameState,
    PlayerStats,
    RelationshipRequirement,
    Scene,
)


class Availability(NamedTuple):
    available: bool
    reason: str | None = None


AVAILABLE = Availability(True)


def check_choice(choice: Choice, state: GameState) -> Availability:
    """Return whether ``choice`` can be selected and, if not, why."""
    req = choice.requirements
    if req is None:
        return AVAILABLE

    result = AVAILABLE
    if any(flag not in state.flags for flag in req.required_flags):
        result = Availability(False, "Missing required experience")
    elif any(flag in state.flags for flag in req.blocked_by_flags):
        result = Availability(False, "No longer available")
    else:
        stat = _first_below(state.stats, req.min_stats)
        if stat is not None:
            result = Availability(False, f"Requires higher {stat}")
        elif req.money_cost and state.stats.money < req.money_cost:
            result = Availability(False, f"Costs ${req.money_cost:,}")
        elif not _relationships_met(state, req.relationships):
            result = Availability(False, "Relationship not strong enough")

    if not result.available and choice.locked_reason:
        return Availability(False, choice.locked_reason)
    return result


def is_choice_available(choice: Choice, state: GameState) -> bool:
    return check_choice(choice, state).available


def is_scene_accessible(scene: Scene, state: GameState) -> bool:
    req = scene.requirements
    if req is None:
        return True
    if any(flag not in state.flags for flag in req.required_flags):
        return False
    if any(flag in state.flags for flag in req.blocked_by_flags):
        return False
    if _first_below(state.stats, req.min_stats) is not None:
        return False
    for stat, maximum in req.max_stats.items():
        if getattr(state.stats, stat) > maximum:
            return False
    return _relationships_met(state, req.relationships)


def is_chapter_unlocked(
    chapter: Chapter,
    state: GameState | None,
    *,
    entry_chapter_id: str | None = None,
) -> bool:
    """The entry chapter (chapter 1 unless told otherwise) is always unlocked.

    Without a game, every other chapter is locked.
    """
    if chapter.id == entry_chapter_id or (entry_chapter_id is None and chapter.number == 1):
        return True
    if state is None:
        return False
    req = chapter.requirements
    if req is None:
        return True
    if any(c not in state.completed_chapters for c in req.completed_chapters):
        return False
    if any(flag not in state.flags for flag in req.required_flags):
        return False
    return _first_below(state.stats, req.min_stats) is None


def is_response_available(
    response: DialogueResponse,
    player_stats: PlayerStats,
    flags: Collection[str],
) -> bool:
    req = response.requirements
    if req is None:
        return True
    if req.min_reputation is not None and player_stats.reputation < req.min_reputation:
        return False
    if (
        req.min_financial_engineering is not None
        and player_stats.financial_engineering < req.min_financial_engineering
    ):
        return False
    return all(flag in flags for flag in req.required_flags)


def _first_below(stats: PlayerStats, minimums: Mapping[str, int]) -> str | None:
    for stat, minimum in minimums.items():
        if getattr(stats, stat) < minimum:
            return stat
    return None


def _relationships_met(
    state: GameState, requirements: list[RelationshipRequirement]
) -> bool:
    for req in requirements:
        rel = state.relationship_for(req.npc_id)
        if rel is None:
            return False
        if req.min_value is not None and rel.relationship < req.min_value:
            return False
        if req.max_value is not None and rel.relationship > req.max_value:
            return False
    return True


class Evaluator:
    """The predicates above, bundled so engines can take them as one dependency."""

    check_choice = staticmethod(check_choice)
    is_scene_accessible = staticmethod(is_scene_accessible)
    is_chapter_unlocked = staticmethod(is_chapter_unlocked)
    is_response_available = staticmethod(is_response_available)
