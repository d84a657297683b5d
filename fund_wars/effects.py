"""Effect resolver: pure application of effects to a GameState.

apply_effects() never mutates its input and never consults randomness: it
returns a new GameState built from a deep copy. Application order is fixed:

  1. stat deltas (additive, unclamped)
  2. money delta (additive, may go negative)
  3. set_flags, then clear_flags (both idempotent; clear wins on overlap)
  4. relationship deltas (find-or-create, state re-derived, memory appended)
  5. achievement (appended once, in unlock order)

Relationship states are a pure function of the numeric value:

  value <= -60   enemy
  value <= -20   rival
  value <   20   acquaintance
  value <   60   ally
  value >=  60   mentor
"""

from __future__ import annotations

from collections.abc import Mapping

from fund_wars.models import (
    ChoiceEffects,
    DialogueEffects,
    GameState,
    NPCRelationship,
    RelationshipState,
)

# (inclusive upper bound, state), checked in order
RELATIONSHIP_THRESHOLDS: list[tuple[int, RelationshipState]] = [
    (-60, "enemy"),
    (-20, "rival"),
]
ALLY_THRESHOLD = 20
MENTOR_THRESHOLD = 50


def relationship_state(value: int) -> RelationshipState:
    """Return the relationship category for a numeric value."""
    for bound, state in RELATIONSHIP_THRESHOLDS:
        if value <= bound:
            return state
    if value < ALLY_THRESHOLD:
        return "acquaintance"
    if value < MENTOR_THRESHOLD:
        return "ally"
    return "mentor"


def apply_effects(
    state: GameState,
    effects: ChoiceEffects | DialogueEffects,
    *,
    npc_id: str | None = None,
    npc_names: Mapping[str, str] | None = None,
) -> GameState:
    """Return a new GameState with ``effects`` applied.

    DialogueEffects need ``npc_id`` to know whose relationship changes.
    ``npc_names`` supplies display names for NPCs met for the first time;
    unknown NPCs are named after their id.
    """
    if isinstance(effects, DialogueEffects):
        if npc_id is None and effects.relationship:
            raise ValueError("Dialogue effects with a relationship change need an npc_id")
        effects = effects.as_choice_effects(npc_id or "")

    game = state.model_copy(deep=True)

    for stat, delta in effects.stats.items():
        setattr(game.stats, stat, getattr(game.stats, stat) + delta)

    if effects.money is not None:
        game.stats.money += effects.money

    game.flags.update(effects.set_flags)
    game.flags.difference_update(effects.clear_flags)

    names = npc_names or {}
    for change in effects.relationships:
        rel = game.relationship_for(change.npc_id)
        if rel is None:
            rel = NPCRelationship(
                npc_id=change.npc_id,
                name=names.get(change.npc_id, change.npc_id),
            )
            game.relationships.append(rel)
        rel.relationship += change.change
        rel.state = relationship_state(rel.relationship)
        if change.memory:
            rel.memories.append(change.memory)

    if effects.achievement and effects.achievement not in game.achievements:
        game.achievements.append(effects.achievement)

    return game


def apply_stat_changes(state: GameState, changes: Mapping[str, int]) -> GameState:
    """Merge a partial stat delta into ``state`` using the same additive rule."""
    return apply_effects(state, ChoiceEffects(stats=dict(changes)))

