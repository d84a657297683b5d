"""Tests for fund_wars.models — validation and derived views."""

import pytest
from pydantic import ValidationError

from fund_wars.models import (
    AutoAdvance,
    Branching,
    ChoiceEffects,
    DialogueEffects,
    DialogueNode,
    GameState,
    PlayerStats,
    Puzzle,
    PuzzlePenalty,
    PuzzleReward,
    Scene,
    Terminal,
)


# ── PlayerStats ─────────────────────────────────────────────


def test_default_stats():
    stats = PlayerStats()
    assert stats.reputation == 10
    assert stats.stress == 20
    assert stats.ethics == 50
    assert stats.money == 1500
    assert stats.week == 1


def test_display_value_clamps_to_percent_range():
    stats = PlayerStats(stress=140, reputation=-8)
    assert stats.display_value("stress") == 100
    assert stats.display_value("reputation") == 0
    assert stats.stress == 140


def test_display_value_never_clamps_money():
    stats = PlayerStats(money=-400)
    assert stats.display_value("money") == -400


# ── Effects ─────────────────────────────────────────────────


def test_choice_effects_reject_unknown_stat():
    with pytest.raises(ValidationError, match="charisma"):
        ChoiceEffects(stats={"charisma": 3})


def test_dialogue_effects_convert_relationship_to_npc():
    effects = DialogueEffects(reputation=2, stress=0, relationship=-4, set_flags=["X"])
    converted = effects.as_choice_effects("chad", memory="Argued")
    assert converted.stats == {"reputation": 2}
    assert converted.relationships[0].npc_id == "chad"
    assert converted.relationships[0].change == -4
    assert converted.relationships[0].memory == "Argued"
    assert converted.set_flags == ["X"]


def test_dialogue_effects_without_relationship_touch_no_npc():
    converted = DialogueEffects(stress=3).as_choice_effects("chad")
    assert converted.relationships == []


def test_puzzle_reward_and_penalty_effects():
    reward = PuzzleReward(reputation=3, score=100, cash=250).as_choice_effects()
    assert reward.stats == {"reputation": 3}
    assert reward.money == 250

    penalty = PuzzlePenalty(stress=5, analyst_rating=-1).as_choice_effects()
    assert penalty.stats == {"stress": 5}
    assert penalty.money is None


# ── GameState ───────────────────────────────────────────────


def test_flags_serialize_sorted():
    game = GameState(player_name="Alex", flags={"ZULU", "ALPHA", "MIKE"})
    assert game.model_dump(mode="json")["flags"] == ["ALPHA", "MIKE", "ZULU"]


def test_duplicate_relationships_rejected():
    with pytest.raises(ValidationError, match="Duplicate relationship"):
        GameState(
            player_name="Alex",
            relationships=[
                {"npc_id": "chad", "name": "Chad"},
                {"npc_id": "chad", "name": "Chad"},
            ],
        )


def test_relationship_for():
    game = GameState(player_name="Alex", relationships=[{"npc_id": "sarah", "name": "Sarah"}])
    assert game.relationship_for("sarah").name == "Sarah"
    assert game.relationship_for("chad") is None


# ── Scene / node flow ───────────────────────────────────────


def _scene(**kwargs) -> Scene:
    return Scene(id="s", title="S", type="narrative", narrative="...", **kwargs)


def test_scene_flow_branching():
    scene = _scene(choices=[{"id": "a", "text": "A", "next_scene_id": "x"}])
    assert scene.flow == Branching(options=["a"])
    assert scene.get_choice("a").next_scene_id == "x"
    assert scene.get_choice("nope") is None


def test_scene_flow_auto_advance():
    assert _scene(next_scene_id="x").flow == AutoAdvance(next="x")


def test_scene_flow_terminal():
    assert isinstance(_scene().flow, Terminal)


def test_choices_take_precedence_over_next_scene():
    scene = _scene(
        choices=[{"id": "a", "text": "A", "next_scene_id": "x"}], next_scene_id="y"
    )
    assert isinstance(scene.flow, Branching)


def test_dialogue_node_flow():
    node = DialogueNode(id="n", speaker="chad", text="Hi", next_node_id="m")
    assert node.flow == AutoAdvance(next="m")
    assert isinstance(DialogueNode(id="n", speaker="chad", text="Bye").flow, Terminal)


def test_content_is_frozen():
    scene = _scene()
    with pytest.raises(ValidationError):
        scene.title = "Changed"


# ── Puzzle ──────────────────────────────────────────────────


def _puzzle(options, time_limit=30) -> dict:
    return {
        "id": "p",
        "category": "c",
        "difficulty": "EASY",
        "question": "?",
        "options": options,
        "explanation": "",
        "time_limit": time_limit,
    }


def test_puzzle_needs_exactly_one_correct_option():
    with pytest.raises(ValidationError, match="exactly one correct"):
        Puzzle.model_validate(_puzzle([{"id": "a", "text": "A"}, {"id": "b", "text": "B"}]))
    with pytest.raises(ValidationError, match="exactly one correct"):
        Puzzle.model_validate(_puzzle([
            {"id": "a", "text": "A", "is_correct": True},
            {"id": "b", "text": "B", "is_correct": True},
        ]))


def test_puzzle_time_limit_must_be_positive():
    with pytest.raises(ValidationError, match="time_limit"):
        Puzzle.model_validate(_puzzle([{"id": "a", "text": "A", "is_correct": True}], 0))


def test_puzzle_is_correct():
    puzzle = Puzzle.model_validate(_puzzle([
        {"id": "a", "text": "A"},
        {"id": "b", "text": "B", "is_correct": True},
    ]))
    assert puzzle.correct_option.id == "b"
    assert puzzle.is_correct("b")
    assert not puzzle.is_correct("a")
    assert not puzzle.is_correct(None)
