"""Tests for fund_wars.config — settings defaults, merge and validation."""

import json

import pytest
from pydantic import ValidationError

from fund_wars.config import ChallengeSettings, challenge_settings, get_config, update_config


def test_get_config_empty(data_dir):
    """Returns defaults when no config file exists."""
    config = get_config(data_dir)
    assert config["starting_stats"] == {}
    assert config["autosave"] is True
    assert config["challenges"] == ChallengeSettings().model_dump()


def test_defaults_not_shared_between_calls(data_dir):
    get_config(data_dir)["challenges"]["puzzle_cooldown_weeks"] = 99
    assert get_config(data_dir)["challenges"]["puzzle_cooldown_weeks"] == 2


def test_update_starting_stats_merges_and_persists(data_dir):
    update_config(data_dir, {"starting_stats": {"money": 5000}})
    update_config(data_dir, {"starting_stats": {"ethics": 70}})
    config = get_config(data_dir)
    assert config["starting_stats"] == {"money": 5000, "ethics": 70}
    stored = json.loads((data_dir / "config.json").read_text())
    assert stored["starting_stats"]["money"] == 5000


def test_update_challenges_partial(data_dir):
    update_config(data_dir, {"challenges": {"puzzle_trigger_chance": 1.0}})
    config = get_config(data_dir)
    assert config["challenges"]["puzzle_trigger_chance"] == 1.0
    assert config["challenges"]["dialogue_cooldown_weeks"] == 1
    assert challenge_settings(config).puzzle_trigger_chance == 1.0


def test_update_autosave(data_dir):
    assert update_config(data_dir, {"autosave": False})["autosave"] is False
    assert get_config(data_dir)["autosave"] is False


def test_unknown_stat_rejected_and_nothing_written(data_dir):
    with pytest.raises(ValueError, match="luck"):
        update_config(data_dir, {"starting_stats": {"luck": 3}})
    assert not (data_dir / "config.json").exists()


def test_bad_challenge_value_rejected(data_dir):
    with pytest.raises(ValidationError):
        update_config(data_dir, {"challenges": {"puzzle_cooldown_weeks": "soon"}})
