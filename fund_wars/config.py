"""Game configuration (starting stats, challenge tuning, autosave)."""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from fund_wars.models import PlayerStats

_CONFIG_DEFAULTS: dict[str, Any] = {
    "starting_stats": {},
    "challenges": {
        "puzzle_cooldown_weeks": 2,
        "dialogue_cooldown_weeks": 1,
        "puzzle_trigger_chance": 0.3,
        "scale_puzzle_difficulty": False,
        "medium_after_week": 8,
        "hard_after_week": 16,
    },
    "autosave": True,
}


class ChallengeSettings(BaseModel):
    puzzle_cooldown_weeks: int = 2
    dialogue_cooldown_weeks: int = 1
    puzzle_trigger_chance: float = 0.3  # 0-1, rolled against random()
    scale_puzzle_difficulty: bool = False
    medium_after_week: int = 8
    hard_after_week: int = 16


def _config_path(data_dir: Path) -> Path:
    return data_dir / "config.json"


def get_config(data_dir: Path) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config: dict[str, Any] = json.loads(json.dumps(_CONFIG_DEFAULTS))
    path = _config_path(data_dir)
    if path.is_file():
        stored = json.loads(path.read_text())
        if isinstance(stored.get("starting_stats"), dict):
            config["starting_stats"].update(stored["starting_stats"])
        if isinstance(stored.get("challenges"), dict):
            config["challenges"].update(stored["challenges"])
        if "autosave" in stored:
            config["autosave"] = bool(stored["autosave"])
    return config


def update_config(data_dir: Path, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    Values are validated before anything is written; a bad stat name or
    challenge setting raises pydantic's ValidationError.
    """
    config = get_config(data_dir)
    if "starting_stats" in fields:
        config["starting_stats"].update(fields["starting_stats"])
        unknown = set(config["starting_stats"]) - set(PlayerStats.model_fields)
        if unknown:
            raise ValueError(f"Unknown stat(s): {', '.join(sorted(unknown))}")
        PlayerStats.model_validate(config["starting_stats"])
    if "challenges" in fields:
        config["challenges"].update(fields["challenges"])
        config["challenges"] = ChallengeSettings.model_validate(
            config["challenges"]
        ).model_dump()
    if "autosave" in fields:
        config["autosave"] = bool(fields["autosave"])
    data_dir.mkdir(parents=True, exist_ok=True)
    _config_path(data_dir).write_text(json.dumps(config, indent=2))
    return config


def challenge_settings(config: dict[str, Any]) -> ChallengeSettings:
    return ChallengeSettings.model_validate(config["challenges"])
