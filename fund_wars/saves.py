"""Persisted GameState layout.

A save is the JSON form of GameState with ``flags`` written as a sorted list;
everything else is encoded field for field. Loading rebuilds the flag set, so
only membership round-trips, not order.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from fund_wars.errors import InvalidSavedState
from fund_wars.models import GameState


def serialize_game(game: GameState) -> dict[str, Any]:
    return game.model_dump(mode="json")


def dump_game(game: GameState) -> str:
    return game.model_dump_json(indent=2)


def deserialize_game(data: str | bytes | Mapping[str, Any]) -> GameState:
    """Parse a save. Raises InvalidSavedState for anything unusable."""
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidSavedState(f"Saved game is not valid JSON: {e}") from e
    if not isinstance(data, Mapping):
        raise InvalidSavedState(
            f"Saved game must be a JSON object, got {type(data).__name__}"
        )
    try:
        return GameState.model_validate(dict(data))
    except ValidationError as e:
        raise InvalidSavedState(f"Saved game failed validation: {e}") from e
