"""JSON file save slots.

Saves live as flat JSON files under the data directory, one per slot:

    {data_dir}/
      config.json         ← see fund_wars.config
      saves/
        {slot}.json       ← one GameState in the persisted layout
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from fund_wars.models import GameState
from fund_wars.saves import deserialize_game, dump_game

logger = logging.getLogger(__name__)

AUTOSAVE_SLOT = "autosave"
_SLOT_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class SaveStorage:
    def __init__(self, data_dir: Path) -> None:
        self._base = data_dir
        self._saves = data_dir / "saves"
        self._saves.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _slot_file(self, slot: str) -> Path:
        if not _SLOT_RE.match(slot):
            raise ValueError(f"Invalid save slot name: {slot!r}")
        return self._saves / f"{slot}.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def save(self, game: GameState, slot: str = AUTOSAVE_SLOT) -> None:
        self._slot_file(slot).write_text(dump_game(game))
        logger.debug("saved game for %s to slot %s", game.player_name, slot)

    def read_raw(self, slot: str = AUTOSAVE_SLOT) -> str | None:
        """Return the stored text for ``slot`` without validating it."""
        path = self._slot_file(slot)
        if not path.exists():
            return None
        return path.read_text()

    def load(self, slot: str = AUTOSAVE_SLOT) -> GameState | None:
        """Load and validate a slot. Raises InvalidSavedState on a corrupt save."""
        raw = self.read_raw(slot)
        if raw is None:
            return None
        return deserialize_game(raw)

    def has_save(self, slot: str = AUTOSAVE_SLOT) -> bool:
        return self._slot_file(slot).exists()

    def list_saves(self) -> list[dict[str, Any]]:
        """Summaries of every readable slot, sorted by slot name."""
        saves = []
        for path in sorted(self._saves.glob("*.json")):
            try:
                data = self._read_json(path)
            except json.JSONDecodeError:
                logger.warning("Skipping unreadable save %s", path.name)
                continue
            if not isinstance(data, dict):
                logger.warning("Skipping malformed save %s", path.name)
                continue
            saves.append({
                "slot": path.stem,
                "player_name": data.get("player_name", ""),
                "week": data.get("stats", {}).get("week"),
                "completed_chapters": data.get("completed_chapters", []),
            })
        return saves

    def delete(self, slot: str) -> bool:
        path = self._slot_file(slot)
        if not path.exists():
            return False
        path.unlink()
        return True
