"""The single live game session served by the API.

One StoryEngine and one ChallengeEngine per process, wired together so
challenge results flow back into the story state. Mutating endpoints call
autosave() afterwards when the ``autosave`` config flag is on.
"""

import logging
import random
from pathlib import Path

from fastapi import Request

from fund_wars.challenges import ChallengeEngine
from fund_wars.config import challenge_settings, get_config
from fund_wars.content import ContentRegistry
from fund_wars.engine import StoryEngine
from fund_wars.storage import SaveStorage

logger = logging.getLogger(__name__)


class GameSession:
    def __init__(
        self,
        registry: ContentRegistry,
        data_dir: Path,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.registry = registry
        self.data_dir = data_dir
        self.saves = SaveStorage(data_dir)
        self.config = get_config(data_dir)
        self.story = StoryEngine(registry, starting_stats=self.config["starting_stats"])
        self.challenges = ChallengeEngine(
            registry,
            self.story,
            settings=challenge_settings(self.config),
            rng=rng,
        )

    def apply_config(self, config: dict) -> None:
        """Use new settings. Starting stats apply from the next new game."""
        self.config = config
        self.story.starting_stats = dict(config["starting_stats"])
        self.challenges.settings = challenge_settings(config)

    def autosave(self) -> None:
        if self.config["autosave"] and self.story.game is not None:
            self.saves.save(self.story.game)

    def state(self) -> dict:
        """Everything the presentation layer renders, in one payload."""
        return {
            **self.story.snapshot().model_dump(mode="json"),
            "challenges": self.challenges.snapshot().model_dump(mode="json"),
            "notifications": [n.model_dump() for n in self.story.drain_notifications()],
        }


def get_session(request: Request) -> GameSession:
    return request.app.state.session
