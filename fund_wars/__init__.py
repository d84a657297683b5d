"""Fund Wars story engine.

Layers, leaf first:
  content.py       ContentRegistry: read-only chapters/scenes/puzzles/dialogues,
                   checked for broken references when built
  effects.py       apply_effects(): pure GameState → GameState
  availability.py  predicates for choices, scenes, chapters, dialogue responses
  engine.py        StoryEngine: owns the GameState and the scene transitions
  challenges/      ChallengeEngine: puzzle and NPC dialogue sub-machines that
                   feed their effects back into the StoryEngine
  saves.py         persisted GameState layout
  storage.py       JSON save slots on disk
  config.py        tunables merged over {data_dir}/config.json
"""

# Re-export the public surface so `from fund_wars import StoryEngine` works.

from .challenges import ChallengeEngine  # noqa: F401
from .content import ContentRegistry  # noqa: F401
from .effects import apply_effects, relationship_state  # noqa: F401
from .engine import StoryEngine  # noqa: F401
from .errors import (  # noqa: F401
    ChapterLocked,
    ChoiceUnavailable,
    ContentError,
    EngineError,
    InvalidSavedState,
    NotFound,
    SceneInaccessible,
)
from .models import GamePhase, GameState  # noqa: F401
from .saves import deserialize_game, serialize_game  # noqa: F401
