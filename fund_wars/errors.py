"""Engine error kinds.

Every operation that raises leaves the engine in its last-known-good state,
so callers can report the error and carry on.
"""


class EngineError(RuntimeError):
    """Base class for recoverable engine failures."""


class NotFound(EngineError):
    """A chapter, scene, puzzle or dialogue id did not resolve."""

    kind = "content"

    def __init__(self, content_id: str) -> None:
        super().__init__(f"{self.kind.capitalize()} not found: {content_id}")
        self.content_id = content_id


class ChapterNotFound(NotFound):
    kind = "chapter"


class SceneNotFound(NotFound):
    kind = "scene"


class PuzzleNotFound(NotFound):
    kind = "puzzle"


class DialogueNotFound(NotFound):
    kind = "dialogue"


class ChoiceUnavailable(EngineError):
    """The selected choice's requirements are not met (or it is not on offer)."""

    def __init__(self, choice_id: str, reason: str) -> None:
        super().__init__(f"Choice {choice_id!r} unavailable: {reason}")
        self.choice_id = choice_id
        self.reason = reason


class SceneInaccessible(EngineError):
    """A target scene's requirements reject the state that would enter it."""

    def __init__(self, scene_id: str) -> None:
        super().__init__(f"Scene {scene_id!r} is not accessible with the current game state")
        self.scene_id = scene_id


class ChapterLocked(EngineError):
    def __init__(self, chapter_id: str) -> None:
        super().__init__(f"Chapter {chapter_id!r} is locked")
        self.chapter_id = chapter_id


class InvalidSavedState(EngineError):
    """Persisted state could not be parsed or validated."""


class TransitionInProgress(EngineError):
    """A transition was requested while another one was being applied."""


class NoActiveGame(EngineError):
    """The operation needs a game (or a current scene) and there is none."""


class NoActiveChallenge(EngineError):
    """The operation needs an active puzzle or dialogue and there is none."""


class ContentError(ValueError):
    """Content tables failed validation at load time.

    ``problems`` lists every broken reference found, not just the first.
    """

    def __init__(self, problems: list[str]) -> None:
        super().__init__(
            f"{len(problems)} content problem(s):\n" + "\n".join(f"  - {p}" for p in problems)
        )
        self.problems = problems
