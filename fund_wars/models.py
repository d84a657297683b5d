"""Core domain models.

Every engine component operates on these types. Content tables (chapters,
scenes, puzzles, dialogues) are frozen once validated; ``GameState`` is only
ever replaced wholesale by the effect resolver, never edited in place.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

CHAPTER_COMPLETE = "chapter_complete"  # choice target that ends the current chapter


# ---------------------------------------------------------------------------
# Player state
# ---------------------------------------------------------------------------

class PlayerStats(BaseModel):
    """Numeric player stats. Unclamped; use display_value() for UI ranges."""

    reputation: int = 10
    stress: int = 20
    ethics: int = 50
    dealcraft: int = 10
    politics: int = 10
    money: int = 1500
    financial_engineering: int = 10
    week: int = 1

    def display_value(self, stat: str) -> int:
        """Return the stat clamped to [0, 100]. Money is never clamped."""
        value = getattr(self, stat)
        if stat == "money":
            return value
        return max(0, min(100, value))


STAT_NAMES: tuple[str, ...] = tuple(PlayerStats.model_fields)

RelationshipState = Literal["enemy", "rival", "acquaintance", "ally", "mentor"]


def _check_stat_keys(value: dict[str, int]) -> dict[str, int]:
    unknown = sorted(set(value) - set(STAT_NAMES))
    if unknown:
        raise ValueError(f"Unknown stat(s): {', '.join(unknown)}")
    return value


StatDeltas = Annotated[dict[str, int], AfterValidator(_check_stat_keys)]


class NPCRelationship(BaseModel):
    npc_id: str
    name: str
    relationship: int = 0
    state: RelationshipState = "acquaintance"
    memories: list[str] = Field(default_factory=list)  # append-only, oldest first


class GameState(BaseModel):
    """The single live save for one player."""

    player_name: str
    stats: PlayerStats = Field(default_factory=PlayerStats)
    relationships: list[NPCRelationship] = Field(default_factory=list)
    flags: set[str] = Field(default_factory=set)
    completed_chapters: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)  # unlock order
    current_chapter_id: str | None = None
    current_scene_id: str | None = None
    scene_history: list[str] = Field(default_factory=list)
    play_time_minutes: int = 0
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("flags")
    def _flags_as_list(self, flags: set[str]) -> list[str]:
        return sorted(flags)

    @field_validator("relationships")
    @classmethod
    def _unique_npcs(cls, value: list[NPCRelationship]) -> list[NPCRelationship]:
        seen: set[str] = set()
        for rel in value:
            if rel.npc_id in seen:
                raise ValueError(f"Duplicate relationship for NPC {rel.npc_id!r}")
            seen.add(rel.npc_id)
        return value

    def relationship_for(self, npc_id: str) -> NPCRelationship | None:
        for rel in self.relationships:
            if rel.npc_id == npc_id:
                return rel
        return None


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

class RelationshipChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    npc_id: str
    change: int
    memory: str | None = None


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    type: Literal["info", "success", "warning", "error"] = "info"


class ChoiceEffects(BaseModel):
    """Declarative state mutations attached to a choice."""

    model_config = ConfigDict(frozen=True)

    stats: StatDeltas = Field(default_factory=dict)
    money: int | None = None
    relationships: list[RelationshipChange] = Field(default_factory=list)
    set_flags: list[str] = Field(default_factory=list)
    clear_flags: list[str] = Field(default_factory=list)
    achievement: str | None = None
    notification: Notification | None = None


class DialogueEffects(BaseModel):
    """Effects of a dialogue response or node. ``relationship`` targets the dialogue's NPC."""

    model_config = ConfigDict(frozen=True)

    reputation: int | None = None
    stress: int | None = None
    relationship: int | None = None
    set_flags: list[str] | None = None
    clear_flags: list[str] | None = None
    unlock_info: str | None = None
    money: int | None = None

    def as_choice_effects(self, npc_id: str, memory: str | None = None) -> ChoiceEffects:
        stats = {
            name: value
            for name, value in (("reputation", self.reputation), ("stress", self.stress))
            if value
        }
        relationships = []
        if self.relationship:
            relationships.append(
                RelationshipChange(npc_id=npc_id, change=self.relationship, memory=memory)
            )
        return ChoiceEffects(
            stats=stats,
            money=self.money,
            relationships=relationships,
            set_flags=list(self.set_flags or []),
            clear_flags=list(self.clear_flags or []),
        )


# ---------------------------------------------------------------------------
# Story content
# ---------------------------------------------------------------------------

class RelationshipRequirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    npc_id: str
    min_value: int | None = None
    max_value: int | None = None


class ChoiceRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    required_flags: list[str] = Field(default_factory=list)
    blocked_by_flags: list[str] = Field(default_factory=list)
    min_stats: StatDeltas = Field(default_factory=dict)
    relationships: list[RelationshipRequirement] = Field(default_factory=list)
    money_cost: int | None = None


class SceneRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    required_flags: list[str] = Field(default_factory=list)
    blocked_by_flags: list[str] = Field(default_factory=list)
    min_stats: StatDeltas = Field(default_factory=dict)
    max_stats: StatDeltas = Field(default_factory=dict)
    relationships: list[RelationshipRequirement] = Field(default_factory=list)


class ChapterRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    completed_chapters: list[str] = Field(default_factory=list)
    required_flags: list[str] = Field(default_factory=list)
    min_stats: StatDeltas = Field(default_factory=dict)


class Choice(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    next_scene_id: str
    subtext: str | None = None
    narrator_comment: str | None = None
    requirements: ChoiceRequirements | None = None
    effects: ChoiceEffects | None = None
    locked_reason: str | None = None  # overrides the computed reason when locked
    hidden: bool = False  # hide instead of showing disabled when locked
    style: Literal["normal", "risky", "safe", "ethical", "unethical", "hidden"] = "normal"


class Speaker(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    mood: str | None = None
    avatar: str | None = None


SceneType = Literal["narrative", "dialogue", "decision", "outcome", "chapter_end"]


class Branching(BaseModel):
    kind: Literal["branching"] = "branching"
    options: list[str]


class AutoAdvance(BaseModel):
    kind: Literal["auto_advance"] = "auto_advance"
    next: str


class Terminal(BaseModel):
    kind: Literal["terminal"] = "terminal"


Flow = Branching | AutoAdvance | Terminal


class Scene(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    type: SceneType
    narrative: str
    chapter_id: str | None = None
    speaker: Speaker | None = None
    atmosphere: str | None = None
    choices: list[Choice] = Field(default_factory=list)
    next_scene_id: str | None = None
    requires_acknowledgment: bool = False
    requirements: SceneRequirements | None = None
    tags: list[str] = Field(default_factory=list)

    @property
    def flow(self) -> Flow:
        if self.choices:
            return Branching(options=[c.id for c in self.choices])
        if self.next_scene_id:
            return AutoAdvance(next=self.next_scene_id)
        return Terminal()

    def get_choice(self, choice_id: str) -> Choice | None:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None


class Chapter(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    number: int
    title: str
    teaser: str
    opening_scene_id: str
    ending_scene_ids: list[str] = Field(default_factory=list)
    theme: Literal["introduction", "rising_action", "crisis", "resolution", "epilogue"] = "introduction"
    estimated_minutes: int | None = None
    requirements: ChapterRequirements | None = None


# ---------------------------------------------------------------------------
# Puzzles
# ---------------------------------------------------------------------------

PuzzleDifficulty = Literal["EASY", "MEDIUM", "HARD"]


class PuzzleOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    is_correct: bool = False


class PuzzleReward(BaseModel):
    model_config = ConfigDict(frozen=True)

    reputation: int | None = None
    financial_engineering: int | None = None
    score: int | None = None
    cash: int | None = None

    def as_choice_effects(self) -> ChoiceEffects:
        stats = {
            name: value
            for name, value in (
                ("reputation", self.reputation),
                ("financial_engineering", self.financial_engineering),
            )
            if value
        }
        return ChoiceEffects(stats=stats, money=self.cash)


class PuzzlePenalty(BaseModel):
    model_config = ConfigDict(frozen=True)

    reputation: int | None = None
    stress: int | None = None
    analyst_rating: int | None = None  # recorded on the result, not a player stat

    def as_choice_effects(self) -> ChoiceEffects:
        stats = {
            name: value
            for name, value in (("reputation", self.reputation), ("stress", self.stress))
            if value
        }
        return ChoiceEffects(stats=stats)


class Puzzle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["MULTIPLE_CHOICE", "TRUE_FALSE", "TERM_MATCH", "SEQUENCE"] = "MULTIPLE_CHOICE"
    category: str
    difficulty: PuzzleDifficulty
    question: str
    context: str | None = None
    options: list[PuzzleOption]
    explanation: str
    time_limit: int  # seconds
    reward: PuzzleReward = Field(default_factory=PuzzleReward)
    penalty: PuzzlePenalty = Field(default_factory=PuzzlePenalty)

    @model_validator(mode="after")
    def _one_correct_option(self) -> Puzzle:
        correct = [o for o in self.options if o.is_correct]
        if len(correct) != 1:
            raise ValueError(
                f"Puzzle {self.id!r} must have exactly one correct option, found {len(correct)}"
            )
        if self.time_limit <= 0:
            raise ValueError(f"Puzzle {self.id!r} time_limit must be positive")
        return self

    @property
    def correct_option(self) -> PuzzleOption:
        return next(o for o in self.options if o.is_correct)

    def is_correct(self, option_id: str | None) -> bool:
        if option_id is None:
            return False
        return any(o.id == option_id and o.is_correct for o in self.options)


class PuzzleResult(BaseModel):
    puzzle_id: str
    passed: bool
    selected_option_id: str  # "timeout" or "skipped" when no option was chosen
    time_spent: int
    reward: PuzzleReward | None = None
    penalty: PuzzlePenalty | None = None


class PuzzlePhase(str, Enum):
    PRESENTED = "PRESENTED"
    ANSWERED = "ANSWERED"
    TIMED_OUT = "TIMED_OUT"
    RESOLVED = "RESOLVED"


# ---------------------------------------------------------------------------
# NPC dialogues
# ---------------------------------------------------------------------------

class ResponseRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_reputation: int | None = None
    min_financial_engineering: int | None = None
    required_flags: list[str] = Field(default_factory=list)


class DialogueResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    next_node_id: str
    tone: str | None = None
    requirements: ResponseRequirements | None = None
    effects: DialogueEffects | None = None
    hidden: bool = False


class DialogueNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    speaker: str
    text: str
    emotion: str | None = None
    responses: list[DialogueResponse] = Field(default_factory=list)
    auto_advance: bool = False
    next_node_id: str | None = None
    effects: DialogueEffects | None = None

    @property
    def flow(self) -> Flow:
        """Responses branch; a bare next_node_id advances; anything else ends the dialogue."""
        if self.responses:
            return Branching(options=[r.id for r in self.responses])
        if self.next_node_id:
            return AutoAdvance(next=self.next_node_id)
        return Terminal()

    def get_response(self, response_id: str) -> DialogueResponse | None:
        for response in self.responses:
            if response.id == response_id:
                return response
        return None


class TriggerCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str | None = None
    week_range: tuple[int, int] | None = None  # inclusive
    required_flags: list[str] = Field(default_factory=list)
    chance: float | None = None  # 0-100


DialogueOutcome = Literal["success", "failure", "neutral"]


class DialogueOutcomes(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: DialogueEffects | None = None
    failure: DialogueEffects | None = None
    neutral: DialogueEffects | None = None


class NPCDialogue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    npc_id: str
    npc_name: str
    npc_role: str = ""
    trigger_condition: TriggerCondition = Field(default_factory=TriggerCondition)
    start_node_id: str
    nodes: dict[str, DialogueNode]
    outcomes: DialogueOutcomes = Field(default_factory=DialogueOutcomes)


class DialogueResult(BaseModel):
    dialogue_id: str
    npc_id: str
    outcome: DialogueOutcome
    effects: DialogueEffects
    info_gained: list[str] = Field(default_factory=list)
    history: list[str] = Field(default_factory=list)
    abandoned: bool = False


# ---------------------------------------------------------------------------
# Engine state emitted to the presentation layer
# ---------------------------------------------------------------------------

class GamePhase(str, Enum):
    TITLE = "TITLE"
    CHARACTER_CREATE = "CHARACTER_CREATE"
    CHAPTER_SELECT = "CHAPTER_SELECT"
    PLAYING = "PLAYING"
    CHAPTER_COMPLETE = "CHAPTER_COMPLETE"
    GAME_OVER = "GAME_OVER"


class ChoiceView(BaseModel):
    """A choice annotated for rendering; locked choices stay in the list."""

    choice: Choice
    available: bool
    reason: str | None = None


class EngineSnapshot(BaseModel):
    game: GameState | None
    current_scene: Scene | None
    phase: GamePhase
    available_choices: list[ChoiceView] = Field(default_factory=list)
    can_auto_advance: bool = False
    error: str | None = None
