"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class NewGameBody(BaseModel):
    player_name: str = Field(min_length=1)


class LoadGameBody(BaseModel):
    state: dict[str, Any] | None = None
    slot: str | None = None


class SaveGameBody(BaseModel):
    slot: str = "autosave"


class ChoiceBody(BaseModel):
    choice_id: str


class NavigateBody(BaseModel):
    scene_id: str


class StatChangesBody(BaseModel):
    changes: dict[str, int]


class AdvanceWeekBody(BaseModel):
    weeks: int = Field(default=1, ge=1)
    check_triggers: bool = True


class PlayTimeBody(BaseModel):
    minutes: int = Field(ge=0)


class CheckTriggersBody(BaseModel):
    week: int | None = None
    flags: list[str] | None = None


class StartPuzzleBody(BaseModel):
    puzzle_id: str | None = None


class AnswerPuzzleBody(BaseModel):
    option_id: str | None = None


class TickBody(BaseModel):
    seconds: int = Field(default=1, ge=1)


class StartDialogueBody(BaseModel):
    dialogue_id: str


class RespondBody(BaseModel):
    response_id: str
