"""Game lifecycle, scene transition, and save slot endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from backend.session import GameSession, get_session

from .models import (
    AdvanceWeekBody,
    ChoiceBody,
    LoadGameBody,
    NavigateBody,
    NewGameBody,
    PlayTimeBody,
    SaveGameBody,
    StatChangesBody,
)

router = APIRouter()


@router.get("/game")
async def get_game(session: GameSession = Depends(get_session)):
    """Current engine state: game, scene, phase, choices, challenges, notifications."""
    return session.state()


@router.post("/game/character", status_code=200)
async def begin_character_creation(session: GameSession = Depends(get_session)):
    """Move from the title screen to character creation."""
    session.story.begin_character_creation()
    return session.state()


@router.post("/game/new", status_code=201)
async def new_game(body: NewGameBody, session: GameSession = Depends(get_session)):
    """Start a fresh game with default stats."""
    try:
        session.story.start_new_game(body.player_name)
    except ValueError as e:
        raise HTTPException(400, str(e))
    session.challenges.reset()
    session.autosave()
    return session.state()


@router.post("/game/load")
async def load_game(body: LoadGameBody, session: GameSession = Depends(get_session)):
    """Load a game from an inline state or a save slot.

    A corrupt save drops back to character creation and reports loaded=false.
    """
    if body.state is not None:
        raw = body.state
    else:
        try:
            raw = session.saves.read_raw(body.slot or "autosave")
        except ValueError as e:
            raise HTTPException(422, str(e))
        if raw is None:
            raise HTTPException(404, "Save not found")
    loaded = session.story.load_game(raw)
    session.challenges.reset()
    return {"loaded": bool(loaded), **session.state()}


@router.post("/game/reset")
async def reset_game(session: GameSession = Depends(get_session)):
    """Discard the live game and return to the title screen."""
    session.story.reset_game()
    session.challenges.reset()
    return session.state()


@router.post("/game/choice")
async def make_choice(body: ChoiceBody, session: GameSession = Depends(get_session)):
    """Select a choice in the current scene."""
    session.story.make_choice(body.choice_id)
    session.autosave()
    return session.state()


@router.post("/game/advance")
async def advance_scene(session: GameSession = Depends(get_session)):
    """Follow auto-advance links from the current scene."""
    session.story.advance_scene()
    session.autosave()
    return session.state()


@router.post("/game/navigate")
async def navigate(body: NavigateBody, session: GameSession = Depends(get_session)):
    """Jump straight to a scene, subject to its requirements."""
    session.story.navigate_to_scene(body.scene_id)
    session.autosave()
    return session.state()


@router.post("/game/stats")
async def apply_stat_changes(body: StatChangesBody, session: GameSession = Depends(get_session)):
    """Add a partial stat delta to the current stats."""
    try:
        session.story.apply_stat_changes(body.changes)
    except ValueError as e:
        raise HTTPException(422, str(e))
    session.autosave()
    return session.state()


@router.post("/game/week")
async def advance_week(body: AdvanceWeekBody, session: GameSession = Depends(get_session)):
    """Advance the calendar and, by default, check challenge triggers."""
    game = session.story.advance_week(body.weeks)
    if body.check_triggers and game is not None:
        session.challenges.check_triggers(game.stats.week, game.flags)
    session.autosave()
    return session.state()


@router.post("/game/play-time")
async def add_play_time(body: PlayTimeBody, session: GameSession = Depends(get_session)):
    session.story.add_play_time(body.minutes)
    return session.state()


@router.get("/game/export")
async def export_game(session: GameSession = Depends(get_session)):
    """The live game in its persisted layout."""
    return session.story.export_game()


@router.get("/game/relationships/{npc_id}")
async def get_relationship(npc_id: str, session: GameSession = Depends(get_session)):
    rel = session.story.get_relationship(npc_id)
    if rel is None:
        raise HTTPException(404, "No relationship with that NPC yet")
    return rel.model_dump()


# ---------------------------------------------------------------------------
# Save slots
# ---------------------------------------------------------------------------

@router.get("/saves")
async def list_saves(session: GameSession = Depends(get_session)):
    return session.saves.list_saves()


@router.post("/saves", status_code=201)
async def save_game(body: SaveGameBody, session: GameSession = Depends(get_session)):
    """Write the live game to a slot."""
    game = session.story.game
    if game is None:
        raise HTTPException(400, "No game in progress")
    try:
        session.saves.save(game, body.slot)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return {"slot": body.slot}


@router.delete("/saves/{slot}", status_code=204)
async def delete_save(slot: str, session: GameSession = Depends(get_session)):
    try:
        deleted = session.saves.delete(slot)
    except ValueError as e:
        raise HTTPException(422, str(e))
    if not deleted:
        raise HTTPException(404, "Save not found")
