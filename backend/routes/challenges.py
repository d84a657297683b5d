"""Puzzle and NPC dialogue endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from backend.session import GameSession, get_session
from fund_wars.models import PuzzleResult

from .models import (
    AnswerPuzzleBody,
    CheckTriggersBody,
    RespondBody,
    StartDialogueBody,
    StartPuzzleBody,
    TickBody,
)

router = APIRouter()


@router.get("/challenges")
async def get_challenges(session: GameSession = Depends(get_session)):
    """Active puzzle/dialogue, puzzle stats, and challenge history."""
    ch = session.challenges
    return {
        **ch.snapshot().model_dump(mode="json"),
        "puzzle_history": ch.puzzle_history,
        "dialogue_history": ch.dialogue_history,
        "npc_relationships": ch.npc_relationships,
    }


@router.post("/challenges/check")
async def check_triggers(body: CheckTriggersBody, session: GameSession = Depends(get_session)):
    """Maybe start a puzzle or dialogue. Week and flags default to the live game's."""
    game = session.story.game
    if game is None and (body.week is None or body.flags is None):
        raise HTTPException(400, "No game in progress")
    week = body.week if body.week is not None else game.stats.week
    flags = body.flags if body.flags is not None else game.flags
    started = session.challenges.check_triggers(week, flags)
    return {"triggered": started.id if started else None, **session.state()}


# ---------------------------------------------------------------------------
# Puzzles
# ---------------------------------------------------------------------------

@router.post("/challenges/puzzle/start")
async def start_puzzle(body: StartPuzzleBody, session: GameSession = Depends(get_session)):
    puzzle = session.challenges.start_puzzle(body.puzzle_id)
    if puzzle is None:
        raise HTTPException(409, "A puzzle is already active or none are left")
    return session.state()


@router.post("/challenges/puzzle/answer")
async def answer_puzzle(body: AnswerPuzzleBody, session: GameSession = Depends(get_session)):
    result = session.challenges.answer_puzzle(body.option_id)
    return result.model_dump()


@router.post("/challenges/puzzle/tick")
async def tick_puzzle(body: TickBody, session: GameSession = Depends(get_session)):
    """Advance the puzzle countdown. Returns the timeout result when it hits zero."""
    result = session.challenges.tick_puzzle(body.seconds)
    return {"result": result.model_dump() if result else None, **session.state()}


@router.post("/challenges/puzzle/complete")
async def complete_puzzle(
    body: PuzzleResult | None = None, session: GameSession = Depends(get_session)
):
    """Resolve the active puzzle and apply its reward or penalty.

    An optional result body (from a client-side timer) decides pass or fail;
    without one the answer given through /puzzle/answer is used.
    """
    try:
        result = session.challenges.complete_puzzle(body)
    except ValueError as e:
        raise HTTPException(422, str(e))
    session.autosave()
    return result.model_dump()


@router.post("/challenges/puzzle/skip")
async def skip_puzzle(session: GameSession = Depends(get_session)):
    result = session.challenges.skip_puzzle()
    session.autosave()
    return result.model_dump()


# ---------------------------------------------------------------------------
# Dialogues
# ---------------------------------------------------------------------------

@router.post("/challenges/dialogue/start")
async def start_dialogue(body: StartDialogueBody, session: GameSession = Depends(get_session)):
    dialogue = session.challenges.start_dialogue(body.dialogue_id)
    if dialogue is None:
        raise HTTPException(409, "A dialogue is already active")
    return session.state()


@router.post("/challenges/dialogue/respond")
async def respond(body: RespondBody, session: GameSession = Depends(get_session)):
    session.challenges.respond(body.response_id)
    return session.state()


@router.post("/challenges/dialogue/advance")
async def advance_dialogue(session: GameSession = Depends(get_session)):
    session.challenges.advance_dialogue()
    return session.state()


@router.post("/challenges/dialogue/complete")
async def complete_dialogue(session: GameSession = Depends(get_session)):
    """Close the finished dialogue and apply its effects."""
    result = session.challenges.complete_dialogue()
    session.autosave()
    return result.model_dump()


@router.post("/challenges/dialogue/abandon")
async def abandon_dialogue(session: GameSession = Depends(get_session)):
    result = session.challenges.abandon_dialogue()
    session.autosave()
    return result.model_dump()


@router.get("/dialogues/npc/{npc_id}")
async def dialogues_by_npc(npc_id: str, session: GameSession = Depends(get_session)):
    return [
        {"id": d.id, "npc_name": d.npc_name, "npc_role": d.npc_role, "completed": d.id in session.challenges.dialogue_history}
        for d in session.registry.get_dialogues_by_npc(npc_id)
    ]
