"""Health check and settings endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from backend.session import GameSession, get_session
from fund_wars.config import get_config, update_config

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(session: GameSession = Depends(get_session)):
    """Get game settings (starting stats, challenge tuning, autosave)."""
    return get_config(session.data_dir)


@router.patch("/settings")
async def update_settings(body: dict, session: GameSession = Depends(get_session)):
    """Update settings (partial merge). Starting stats apply from the next new game."""
    try:
        config = update_config(session.data_dir, body)
    except (ValidationError, ValueError) as e:
        raise HTTPException(422, str(e))
    session.apply_config(config)
    return config
