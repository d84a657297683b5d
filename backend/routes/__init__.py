"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, config), game (lifecycle, choices, stats,
saves), chapters (listing, start, completion), challenges (puzzles, NPC
dialogues). Every mutating endpoint returns the full session state so the
client never has to stitch partial updates together.
"""

from fastapi import APIRouter

from .challenges import router as challenges_router
from .chapters import router as chapters_router
from .game import router as game_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(game_router)
router.include_router(chapters_router)
router.include_router(challenges_router)
