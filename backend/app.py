import logging
import os
import random
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.routes import router
from backend.session import GameSession
from fund_wars.content import ContentRegistry
from fund_wars.errors import (
    ChapterLocked,
    ChoiceUnavailable,
    EngineError,
    InvalidSavedState,
    NoActiveChallenge,
    NoActiveGame,
    NotFound,
    SceneInaccessible,
)

load_dotenv(Path(__file__).parent.parent / ".env")

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"
DEFAULT_CONTENT_DIR = Path(__file__).parent.parent / "presets" / "content"

_STATUS_FOR_ERROR: list[tuple[type[EngineError], int]] = [
    (NotFound, 404),
    (ChoiceUnavailable, 409),
    (SceneInaccessible, 409),
    (ChapterLocked, 409),
    (NoActiveGame, 400),
    (NoActiveChallenge, 400),
    (InvalidSavedState, 422),
]


def _status_for(exc: EngineError) -> int:
    for error_type, status in _STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            return status
    return 400


def create_app(
    data_dir: Path | None = None,
    content_dir: Path | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    resolved_data = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    resolved_content = content_dir or Path(os.getenv("CONTENT_DIR", str(DEFAULT_CONTENT_DIR)))
    registry = ContentRegistry.from_directory(resolved_content)

    app = FastAPI(title="Fund Wars")
    app.state.session = GameSession(registry, resolved_data, rng=rng)

    @app.exception_handler(EngineError)
    async def engine_error(request: Request, exc: EngineError):
        status = _status_for(exc)
        logger.info("%s %s -> %d: %s", request.method, request.url.path, status, exc)
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR / CONTENT_DIR env vars or defaults)
app = create_app()
