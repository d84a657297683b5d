"""Chapter listing and chapter lifecycle endpoints."""

from fastapi import APIRouter, Depends

from backend.session import GameSession, get_session

router = APIRouter()


@router.get("/chapters")
async def list_chapters(session: GameSession = Depends(get_session)):
    """All chapters in play order with unlock and completion status."""
    story = session.story
    completed = set(story.game.completed_chapters) if story.game else set()
    return [
        {
            **chapter.model_dump(),
            "unlocked": story.is_chapter_unlocked(chapter),
            "completed": chapter.id in completed,
        }
        for chapter in session.registry.list_chapters_in_order()
    ]


@router.get("/chapters/available")
async def available_chapters(session: GameSession = Depends(get_session)):
    """Unlocked chapters not yet completed."""
    return [c.model_dump() for c in session.story.available_chapters()]


@router.post("/chapters/{chapter_id}/start")
async def start_chapter(chapter_id: str, session: GameSession = Depends(get_session)):
    session.story.start_chapter(chapter_id)
    session.autosave()
    return session.state()


@router.post("/game/complete-chapter")
async def complete_chapter(session: GameSession = Depends(get_session)):
    """Mark the current chapter complete without a chapter-end scene."""
    session.story.complete_chapter()
    session.autosave()
    return session.state()


@router.post("/game/chapter-select")
async def return_to_chapter_select(session: GameSession = Depends(get_session)):
    session.story.return_to_chapter_select()
    session.autosave()
    return session.state()
