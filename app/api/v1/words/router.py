from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_teacher
from app.auth.schemas import CurrentUser
from app.core.schemas import MessageResponse
from app.db.session import get_db

from .schemas import (
    GameWordListResponse,
    ScopedWordCreate,
    WordCreate,
    WordListResponse,
    WordResult,
    WordStatsResponse,
    WordUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/titanic/words", tags=["titanic-words"])


@router.get("", response_model=WordListResponse)
async def list_words(
    category: Optional[str] = Query(None, description="Category, or TODAS for all"),
    difficulty: Optional[int] = Query(None, ge=1, le=3),
    active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Matches word or hint"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> WordListResponse:
    words = await service.list_words(
        db, category=category, difficulty=difficulty, active=active, search=search
    )
    return WordListResponse(words=words)


@router.post("", response_model=WordResult, status_code=status.HTTP_201_CREATED)
async def create_word(
    payload: WordCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> WordResult:
    word = await service.create_word(db, current_user, payload)
    return WordResult(message="Word created successfully", word=word)


@router.get("/stats", response_model=WordStatsResponse)
async def word_stats(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> WordStatsResponse:
    return WordStatsResponse(stats=await service.word_stats(db))


@router.get("/available", response_model=WordListResponse)
async def available_words(
    classroom_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> WordListResponse:
    """Active words the caller can use: own, global, and those of the given classroom."""
    words = await service.available_words_for_teacher(db, current_user, classroom_id)
    return WordListResponse(words=words)


@router.post("/scoped", response_model=WordResult, status_code=status.HTTP_201_CREATED)
async def create_scoped_word(
    payload: ScopedWordCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> WordResult:
    word = await service.create_scoped_word(db, current_user, payload)
    return WordResult(message="Word created successfully", word=word)


@router.get("/active/{difficulty}", response_model=GameWordListResponse)
async def active_words(
    difficulty: int,
    db: AsyncSession = Depends(get_db),
) -> GameWordListResponse:
    """Public: shuffled active words for one difficulty level, used by the game client."""
    return GameWordListResponse(words=await service.active_words_for_game(db, difficulty))


@router.put("/{word_id}", response_model=WordResult)
async def update_word(
    word_id: UUID,
    payload: WordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> WordResult:
    word = await service.update_word(db, word_id, payload)
    return WordResult(message="Word updated successfully", word=word)


@router.delete("/{word_id}", response_model=MessageResponse)
async def delete_word(
    word_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> MessageResponse:
    return await service.delete_word(db, word_id)


@router.patch("/{word_id}/toggle", response_model=WordResult)
async def toggle_word(
    word_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> WordResult:
    word = await service.toggle_word(db, word_id)
    state = "activated" if word.is_active else "deactivated"
    return WordResult(message=f"Word {state} successfully", word=word)
