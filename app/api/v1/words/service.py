"""Word bank for the Titanic game. Words are stored upper-case and are unique by text."""

import logging
import re
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.core.enums import WordDifficulty
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.core.models import Classroom, TitanicWord
from app.core.schemas import MessageResponse
from app.db.session import unit_of_work

from .schemas import GameWord, ScopedWordCreate, WordCreate, WordResponse, WordStats, WordUpdate

logger = logging.getLogger(__name__)

MIN_WORD_LENGTH = 3
_LETTERS_ONLY = re.compile(r"^[A-ZÁÉÍÓÚÑÜ]+$")


def normalize_word(word: str) -> str:
    """Upper-case and validate a word. Raises ValidationError."""
    value = (word or "").strip().upper()
    if len(value) < MIN_WORD_LENGTH:
        raise ValidationError(f"The word must have at least {MIN_WORD_LENGTH} letters")
    if not _LETTERS_ONLY.match(value):
        raise ValidationError("The word must contain letters only")
    return value


def validate_difficulty(difficulty: int) -> int:
    if difficulty not in {d.value for d in WordDifficulty}:
        raise ValidationError("Difficulty must be 1, 2 or 3")
    return difficulty


def _require_text(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    return value


def _word_to_response(w: TitanicWord, viewer_id: Optional[UUID] = None) -> WordResponse:
    source_type = None
    if viewer_id is not None:
        if w.created_by == viewer_id:
            source_type = "own"
        elif w.is_global:
            source_type = "global"
        else:
            source_type = "classroom"
    return WordResponse(
        id=w.id,
        word=w.word,
        hint=w.hint,
        category=w.category,
        difficulty=w.difficulty,
        is_active=w.is_active,
        created_by=w.created_by,
        creator_name=w.creator.name if w.creator else None,
        classroom_id=w.classroom_id,
        is_global=w.is_global,
        source_type=source_type,
        created_at=w.created_at,
        updated_at=w.updated_at,
    )


async def _ensure_unique(db: AsyncSession, word: str, exclude_id: Optional[UUID] = None) -> None:
    stmt = select(TitanicWord.id).where(TitanicWord.word == word)
    if exclude_id is not None:
        stmt = stmt.where(TitanicWord.id != exclude_id)
    result = await db.execute(stmt)
    if result.scalar_one_or_none() is not None:
        raise ConflictError("This word already exists", details={"word": word})


async def _get_word(db: AsyncSession, word_id: UUID) -> TitanicWord:
    obj = await db.get(TitanicWord, word_id)
    if not obj:
        raise NotFoundError("Word not found")
    return obj


async def _reload(db: AsyncSession, word_id: UUID) -> TitanicWord:
    """Fresh row with its creator loaded."""
    result = await db.execute(
        select(TitanicWord)
        .where(TitanicWord.id == word_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _insert_word(db: AsyncSession, obj: TitanicWord) -> TitanicWord:
    word = obj.word
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("This word already exists", details={"word": word}) from e
    return await _reload(db, obj.id)


async def list_words(
    db: AsyncSession,
    category: Optional[str] = None,
    difficulty: Optional[int] = None,
    active: Optional[bool] = None,
    search: Optional[str] = None,
) -> List[WordResponse]:
    stmt = select(TitanicWord)
    # "TODAS" is the "all categories" option of the admin screen
    if category and category.upper() != "TODAS":
        stmt = stmt.where(TitanicWord.category == category.upper())
    if difficulty is not None:
        stmt = stmt.where(TitanicWord.difficulty == difficulty)
    if active is not None:
        stmt = stmt.where(TitanicWord.is_active.is_(active))
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(TitanicWord.word.ilike(pattern), TitanicWord.hint.ilike(pattern)))
    result = await db.execute(stmt.order_by(TitanicWord.created_at.desc()))
    return [_word_to_response(w) for w in result.scalars().all()]


async def word_stats(db: AsyncSession) -> WordStats:
    total = (await db.execute(select(func.count(TitanicWord.id)))).scalar_one()
    active = (
        await db.execute(select(func.count(TitanicWord.id)).where(TitanicWord.is_active.is_(True)))
    ).scalar_one()
    by_difficulty = await db.execute(
        select(TitanicWord.difficulty, func.count(TitanicWord.id))
        .group_by(TitanicWord.difficulty)
        .order_by(TitanicWord.difficulty)
    )
    by_category = await db.execute(
        select(TitanicWord.category, func.count(TitanicWord.id).label("cnt"))
        .group_by(TitanicWord.category)
        .order_by(func.count(TitanicWord.id).desc())
    )
    return WordStats(
        total=total,
        active=active,
        inactive=total - active,
        byDifficulty={d: n for d, n in by_difficulty.all()},
        byCategory={c: n for c, n in by_category.all()},
    )


async def create_word(db: AsyncSession, teacher: CurrentUser, payload: WordCreate) -> WordResponse:
    word = normalize_word(payload.word)
    hint = _require_text(payload.hint, "Hint")
    category = _require_text(payload.category, "Category").upper()
    validate_difficulty(payload.difficulty)
    await _ensure_unique(db, word)

    obj = await _insert_word(
        db,
        TitanicWord(
            word=word,
            hint=hint,
            category=category,
            difficulty=payload.difficulty,
            is_active=payload.is_active,
            created_by=teacher.id,
        ),
    )
    logger.info("Teacher %s created word %s", teacher.id, word)
    return _word_to_response(obj)


async def create_scoped_word(db: AsyncSession, teacher: CurrentUser, payload: ScopedWordCreate) -> WordResponse:
    word = normalize_word(payload.word)
    hint = _require_text(payload.hint, "Hint")
    category = _require_text(payload.category, "Category").upper()
    validate_difficulty(payload.difficulty)
    if payload.classroom_id is not None:
        classroom = await db.get(Classroom, payload.classroom_id)
        if not classroom or classroom.teacher_id != teacher.id:
            raise ForbiddenError("Classroom not found")
    await _ensure_unique(db, word)

    obj = await _insert_word(
        db,
        TitanicWord(
            word=word,
            hint=hint,
            category=category,
            difficulty=payload.difficulty,
            is_active=payload.is_active,
            created_by=teacher.id,
            classroom_id=payload.classroom_id,
            is_global=payload.is_global,
        ),
    )
    return _word_to_response(obj, viewer_id=teacher.id)


async def update_word(db: AsyncSession, word_id: UUID, payload: WordUpdate) -> WordResponse:
    obj = await _get_word(db, word_id)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

    if "word" in changes:
        changes["word"] = normalize_word(changes["word"])
        if changes["word"] != obj.word:
            await _ensure_unique(db, changes["word"], exclude_id=obj.id)
    if "difficulty" in changes:
        validate_difficulty(changes["difficulty"])
    if "hint" in changes:
        changes["hint"] = _require_text(changes["hint"], "Hint")
    if "category" in changes:
        changes["category"] = _require_text(changes["category"], "Category").upper()

    try:
        async with unit_of_work(db):
            for field, value in changes.items():
                setattr(obj, field, value)
    except IntegrityError as e:
        raise ConflictError("Another word already has that text") from e
    return _word_to_response(await _reload(db, obj.id))


async def delete_word(db: AsyncSession, word_id: UUID) -> MessageResponse:
    obj = await _get_word(db, word_id)
    async with unit_of_work(db):
        await db.delete(obj)
    return MessageResponse(message="Word deleted successfully")


async def toggle_word(db: AsyncSession, word_id: UUID) -> WordResponse:
    obj = await _get_word(db, word_id)
    async with unit_of_work(db):
        obj.is_active = not obj.is_active
    return _word_to_response(await _reload(db, obj.id))


async def active_words_for_game(db: AsyncSession, difficulty: int) -> List[GameWord]:
    validate_difficulty(difficulty)
    result = await db.execute(
        select(TitanicWord.word, TitanicWord.hint, TitanicWord.category)
        .where(TitanicWord.is_active.is_(True), TitanicWord.difficulty == difficulty)
        .order_by(func.random())
    )
    return [GameWord(word=w, hint=h, category=c) for w, h, c in result.all()]


async def available_words_for_teacher(
    db: AsyncSession,
    teacher: CurrentUser,
    classroom_id: Optional[UUID] = None,
) -> List[WordResponse]:
    """Active words the teacher may use: their own, global ones, and those scoped to the given classroom."""
    visible = [TitanicWord.created_by == teacher.id, TitanicWord.is_global.is_(True)]
    if classroom_id is not None:
        visible.append(TitanicWord.classroom_id == classroom_id)
    result = await db.execute(
        select(TitanicWord)
        .where(TitanicWord.is_active.is_(True), or_(*visible))
        .order_by(TitanicWord.created_at.desc())
    )
    order = {"own": 0, "global": 1, "classroom": 2}
    words = [_word_to_response(w, viewer_id=teacher.id) for w in result.scalars().all()]
    return sorted(words, key=lambda w: order[w.source_type])
