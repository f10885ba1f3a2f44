"""
Create the tables and seed the default Titanic word list.

Runs at application startup and can also be run on its own:

    python -m app.db.init_db
"""
import asyncio
import logging
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# Import all models so Base.metadata knows every table
from app.auth.models import User  # noqa: F401
from app.core.models import Classroom, Enrollment, GameConfig, GameSession, GuardianLink, TitanicWord  # noqa: F401
from app.db.session import Base, engine

logger = logging.getLogger(__name__)


# (word, hint, category, difficulty)
DEFAULT_WORDS: List[Tuple[str, str, str, int]] = [
    ("GATO", "Animal doméstico que maúlla", "ANIMALES", 1),
    ("SOL", "Estrella que nos da luz y calor", "NATURALEZA", 1),
    ("MANZANA", "Fruta roja o verde muy común", "FRUTAS", 2),
    ("COMPUTADORA", "Máquina para procesar información", "TECNOLOGIA", 3),
]


async def init_models(db_engine: AsyncEngine) -> None:
    """Create missing tables and indexes. Existing tables are left untouched."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_default_words(db: AsyncSession) -> int:
    """Insert the default global words when the word bank is empty. Returns the number inserted."""
    existing = (await db.execute(select(func.count(TitanicWord.id)))).scalar_one()
    if existing:
        return 0
    for word, hint, category, difficulty in DEFAULT_WORDS:
        db.add(
            TitanicWord(
                word=word,
                hint=hint,
                category=category,
                difficulty=difficulty,
                is_active=True,
                is_global=True,
            )
        )
    await db.commit()
    logger.info("Seeded %s default words", len(DEFAULT_WORDS))
    return len(DEFAULT_WORDS)


async def init_db(db_engine: AsyncEngine = engine) -> None:
    await init_models(db_engine)
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as db:
        try:
            await seed_default_words(db)
        except Exception:
            await db.rollback()
            raise


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    await init_db()


if __name__ == "__main__":
    asyncio.run(main())
