"""Vocabulary for the Titanic word game. Optional classroom scope or global visibility."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class TitanicWord(Base):
    __tablename__ = "titanic_words"
    __table_args__ = (
        CheckConstraint("difficulty IN (1, 2, 3)", name="ck_titanic_word_difficulty"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    word = Column(String(100), nullable=False, unique=True)
    hint = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    difficulty = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    # Null for the seeded starter words
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id"), nullable=True)
    is_global = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    creator = relationship("User", foreign_keys=[created_by], lazy="joined")
