import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid

from app.db.session import Base


class GameSession(Base):
    """One played round of a game. classroom_id is the player's active classroom at save time, if any."""

    __tablename__ = "game_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id"), nullable=True, index=True)
    # ortografia | reglas | ahorcado | titanic
    game_type = Column(String(20), nullable=False)
    score = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    incorrect_answers = Column(Integer, nullable=False, default=0)
    time_spent = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    session_data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False, index=True)
