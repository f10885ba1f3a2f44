import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class GameConfig(Base):
    """Teacher-authored word list and hints for one game type."""

    __tablename__ = "game_config"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    game_type = Column(String(20), nullable=False, index=True)
    words = Column(JSON, nullable=False, default=list)
    hints = Column(JSON, nullable=True, default=dict)
    category = Column(String(100), nullable=True)
    difficulty_level = Column(Integer, nullable=False, default=1)
    active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    creator = relationship("User", foreign_keys=[created_by], lazy="joined")
