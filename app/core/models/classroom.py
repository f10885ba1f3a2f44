"""Classrooms owned by a single teacher. Soft delete via active; never physically removed."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Classroom(Base):
    __tablename__ = "classrooms"
    __table_args__ = (
        UniqueConstraint("teacher_id", "school_year", "section", name="uq_classroom_teacher_year_section"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    teacher_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    grade_level = Column(String(50), nullable=False)
    section = Column(String(50), nullable=False)
    school_year = Column(String(20), nullable=False)
    max_students = Column(Integer, nullable=False, default=50)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    teacher = relationship("User", back_populates="classrooms", lazy="joined")
    enrollments = relationship("Enrollment", back_populates="classroom")
