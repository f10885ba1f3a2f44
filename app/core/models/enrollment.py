import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import relationship

from app.db.session import Base


class Enrollment(Base):
    """
    Student membership in a classroom. Rows are never deleted: status moves
    active -> transferred | inactive and a new row is the only way back to active.
    At most one active row per student, enforced by a partial unique index.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        Index(
            "uq_enrollment_one_active_per_student",
            "student_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id"), nullable=False, index=True)
    # active | inactive | transferred
    status = Column(String(20), nullable=False, default="active")
    enrollment_date = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    notes = Column(Text, nullable=True)

    student = relationship("User", back_populates="enrollments", lazy="joined")
    classroom = relationship("Classroom", back_populates="enrollments", lazy="joined")
