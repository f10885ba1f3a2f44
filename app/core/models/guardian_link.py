import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import relationship

from app.db.session import Base


class GuardianLink(Base):
    """
    Guardian <-> student relation with kinship and permission flags.
    Hard-deleted on unlink. At most one primary link per student (partial unique index);
    the per-student cap is checked under a lock on the student row.
    """

    __tablename__ = "guardian_links"
    __table_args__ = (
        UniqueConstraint("guardian_id", "student_id", name="uq_guardian_link_pair"),
        Index(
            "uq_guardian_link_one_primary_per_student",
            "student_id",
            unique=True,
            sqlite_where=text("is_primary = 1"),
            postgresql_where=text("is_primary IS TRUE"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    guardian_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    relationship_type = Column(String(20), nullable=False, default="representante")
    is_primary = Column(Boolean, nullable=False, default=False)
    can_view_progress = Column(Boolean, nullable=False, default=True)
    can_receive_notifications = Column(Boolean, nullable=False, default=True)
    emergency_contact = Column(Boolean, nullable=False, default=False)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    guardian = relationship("User", foreign_keys=[guardian_id], lazy="joined")
    student = relationship("User", foreign_keys=[student_id], lazy="joined")
