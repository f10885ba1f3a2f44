"""Classroom management for teachers, plus the student-facing catalog of joinable classrooms."""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import Float, cast, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.enums import EnrollmentStatus
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.core.models import Classroom, Enrollment, GameSession, GuardianLink
from app.core.schemas import MessageResponse
from app.db.session import unit_of_work

from .schemas import (
    AvailableClassroom,
    ClassroomCreate,
    ClassroomCreated,
    ClassroomResponse,
    ClassroomStudent,
)

logger = logging.getLogger(__name__)

ACTIVE = EnrollmentStatus.ACTIVE.value


def _active_counts_subquery():
    """classroom_id -> number of active enrollments."""
    return (
        select(Enrollment.classroom_id, func.count(Enrollment.id).label("student_count"))
        .where(Enrollment.status == ACTIVE)
        .group_by(Enrollment.classroom_id)
        .subquery()
    )


def _classroom_to_response(c: Classroom, student_count: int = 0) -> ClassroomResponse:
    return ClassroomResponse(
        id=c.id,
        name=c.name,
        teacher_id=c.teacher_id,
        grade_level=c.grade_level,
        section=c.section,
        school_year=c.school_year,
        max_students=c.max_students,
        active=c.active,
        student_count=student_count,
        created_at=c.created_at,
    )


async def count_active_enrollments(db: AsyncSession, classroom_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Enrollment.id)).where(
            Enrollment.classroom_id == classroom_id,
            Enrollment.status == ACTIVE,
        )
    )
    return result.scalar_one()


async def get_owned_classroom(
    db: AsyncSession,
    teacher: CurrentUser,
    classroom_id: UUID,
    not_found_message: str = "Classroom not found",
) -> Classroom:
    """Active classroom owned by the caller. NotFoundError if missing or inactive, ForbiddenError if not theirs."""
    classroom = await db.get(Classroom, classroom_id)
    if not classroom or not classroom.active:
        raise NotFoundError(not_found_message)
    if classroom.teacher_id != teacher.id:
        raise ForbiddenError("You can only manage your own classrooms")
    return classroom


async def create_classroom(
    db: AsyncSession,
    teacher: CurrentUser,
    payload: ClassroomCreate,
) -> ClassroomCreated:
    name = payload.name.strip()
    section = payload.section.strip()
    school_year = payload.school_year.strip()
    obj = Classroom(
        name=name,
        teacher_id=teacher.id,
        grade_level=payload.grade_level.strip(),
        section=section,
        school_year=school_year,
        max_students=payload.max_students or settings.default_max_students,
        active=True,
    )
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(
            f"You already have a classroom for section {section} in school year {school_year}",
            details={"section": section, "school_year": school_year},
        ) from e
    await db.refresh(obj)
    logger.info("Teacher %s created classroom %s (%s)", teacher.id, obj.id, name)
    return ClassroomCreated(message="Classroom created successfully", classroom_id=obj.id)


async def list_my_classrooms(db: AsyncSession, teacher: CurrentUser) -> List[ClassroomResponse]:
    counts = _active_counts_subquery()
    student_count = func.coalesce(counts.c.student_count, 0)
    result = await db.execute(
        select(Classroom, student_count)
        .outerjoin(counts, counts.c.classroom_id == Classroom.id)
        .where(Classroom.teacher_id == teacher.id, Classroom.active.is_(True))
        .order_by(Classroom.created_at.desc())
    )
    return [_classroom_to_response(c, count) for c, count in result.all()]


async def list_available_classrooms(db: AsyncSession, student: CurrentUser) -> List[AvailableClassroom]:
    """Active classrooms with free seats that the student is not actively enrolled in."""
    counts = _active_counts_subquery()
    current_students = func.coalesce(counts.c.student_count, 0)
    own_classrooms = select(Enrollment.classroom_id).where(
        Enrollment.student_id == student.id,
        Enrollment.status == ACTIVE,
    )
    result = await db.execute(
        select(Classroom, current_students)
        .outerjoin(counts, counts.c.classroom_id == Classroom.id)
        .where(
            Classroom.active.is_(True),
            Classroom.id.not_in(own_classrooms),
            current_students < Classroom.max_students,
        )
        .order_by(Classroom.school_year.desc(), Classroom.grade_level, Classroom.section)
    )
    return [
        AvailableClassroom(
            id=c.id,
            name=c.name,
            grade_level=c.grade_level,
            section=c.section,
            school_year=c.school_year,
            max_students=c.max_students,
            teacher_name=c.teacher.name,
            current_students=count,
        )
        for c, count in result.all()
    ]


async def _guardian_has_child_in(db: AsyncSession, guardian_id: UUID, classroom_id: UUID) -> bool:
    result = await db.execute(
        select(GuardianLink.id)
        .join(Enrollment, Enrollment.student_id == GuardianLink.student_id)
        .where(
            GuardianLink.guardian_id == guardian_id,
            Enrollment.classroom_id == classroom_id,
            Enrollment.status == ACTIVE,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def list_classroom_students(
    db: AsyncSession,
    current_user: CurrentUser,
    classroom_id: UUID,
) -> List[ClassroomStudent]:
    """Active roster with game activity. Visible to the owning teacher and to guardians of a child in the room."""
    classroom = await db.get(Classroom, classroom_id)
    if not classroom:
        raise NotFoundError("Classroom not found")
    authorized = False
    if current_user.is_teacher:
        authorized = classroom.teacher_id == current_user.id
    elif current_user.is_guardian:
        authorized = await _guardian_has_child_in(db, current_user.id, classroom_id)
    if not authorized:
        raise ForbiddenError("You do not have permission to view the students of this classroom")

    stmt = (
        select(
            User.id,
            User.name,
            User.email,
            Enrollment.enrollment_date,
            Enrollment.status,
            func.count(GameSession.id).label("total_games_played"),
            func.avg(cast(GameSession.score, Float)).label("average_score"),
            func.max(GameSession.created_at).label("last_activity"),
        )
        .select_from(User)
        .join(Enrollment, Enrollment.student_id == User.id)
        .outerjoin(GameSession, GameSession.user_id == User.id)
        .where(Enrollment.classroom_id == classroom_id, Enrollment.status == ACTIVE)
        .group_by(User.id, User.name, User.email, Enrollment.enrollment_date, Enrollment.status)
        .order_by(User.name)
    )
    result = await db.execute(stmt)
    return [
        ClassroomStudent(
            id=row.id,
            name=row.name,
            email=row.email,
            enrollment_date=row.enrollment_date,
            status=row.status,
            total_games_played=row.total_games_played,
            average_score=round(float(row.average_score), 1) if row.average_score is not None else None,
            last_activity=row.last_activity,
        )
        for row in result.all()
    ]


async def deactivate_classroom(db: AsyncSession, teacher: CurrentUser, classroom_id: UUID) -> MessageResponse:
    """Soft delete. Refused while students are still actively enrolled."""
    classroom = await get_owned_classroom(db, teacher, classroom_id)
    active_students = await count_active_enrollments(db, classroom.id)
    if active_students:
        raise ConflictError(
            f"Classroom still has {active_students} active student(s); transfer or unenroll them first",
            details={"activeStudents": active_students},
        )
    async with unit_of_work(db):
        classroom.active = False
    logger.info("Teacher %s deactivated classroom %s", teacher.id, classroom.id)
    return MessageResponse(message=f"Classroom \"{classroom.name}\" has been deactivated")
