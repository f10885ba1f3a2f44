"""
Enrollment rules: a student holds at most one active enrollment at a time.

Entry points are teacher enroll, student self-enroll, transfer and unenroll.
The pre-checks here exist to produce friendly errors; the partial unique index
on enrollments(student_id) WHERE status='active' is what actually rejects a
second active row, and its IntegrityError is mapped to the same ConflictError.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.schemas import CurrentUser
from app.auth.services import normalize_email
from app.core.enums import EnrollmentStatus, UserRole
from app.core.exceptions import (
    CapacityError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.core.models import Classroom, Enrollment
from app.core.schemas import MessageResponse, UserSummary
from app.db.session import unit_of_work

from app.api.v1.classrooms import service as classroom_service

from .schemas import EnrolledClassroom, EnrollmentStatusResponse

logger = logging.getLogger(__name__)

ACTIVE = EnrollmentStatus.ACTIVE.value
INACTIVE = EnrollmentStatus.INACTIVE.value
TRANSFERRED = EnrollmentStatus.TRANSFERRED.value


async def get_active_enrollment(db: AsyncSession, student_id: UUID) -> Optional[Enrollment]:
    """The student's single active enrollment (classroom and teacher eagerly loaded), or None."""
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.status == ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def is_student_of_teacher(db: AsyncSession, teacher_id: UUID, student_id: UUID) -> bool:
    """True when the student is actively enrolled in one of the teacher's classrooms."""
    result = await db.execute(
        select(Enrollment.id)
        .join(Classroom, Classroom.id == Enrollment.classroom_id)
        .where(
            Enrollment.student_id == student_id,
            Enrollment.status == ACTIVE,
            Classroom.teacher_id == teacher_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


def enrollment_details(enrollment: Enrollment) -> Dict[str, Any]:
    """Structured description of an existing enrollment, for clients offering a transfer instead."""
    classroom = enrollment.classroom
    return {
        "currentClassroom": classroom.name,
        "currentTeacher": classroom.teacher.name,
        "classroomId": str(classroom.id),
        "enrollmentDate": enrollment.enrollment_date.isoformat(),
    }


def _already_enrolled(subject: str, enrollment: Optional[Enrollment]) -> ConflictError:
    if enrollment is None:
        return ConflictError(f"{subject} already enrolled in another classroom")
    classroom = enrollment.classroom
    return ConflictError(
        f'{subject} already enrolled in "{classroom.name}" with {classroom.teacher.name}. '
        "A student can only be in one classroom at a time.",
        details=enrollment_details(enrollment),
    )


async def _get_enrollable_student(db: AsyncSession, student_id: UUID) -> User:
    student = await db.get(User, student_id)
    if not student or student.role != UserRole.STUDENT.value or not student.active:
        raise ValidationError("Student not found")
    return student


async def _check_capacity(db: AsyncSession, classroom: Classroom, message: Optional[str] = None) -> None:
    # Row lock on the classroom serializes seat counting on PostgreSQL; a no-op on SQLite.
    await db.execute(select(Classroom.id).where(Classroom.id == classroom.id).with_for_update())
    current = await classroom_service.count_active_enrollments(db, classroom.id)
    if current >= classroom.max_students:
        logger.warning("Classroom %s is full (%s/%s)", classroom.id, current, classroom.max_students)
        raise CapacityError(
            message or f"The classroom is full ({classroom.max_students}/{classroom.max_students})",
            details={"maxStudents": classroom.max_students, "currentStudents": current},
        )


async def _insert_active_enrollment(
    db: AsyncSession,
    student_id: UUID,
    classroom: Classroom,
    subject: str,
) -> Enrollment:
    enrollment = Enrollment(
        student_id=student_id,
        classroom_id=classroom.id,
        status=ACTIVE,
        enrollment_date=datetime.utcnow(),
    )
    db.add(enrollment)
    try:
        await db.commit()
    except IntegrityError as e:
        # Lost a race: another request activated an enrollment for this student first.
        await db.rollback()
        logger.warning("Concurrent enrollment rejected for student %s", student_id)
        raise _already_enrolled(subject, await get_active_enrollment(db, student_id)) from e
    return enrollment


async def enroll_student(
    db: AsyncSession,
    teacher: CurrentUser,
    classroom_id: UUID,
    student_id: UUID,
) -> MessageResponse:
    """
    Teacher enrolls a student into one of their classrooms.

    Checks, in order: classroom owned and active, student valid, student not
    actively enrolled anywhere, classroom has a free seat.
    """
    classroom = await classroom_service.get_owned_classroom(db, teacher, classroom_id)
    student = await _get_enrollable_student(db, student_id)

    current = await get_active_enrollment(db, student.id)
    if current:
        logger.warning("Student %s already active in classroom %s", student.id, current.classroom_id)
        raise _already_enrolled(f"{student.name} is", current)

    await _check_capacity(db, classroom)
    student_name = student.name
    await _insert_active_enrollment(db, student.id, classroom, f"{student_name} is")
    logger.info("Teacher %s enrolled student %s in classroom %s", teacher.id, student_id, classroom.id)
    return MessageResponse(message=f"{student_name} has been enrolled in {classroom.name}")


async def self_enroll(db: AsyncSession, student: CurrentUser, classroom_id: UUID) -> MessageResponse:
    """Student joins a classroom from the catalog. Fails with ConflictError if already enrolled anywhere."""
    current = await get_active_enrollment(db, student.id)
    if current:
        raise _already_enrolled("You are", current)

    classroom = await db.get(Classroom, classroom_id)
    if not classroom or not classroom.active:
        raise NotFoundError("Classroom not found")

    await _check_capacity(db, classroom, "The classroom is full")
    await _insert_active_enrollment(db, student.id, classroom, "You are")
    logger.info("Student %s self-enrolled in classroom %s", student.id, classroom.id)
    return MessageResponse(
        message=f"You have enrolled in {classroom.name} with {classroom.teacher.name}"
    )


async def get_enrollment_status(db: AsyncSession, student: CurrentUser) -> EnrollmentStatusResponse:
    current = await get_active_enrollment(db, student.id)
    if not current or not current.classroom.active:
        return EnrollmentStatusResponse(isEnrolled=False, classroom=None)
    c = current.classroom
    return EnrollmentStatusResponse(
        isEnrolled=True,
        classroom=EnrolledClassroom(
            id=c.id,
            name=c.name,
            grade_level=c.grade_level,
            section=c.section,
            school_year=c.school_year,
            teacher_name=c.teacher.name,
            teacher_email=c.teacher.email,
            enrollment_date=current.enrollment_date,
        ),
    )


async def transfer_student(
    db: AsyncSession,
    teacher: CurrentUser,
    student_id: UUID,
    new_classroom_id: UUID,
    reason: Optional[str] = None,
) -> MessageResponse:
    """
    Move a student into one of the caller's classrooms.

    The source may belong to any teacher (this is the follow-up offered when an
    enroll hits an existing enrollment). The old row becomes 'transferred' and a
    new active row is inserted in one unit of work: both apply or neither does.
    """
    destination = await classroom_service.get_owned_classroom(
        db, teacher, new_classroom_id, "Destination classroom not found"
    )
    current = await get_active_enrollment(db, student_id)
    if not current:
        raise ValidationError("Student is not actively enrolled in any classroom")
    if current.classroom_id == destination.id:
        raise ValidationError("Student is already enrolled in this classroom")

    await _check_capacity(
        db,
        destination,
        f"The destination classroom is full ({destination.max_students}/{destination.max_students})",
    )

    source_name = current.classroom.name
    student_name = current.student.name
    try:
        async with unit_of_work(db):
            current.status = TRANSFERRED
            current.notes = reason or "Transferred by teacher"
            # The old row must leave 'active' before the new one is inserted.
            await db.flush()
            db.add(
                Enrollment(
                    student_id=student_id,
                    classroom_id=destination.id,
                    status=ACTIVE,
                    enrollment_date=datetime.utcnow(),
                    notes=f"Transferred from {source_name}",
                )
            )
    except IntegrityError as e:
        logger.warning("Transfer of student %s rolled back: concurrent enrollment change", student_id)
        raise ConflictError("The student's enrollment changed during the transfer; please retry") from e

    logger.info(
        "Teacher %s transferred student %s from %r to classroom %s",
        teacher.id, student_id, source_name, destination.id,
    )
    return MessageResponse(
        message=f'{student_name} has been transferred from "{source_name}" to "{destination.name}"'
    )


async def unenroll_student(
    db: AsyncSession,
    teacher: CurrentUser,
    student_id: UUID,
    reason: Optional[str] = None,
) -> MessageResponse:
    current = await get_active_enrollment(db, student_id)
    if not current:
        raise ValidationError("Student is not actively enrolled in any classroom")
    if current.classroom.teacher_id != teacher.id:
        raise ForbiddenError("You can only unenroll students from your own classrooms")

    classroom_name = current.classroom.name
    student_name = current.student.name
    async with unit_of_work(db):
        current.status = INACTIVE
        current.notes = reason or "Unenrolled by teacher"
    logger.info("Teacher %s unenrolled student %s from %r", teacher.id, student_id, classroom_name)
    return MessageResponse(message=f'{student_name} has been unenrolled from "{classroom_name}"')


async def search_student(db: AsyncSession, teacher: CurrentUser, email: str) -> UserSummary:
    """Look up an active student by email before enrolling them in one of the caller's classrooms."""
    result = await db.execute(
        select(User).where(
            User.email == normalize_email(email),
            User.role == UserRole.STUDENT.value,
            User.active.is_(True),
        )
    )
    student = result.scalar_one_or_none()
    if not student:
        raise NotFoundError("No student found with that email")

    current = await get_active_enrollment(db, student.id)
    if current and current.classroom.teacher_id == teacher.id:
        raise ConflictError(
            f"The student is already enrolled in: {current.classroom.name}",
            details=enrollment_details(current),
        )
    return UserSummary.model_validate(student)


async def count_active_students_for_teacher(db: AsyncSession, teacher_id: UUID) -> int:
    result = await db.execute(
        select(func.count(func.distinct(Enrollment.student_id)))
        .join(Classroom, Classroom.id == Enrollment.classroom_id)
        .where(Classroom.teacher_id == teacher_id, Enrollment.status == ACTIVE)
    )
    return result.scalar_one()
