"""
Guardian links: at most MAX_GUARDIANS_PER_STUDENT (2) guardians per student and
at most one primary among them.

The first guardian linked to a student becomes primary automatically; callers
cannot choose is_primary at creation. Promoting a guardian demotes the others
in the same transaction. Unlinking never promotes a remaining guardian.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.schemas import CurrentUser
from app.auth.services import normalize_email
from app.core.config import settings
from app.core.enums import RelationshipType, UserRole
from app.core.exceptions import CapacityError, ConflictError, ForbiddenError, NotFoundError
from app.core.models import GuardianLink
from app.core.schemas import MessageResponse, UserSummary
from app.db.session import unit_of_work

from app.api.v1.enrollments import service as enrollment_service

from .schemas import (
    GuardianAttachRequest,
    GuardianChild,
    GuardianLinkCreated,
    GuardianLinkUpdate,
    GuardianSelfLinkRequest,
    StudentBrief,
    StudentGuardian,
)

logger = logging.getLogger(__name__)


async def get_link(db: AsyncSession, student_id: UUID, guardian_id: UUID) -> Optional[GuardianLink]:
    result = await db.execute(
        select(GuardianLink).where(
            GuardianLink.student_id == student_id,
            GuardianLink.guardian_id == guardian_id,
        )
    )
    return result.scalar_one_or_none()


async def count_guardians(db: AsyncSession, student_id: UUID) -> int:
    result = await db.execute(
        select(func.count(GuardianLink.id)).where(GuardianLink.student_id == student_id)
    )
    return result.scalar_one()


async def guardian_can_view_progress(db: AsyncSession, guardian_id: UUID, student_id: UUID) -> bool:
    link = await get_link(db, student_id, guardian_id)
    return bool(link and link.can_view_progress)


async def _get_active_user(db: AsyncSession, user_id: UUID, role: UserRole) -> Optional[User]:
    user = await db.get(User, user_id)
    if not user or user.role != role.value or not user.active:
        return None
    return user


async def _require_teacher_of(db: AsyncSession, teacher: CurrentUser, student_id: UUID) -> None:
    if not await enrollment_service.is_student_of_teacher(db, teacher.id, student_id):
        raise ForbiddenError("You can only manage guardians of students in your classrooms")


async def link_guardian(
    db: AsyncSession,
    *,
    student: User,
    guardian: User,
    relationship_type: RelationshipType = RelationshipType.REPRESENTANTE,
    phone: Optional[str] = None,
    can_view_progress: bool = True,
    can_receive_notifications: bool = True,
    emergency_contact: bool = False,
) -> GuardianLink:
    """
    Create a guardian link, shared by teacher-attach and guardian self-link.

    Raises ConflictError if the pair is already linked and CapacityError when
    the student already has the maximum number of guardians.
    """
    # Lock the student row so concurrent link attempts count guardians one at a time (PostgreSQL).
    await db.execute(select(User.id).where(User.id == student.id).with_for_update())

    if await get_link(db, student.id, guardian.id):
        raise ConflictError(
            "This guardian is already linked to the student",
            details={"studentId": str(student.id), "guardianId": str(guardian.id)},
        )

    current = await count_guardians(db, student.id)
    limit = settings.max_guardians_per_student
    if current >= limit:
        logger.warning("Guardian cap reached for student %s (%s/%s)", student.id, current, limit)
        raise CapacityError(
            f"This student already has the maximum number of guardians allowed ({limit})",
            details={"maxGuardians": limit, "currentGuardians": current},
        )

    link = GuardianLink(
        guardian_id=guardian.id,
        student_id=student.id,
        relationship_type=relationship_type.value,
        is_primary=current == 0,
        phone=phone,
        can_view_progress=can_view_progress,
        can_receive_notifications=can_receive_notifications,
        emergency_contact=emergency_contact,
    )
    db.add(link)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Concurrent guardian link rejected for student %s", student.id)
        raise ConflictError("The student's guardians changed while linking; please retry") from e
    await db.refresh(link)
    logger.info(
        "Linked guardian %s to student %s (primary=%s)", guardian.id, student.id, link.is_primary
    )
    return link


async def attach_guardian(
    db: AsyncSession,
    teacher: CurrentUser,
    student_id: UUID,
    payload: GuardianAttachRequest,
) -> GuardianLinkCreated:
    student = await _get_active_user(db, student_id, UserRole.STUDENT)
    if not student:
        raise NotFoundError("Student not found")
    await _require_teacher_of(db, teacher, student_id)
    guardian = await _get_active_user(db, payload.guardian_id, UserRole.GUARDIAN)
    if not guardian:
        raise NotFoundError("Guardian not found")

    student_brief = StudentBrief(id=student.id, name=student.name, email=student.email)
    guardian_name = guardian.name
    link = await link_guardian(
        db,
        student=student,
        guardian=guardian,
        relationship_type=payload.relationship_type,
        phone=payload.phone,
        can_view_progress=payload.can_view_progress,
        can_receive_notifications=payload.can_receive_notifications,
        emergency_contact=payload.emergency_contact,
    )
    return GuardianLinkCreated(
        message=f"{guardian_name} is now a guardian of {student_brief.name}",
        student=student_brief,
        is_primary=link.is_primary,
    )


async def self_link_child(
    db: AsyncSession,
    guardian: CurrentUser,
    payload: GuardianSelfLinkRequest,
) -> GuardianLinkCreated:
    """Guardian links themself to a student found by email."""
    result = await db.execute(
        select(User).where(
            User.email == normalize_email(payload.student_email),
            User.role == UserRole.STUDENT.value,
            User.active.is_(True),
        )
    )
    student = result.scalar_one_or_none()
    if not student:
        raise NotFoundError("No student found with that email")
    guardian_user = await db.get(User, guardian.id)

    student_brief = StudentBrief(id=student.id, name=student.name, email=student.email)
    link = await link_guardian(
        db,
        student=student,
        guardian=guardian_user,
        relationship_type=payload.relationship_type,
        phone=payload.phone,
    )
    return GuardianLinkCreated(
        message=f"You are now linked with {student_brief.name}",
        student=student_brief,
        is_primary=link.is_primary,
    )


async def update_guardian_link(
    db: AsyncSession,
    teacher: CurrentUser,
    student_id: UUID,
    guardian_id: UUID,
    payload: GuardianLinkUpdate,
) -> MessageResponse:
    await _require_teacher_of(db, teacher, student_id)
    link = await get_link(db, student_id, guardian_id)
    if not link:
        raise NotFoundError("Guardian link not found")

    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "relationship_type" in changes:
        changes["relationship_type"] = RelationshipType(changes["relationship_type"]).value

    try:
        async with unit_of_work(db):
            if changes.get("is_primary") is True:
                # Demote first so there is never a moment with two primaries.
                await db.execute(
                    update(GuardianLink)
                    .where(GuardianLink.student_id == student_id, GuardianLink.id != link.id)
                    .values(is_primary=False)
                )
            for field, value in changes.items():
                setattr(link, field, value)
    except IntegrityError as e:
        raise ConflictError("Another primary guardian was set concurrently; please retry") from e

    if changes.get("is_primary") is True:
        logger.info("Guardian %s promoted to primary for student %s", guardian_id, student_id)
    return MessageResponse(message="Guardian link updated successfully")


async def unlink_guardian(
    db: AsyncSession,
    teacher: CurrentUser,
    student_id: UUID,
    guardian_id: UUID,
) -> MessageResponse:
    """Hard delete. A removed primary is not replaced; reassigning primary is a manual step."""
    await _require_teacher_of(db, teacher, student_id)
    link = await get_link(db, student_id, guardian_id)
    if not link:
        raise NotFoundError("Guardian link not found")

    guardian_name = link.guardian.name
    student_name = link.student.name
    was_primary = link.is_primary
    async with unit_of_work(db):
        await db.delete(link)
    logger.info(
        "Unlinked guardian %s from student %s (was primary=%s)", guardian_id, student_id, was_primary
    )
    return MessageResponse(message=f"{guardian_name} is no longer a guardian of {student_name}")


async def list_student_guardians(
    db: AsyncSession,
    current_user: CurrentUser,
    student_id: UUID,
) -> List[StudentGuardian]:
    """Visible to the student's teacher, a linked guardian, or the student."""
    if current_user.is_teacher:
        authorized = await enrollment_service.is_student_of_teacher(db, current_user.id, student_id)
    elif current_user.is_guardian:
        authorized = await get_link(db, student_id, current_user.id) is not None
    else:
        authorized = current_user.id == student_id
    if not authorized:
        raise ForbiddenError("You do not have permission to view this information")

    result = await db.execute(
        select(GuardianLink)
        .join(User, User.id == GuardianLink.guardian_id)
        .where(
            GuardianLink.student_id == student_id,
            User.role == UserRole.GUARDIAN.value,
            User.active.is_(True),
        )
        .order_by(GuardianLink.is_primary.desc(), GuardianLink.created_at.asc())
    )
    return [
        StudentGuardian(
            id=link.guardian.id,
            name=link.guardian.name,
            email=link.guardian.email,
            relationship_type=link.relationship_type,
            is_primary=link.is_primary,
            phone=link.phone,
            can_view_progress=link.can_view_progress,
            can_receive_notifications=link.can_receive_notifications,
            emergency_contact=link.emergency_contact,
            relationship_date=link.created_at,
        )
        for link in result.scalars().all()
    ]


async def search_guardians(
    db: AsyncSession,
    email: Optional[str] = None,
    name: Optional[str] = None,
) -> List[UserSummary]:
    stmt = select(User).where(User.role == UserRole.GUARDIAN.value, User.active.is_(True))
    if email:
        stmt = stmt.where(User.email == normalize_email(email))
    else:
        stmt = stmt.where(User.name.ilike(f"%{name.strip()}%"))
    result = await db.execute(stmt.order_by(User.name))
    guardians = result.scalars().all()
    if not guardians:
        raise NotFoundError("No guardians found matching those criteria")
    return [UserSummary.model_validate(g) for g in guardians]


async def list_my_children(db: AsyncSession, guardian: CurrentUser) -> List[GuardianChild]:
    result = await db.execute(
        select(GuardianLink)
        .where(GuardianLink.guardian_id == guardian.id)
        .order_by(GuardianLink.created_at.asc())
    )
    children: List[GuardianChild] = []
    for link in result.scalars().all():
        enrollment = await enrollment_service.get_active_enrollment(db, link.student_id)
        classroom = enrollment.classroom if enrollment else None
        children.append(
            GuardianChild(
                id=link.student.id,
                name=link.student.name,
                email=link.student.email,
                relationship_type=link.relationship_type,
                is_primary=link.is_primary,
                can_view_progress=link.can_view_progress,
                classroom_id=classroom.id if classroom else None,
                classroom_name=classroom.name if classroom else None,
                teacher_name=classroom.teacher.name if classroom else None,
            )
        )
    return children
