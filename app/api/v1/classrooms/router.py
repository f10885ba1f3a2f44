from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_student, require_teacher
from app.auth.schemas import CurrentUser
from app.core.schemas import MessageResponse
from app.db.session import get_db

from app.api.v1.enrollments import service as enrollment_service

from .schemas import (
    AvailableClassroomListResponse,
    ClassroomCreate,
    ClassroomCreated,
    ClassroomListResponse,
    ClassroomStudentListResponse,
    EnrollStudentRequest,
)
from . import service

router = APIRouter(prefix="/api/v1/classrooms", tags=["classrooms"])


@router.post(
    "",
    response_model=ClassroomCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_classroom(
    payload: ClassroomCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> ClassroomCreated:
    return await service.create_classroom(db, current_user, payload)


@router.get("/my-classrooms", response_model=ClassroomListResponse)
async def my_classrooms(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> ClassroomListResponse:
    """Active classrooms of the caller with live student counts."""
    return ClassroomListResponse(classrooms=await service.list_my_classrooms(db, current_user))


@router.get("/available", response_model=AvailableClassroomListResponse)
async def available_classrooms(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_student),
) -> AvailableClassroomListResponse:
    """Classrooms a student can join: active, not full, not already theirs."""
    return AvailableClassroomListResponse(
        classrooms=await service.list_available_classrooms(db, current_user)
    )


@router.delete("/{classroom_id}", response_model=MessageResponse)
async def deactivate_classroom(
    classroom_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> MessageResponse:
    return await service.deactivate_classroom(db, current_user, classroom_id)


@router.post(
    "/{classroom_id}/students",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_student(
    classroom_id: UUID,
    payload: EnrollStudentRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> MessageResponse:
    """Enroll a student. 409 with the current enrollment in `details` if they are already in a classroom."""
    return await enrollment_service.enroll_student(db, current_user, classroom_id, payload.student_id)


@router.get("/{classroom_id}/students", response_model=ClassroomStudentListResponse)
async def list_classroom_students(
    classroom_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassroomStudentListResponse:
    return ClassroomStudentListResponse(
        students=await service.list_classroom_students(db, current_user, classroom_id)
    )
