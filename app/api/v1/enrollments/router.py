from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_student, require_teacher
from app.auth.schemas import CurrentUser
from app.core.schemas import MessageResponse, ReasonRequest
from app.db.session import get_db

from .schemas import EnrollmentStatusResponse, StudentSearchRequest, StudentSearchResponse
from . import service

router = APIRouter(prefix="/api/v1", tags=["enrollments"])


@router.post(
    "/student/enroll/{classroom_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def self_enroll(
    classroom_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_student),
) -> MessageResponse:
    return await service.self_enroll(db, current_user, classroom_id)


@router.get("/student/enrollment-status", response_model=EnrollmentStatusResponse)
async def enrollment_status(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_student),
) -> EnrollmentStatusResponse:
    return await service.get_enrollment_status(db, current_user)


@router.post("/students/{student_id}/transfer/{classroom_id}", response_model=MessageResponse)
async def transfer_student(
    student_id: UUID,
    classroom_id: UUID,
    payload: Optional[ReasonRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> MessageResponse:
    """Close the student's active enrollment as 'transferred' and open one in the given classroom."""
    reason = payload.reason if payload else None
    return await service.transfer_student(db, current_user, student_id, classroom_id, reason)


@router.delete("/students/{student_id}/unenroll", response_model=MessageResponse)
async def unenroll_student(
    student_id: UUID,
    payload: Optional[ReasonRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> MessageResponse:
    reason = payload.reason if payload else None
    return await service.unenroll_student(db, current_user, student_id, reason)


@router.post("/users/search-student", response_model=StudentSearchResponse)
async def search_student(
    payload: StudentSearchRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> StudentSearchResponse:
    return StudentSearchResponse(student=await service.search_student(db, current_user, payload.email))
