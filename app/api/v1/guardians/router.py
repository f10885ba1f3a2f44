from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_guardian, require_teacher
from app.auth.schemas import CurrentUser
from app.core.schemas import MessageResponse
from app.db.session import get_db

from .schemas import (
    GuardianAttachRequest,
    GuardianChildListResponse,
    GuardianLinkCreated,
    GuardianLinkUpdate,
    GuardianSearchRequest,
    GuardianSearchResponse,
    GuardianSelfLinkRequest,
    StudentGuardianListResponse,
)
from . import service

router = APIRouter(prefix="/api/v1", tags=["guardians"])


@router.post("/users/search-parent", response_model=GuardianSearchResponse)
async def search_guardian(
    payload: GuardianSearchRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> GuardianSearchResponse:
    """Find guardian accounts by exact email or partial name."""
    guardians = await service.search_guardians(db, email=payload.email, name=payload.name)
    return GuardianSearchResponse(parents=guardians)


@router.get("/students/{student_id}/parents", response_model=StudentGuardianListResponse)
async def list_student_guardians(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> StudentGuardianListResponse:
    return StudentGuardianListResponse(
        parents=await service.list_student_guardians(db, current_user, student_id)
    )


@router.post(
    "/students/{student_id}/parents",
    response_model=GuardianLinkCreated,
    status_code=status.HTTP_201_CREATED,
)
async def attach_guardian(
    student_id: UUID,
    payload: GuardianAttachRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> GuardianLinkCreated:
    """Link an existing guardian to a student. The first guardian linked becomes primary."""
    return await service.attach_guardian(db, current_user, student_id, payload)


@router.put("/students/{student_id}/parents/{parent_id}", response_model=MessageResponse)
async def update_guardian_link(
    student_id: UUID,
    parent_id: UUID,
    payload: GuardianLinkUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> MessageResponse:
    return await service.update_guardian_link(db, current_user, student_id, parent_id, payload)


@router.delete("/students/{student_id}/parents/{parent_id}", response_model=MessageResponse)
async def unlink_guardian(
    student_id: UUID,
    parent_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> MessageResponse:
    return await service.unlink_guardian(db, current_user, student_id, parent_id)


@router.post(
    "/parent/link-child",
    response_model=GuardianLinkCreated,
    status_code=status.HTTP_201_CREATED,
)
async def link_child(
    payload: GuardianSelfLinkRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_guardian),
) -> GuardianLinkCreated:
    return await service.self_link_child(db, current_user, payload)


@router.get("/parent/children", response_model=GuardianChildListResponse)
async def my_children(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_guardian),
) -> GuardianChildListResponse:
    return GuardianChildListResponse(children=await service.list_my_children(db, current_user))
