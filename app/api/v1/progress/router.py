from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_teacher
from app.auth.schemas import CurrentUser
from app.core.enums import GameType
from app.db.session import get_db

from .schemas import (
    ClassroomReportResponse,
    GameConfigListResponse,
    GameSessionCreate,
    GameSessionCreated,
    ProgressResponse,
    TeacherDashboardResponse,
)
from . import service

router = APIRouter(prefix="/api/v1", tags=["progress"])


@router.post(
    "/games/sessions",
    response_model=GameSessionCreated,
    status_code=status.HTTP_201_CREATED,
)
async def save_game_session(
    payload: GameSessionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> GameSessionCreated:
    return await service.save_game_session(db, current_user, payload)


@router.get("/games/config/{game_type}", response_model=GameConfigListResponse)
async def game_configs(
    game_type: GameType,
    db: AsyncSession = Depends(get_db),
) -> GameConfigListResponse:
    """Public: the game client loads these before a round."""
    return GameConfigListResponse(configs=await service.list_game_configs(db, game_type))


@router.get("/games/progress", response_model=ProgressResponse)
async def my_progress(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgressResponse:
    sessions, stats = await service.get_progress(db, current_user, current_user.id)
    return ProgressResponse(progress=sessions, stats=stats)


@router.get("/games/progress/{user_id}", response_model=ProgressResponse)
async def user_progress(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgressResponse:
    """Teachers see their enrolled students; guardians see linked children with can_view_progress."""
    sessions, stats = await service.get_progress(db, current_user, user_id)
    return ProgressResponse(progress=sessions, stats=stats)


@router.get("/reports/classroom/{classroom_id}/progress", response_model=ClassroomReportResponse)
async def classroom_report(
    classroom_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> ClassroomReportResponse:
    return ClassroomReportResponse(
        report=await service.classroom_progress_report(db, current_user, classroom_id)
    )


@router.get("/dashboard/teacher", response_model=TeacherDashboardResponse)
async def teacher_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_teacher),
) -> TeacherDashboardResponse:
    return TeacherDashboardResponse(dashboard=await service.teacher_dashboard(db, current_user))
