import logging
from datetime import datetime, timedelta
from typing import List
from uuid import UUID

from sqlalchemy import Float, case, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.schemas import CurrentUser
from app.core.enums import EnrollmentStatus, GameType
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.models import Classroom, Enrollment, GameConfig, GameSession, TitanicWord
from app.db.session import unit_of_work

from app.api.v1.enrollments import service as enrollment_service
from app.api.v1.guardians import service as guardian_service

from .schemas import (
    GameConfigResponse,
    GameSessionCreate,
    GameSessionCreated,
    GameSessionResponse,
    GameTypeStats,
    ProgressStats,
    StudentProgressRow,
    TeacherDashboard,
)

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_DAYS = 7


def _average(scores: List[int]) -> float:
    return round(sum(scores) / len(scores), 1) if scores else 0.0


def build_progress_stats(sessions: List[GameSession]) -> ProgressStats:
    scores = [s.score for s in sessions]
    by_game_type = {}
    for game_type in GameType:
        played = [s for s in sessions if s.game_type == game_type.value]
        by_game_type[game_type.value] = GameTypeStats(
            sessions=len(played),
            completed=sum(1 for s in played if s.completed),
            best_score=max((s.score for s in played), default=0),
            average_score=_average([s.score for s in played]),
        )
    return ProgressStats(
        total_sessions=len(sessions),
        games_completed=sum(1 for s in sessions if s.completed),
        total_score=sum(scores),
        average_score=_average(scores),
        by_game_type=by_game_type,
    )


async def save_game_session(
    db: AsyncSession,
    current_user: CurrentUser,
    payload: GameSessionCreate,
) -> GameSessionCreated:
    # Tagged with the player's own active classroom; a classroom sent by the client is ignored
    enrollment = await enrollment_service.get_active_enrollment(db, current_user.id)
    classroom_id = enrollment.classroom_id if enrollment else None

    obj = GameSession(
        user_id=current_user.id,
        classroom_id=classroom_id,
        game_type=payload.game_type.value,
        score=payload.score,
        total_questions=payload.total_questions,
        correct_answers=payload.correct_answers,
        incorrect_answers=payload.incorrect_answers,
        time_spent=payload.time_spent,
        completed=payload.completed,
        session_data=payload.session_data,
    )
    async with unit_of_work(db):
        db.add(obj)
    logger.info("User %s saved %s session (score=%s)", current_user.id, obj.game_type, obj.score)
    return GameSessionCreated(message="Progress saved successfully", session_id=obj.id)


async def _can_view_progress(db: AsyncSession, viewer: CurrentUser, user_id: UUID) -> bool:
    if viewer.id == user_id:
        return True
    if viewer.is_teacher:
        return await enrollment_service.is_student_of_teacher(db, viewer.id, user_id)
    if viewer.is_guardian:
        return await guardian_service.guardian_can_view_progress(db, viewer.id, user_id)
    return False


async def get_progress(db: AsyncSession, viewer: CurrentUser, user_id: UUID):
    """Sessions (newest first) and summary stats for one player."""
    if not await _can_view_progress(db, viewer, user_id):
        raise ForbiddenError("You do not have permission to view this progress")
    result = await db.execute(
        select(GameSession)
        .where(GameSession.user_id == user_id)
        .order_by(GameSession.created_at.desc())
    )
    sessions = list(result.scalars().all())
    return [GameSessionResponse.model_validate(s) for s in sessions], build_progress_stats(sessions)


async def classroom_progress_report(
    db: AsyncSession,
    teacher: CurrentUser,
    classroom_id: UUID,
) -> List[StudentProgressRow]:
    classroom = await db.get(Classroom, classroom_id)
    if not classroom:
        raise NotFoundError("Classroom not found")
    if classroom.teacher_id != teacher.id:
        raise ForbiddenError("You do not have permission to view this report")

    per_game = [
        func.count(case((GameSession.game_type == g.value, GameSession.id))).label(g.value)
        for g in GameType
    ]
    average_score = func.avg(cast(GameSession.score, Float)).label("average_score")
    stmt = (
        select(
            User.id.label("student_id"),
            User.name.label("student_name"),
            func.count(GameSession.id).label("total_sessions"),
            func.count(case((GameSession.completed.is_(True), GameSession.id))).label("completed_sessions"),
            average_score,
            func.coalesce(func.sum(GameSession.time_spent), 0).label("total_time_spent"),
            func.max(GameSession.created_at).label("last_activity"),
            *per_game,
        )
        .select_from(Enrollment)
        .join(User, User.id == Enrollment.student_id)
        .outerjoin(GameSession, GameSession.user_id == User.id)
        .where(Enrollment.classroom_id == classroom_id, Enrollment.status == EnrollmentStatus.ACTIVE.value)
        .group_by(User.id, User.name)
    )
    rows = (await db.execute(stmt)).all()
    report = [
        StudentProgressRow(
            student_id=row.student_id,
            student_name=row.student_name,
            total_sessions=row.total_sessions,
            completed_sessions=row.completed_sessions,
            average_score=round(float(row.average_score), 1) if row.average_score is not None else None,
            total_time_spent=row.total_time_spent,
            last_activity=row.last_activity,
            sessions_by_game={g.value: getattr(row, g.value) for g in GameType},
        )
        for row in rows
    ]
    # Best average first; students who never played go last
    report.sort(key=lambda r: (r.average_score is None, -(r.average_score or 0), r.student_name))
    return report


async def teacher_dashboard(db: AsyncSession, teacher: CurrentUser) -> TeacherDashboard:
    total_classrooms = (
        await db.execute(
            select(func.count(Classroom.id)).where(
                Classroom.teacher_id == teacher.id, Classroom.active.is_(True)
            )
        )
    ).scalar_one()
    total_students = await enrollment_service.count_active_students_for_teacher(db, teacher.id)

    since = datetime.utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
    recent_activity = (
        await db.execute(
            select(func.count(GameSession.id))
            .join(Enrollment, Enrollment.student_id == GameSession.user_id)
            .join(Classroom, Classroom.id == Enrollment.classroom_id)
            .where(
                Classroom.teacher_id == teacher.id,
                Enrollment.status == EnrollmentStatus.ACTIVE.value,
                GameSession.created_at >= since,
            )
        )
    ).scalar_one()
    words_created = (
        await db.execute(select(func.count(TitanicWord.id)).where(TitanicWord.created_by == teacher.id))
    ).scalar_one()
    return TeacherDashboard(
        total_classrooms=total_classrooms,
        total_students=total_students,
        recent_activity=recent_activity,
        words_created=words_created,
    )


async def list_game_configs(db: AsyncSession, game_type: GameType) -> List[GameConfigResponse]:
    """Active configurations for a game, easiest first and newest first within a level."""
    result = await db.execute(
        select(GameConfig, User.name.label("creator_name"))
        .join(User, User.id == GameConfig.created_by)
        .where(GameConfig.game_type == game_type.value, GameConfig.active.is_(True))
        .order_by(GameConfig.difficulty_level, GameConfig.created_at.desc())
    )
    return [
        GameConfigResponse(
            id=config.id,
            game_type=config.game_type,
            words=config.words or [],
            hints=config.hints or {},
            category=config.category,
            difficulty_level=config.difficulty_level,
            active=config.active,
            created_by=config.created_by,
            creator_name=creator_name,
            created_at=config.created_at,
        )
        for config, creator_name in result.all()
    ]
