from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import GameType


class GameSessionCreate(BaseModel):
    game_type: GameType
    score: int = Field(0, ge=0)
    total_questions: int = Field(0, ge=0)
    correct_answers: int = Field(0, ge=0)
    incorrect_answers: int = Field(0, ge=0)
    time_spent: int = Field(0, ge=0, description="Seconds")
    completed: bool = False
    session_data: Dict[str, Any] = Field(default_factory=dict)


class GameSessionCreated(BaseModel):
    success: bool = True
    message: str
    session_id: UUID


class GameSessionResponse(BaseModel):
    id: UUID
    user_id: UUID
    classroom_id: Optional[UUID] = None
    game_type: str
    score: int
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    time_spent: int
    completed: bool
    session_data: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True


class GameTypeStats(BaseModel):
    sessions: int = 0
    completed: int = 0
    best_score: int = 0
    average_score: float = 0.0


class ProgressStats(BaseModel):
    total_sessions: int
    games_completed: int
    total_score: int
    average_score: float
    by_game_type: Dict[str, GameTypeStats]


class ProgressResponse(BaseModel):
    success: bool = True
    progress: List[GameSessionResponse]
    stats: ProgressStats


class StudentProgressRow(BaseModel):
    student_id: UUID
    student_name: str
    total_sessions: int
    completed_sessions: int
    average_score: Optional[float] = None
    total_time_spent: int
    last_activity: Optional[datetime] = None
    sessions_by_game: Dict[str, int]


class ClassroomReportResponse(BaseModel):
    success: bool = True
    report: List[StudentProgressRow]


class TeacherDashboard(BaseModel):
    total_classrooms: int
    total_students: int
    recent_activity: int = Field(..., description="Game sessions by the teacher's students in the last 7 days")
    words_created: int


class TeacherDashboardResponse(BaseModel):
    success: bool = True
    dashboard: TeacherDashboard


class GameConfigResponse(BaseModel):
    id: UUID
    game_type: str
    words: List[Any]
    hints: Dict[str, Any] = Field(default_factory=dict)
    category: Optional[str] = None
    difficulty_level: int
    active: bool
    created_by: UUID
    creator_name: str
    created_at: datetime

    class Config:
        from_attributes = True


class GameConfigListResponse(BaseModel):
    success: bool = True
    configs: List[GameConfigResponse]
