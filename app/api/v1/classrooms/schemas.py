from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClassroomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    grade_level: str = Field(..., min_length=1, max_length=50)
    section: str = Field(..., min_length=1, max_length=50)
    school_year: str = Field(..., min_length=1, max_length=20, description="e.g. 2025-2026")
    max_students: Optional[int] = Field(None, ge=1, description="Seats in the classroom (default 50)")


class ClassroomCreated(BaseModel):
    success: bool = True
    message: str
    classroom_id: UUID


class ClassroomResponse(BaseModel):
    id: UUID
    name: str
    teacher_id: UUID
    grade_level: str
    section: str
    school_year: str
    max_students: int
    active: bool
    student_count: int = Field(0, description="Live count of active enrollments")
    created_at: datetime

    class Config:
        from_attributes = True


class ClassroomListResponse(BaseModel):
    success: bool = True
    classrooms: List[ClassroomResponse]


class AvailableClassroom(BaseModel):
    """Catalog entry shown to a student choosing a classroom to join."""

    id: UUID
    name: str
    grade_level: str
    section: str
    school_year: str
    max_students: int
    teacher_name: str
    current_students: int


class AvailableClassroomListResponse(BaseModel):
    success: bool = True
    classrooms: List[AvailableClassroom]


class EnrollStudentRequest(BaseModel):
    student_id: UUID


class ClassroomStudent(BaseModel):
    id: UUID
    name: str
    email: str
    enrollment_date: datetime
    status: str
    total_games_played: int = 0
    average_score: Optional[float] = None
    last_activity: Optional[datetime] = None


class ClassroomStudentListResponse(BaseModel):
    success: bool = True
    students: List[ClassroomStudent]
