from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr

from app.core.schemas import UserSummary


class EnrolledClassroom(BaseModel):
    id: UUID
    name: str
    grade_level: str
    section: str
    school_year: str
    teacher_name: str
    teacher_email: str
    enrollment_date: datetime


class EnrollmentStatusResponse(BaseModel):
    success: bool = True
    isEnrolled: bool
    classroom: Optional[EnrolledClassroom] = None


class StudentSearchRequest(BaseModel):
    email: EmailStr


class StudentSearchResponse(BaseModel):
    success: bool = True
    student: UserSummary
