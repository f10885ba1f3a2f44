from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.core.enums import RelationshipType
from app.core.schemas import UserSummary


class GuardianSearchRequest(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def require_email_or_name(self) -> "GuardianSearchRequest":
        if not self.email and not (self.name and self.name.strip()):
            raise ValueError("email or name is required")
        return self


class GuardianSearchResponse(BaseModel):
    success: bool = True
    parents: List[UserSummary]


class GuardianAttachRequest(BaseModel):
    """Teacher attaches an existing guardian account. is_primary is derived, never accepted."""

    guardian_id: UUID
    relationship_type: RelationshipType = RelationshipType.REPRESENTANTE
    phone: Optional[str] = Field(None, max_length=50)
    can_view_progress: bool = True
    can_receive_notifications: bool = True
    emergency_contact: bool = False


class GuardianSelfLinkRequest(BaseModel):
    student_email: EmailStr
    relationship_type: RelationshipType = RelationshipType.REPRESENTANTE
    phone: Optional[str] = Field(None, max_length=50)


class GuardianLinkUpdate(BaseModel):
    """Partial update: omitted or null fields keep their stored value."""

    relationship_type: Optional[RelationshipType] = None
    is_primary: Optional[bool] = None
    phone: Optional[str] = Field(None, max_length=50)
    can_view_progress: Optional[bool] = None
    can_receive_notifications: Optional[bool] = None
    emergency_contact: Optional[bool] = None


class StudentBrief(BaseModel):
    id: UUID
    name: str
    email: str


class GuardianLinkCreated(BaseModel):
    success: bool = True
    message: str
    student: StudentBrief
    is_primary: bool


class StudentGuardian(BaseModel):
    """A guardian as seen from the student's side of the link."""

    id: UUID
    name: str
    email: str
    relationship_type: str
    is_primary: bool
    phone: Optional[str] = None
    can_view_progress: bool
    can_receive_notifications: bool
    emergency_contact: bool
    relationship_date: datetime


class StudentGuardianListResponse(BaseModel):
    success: bool = True
    parents: List[StudentGuardian]


class GuardianChild(BaseModel):
    id: UUID
    name: str
    email: str
    relationship_type: str
    is_primary: bool
    can_view_progress: bool
    classroom_id: Optional[UUID] = None
    classroom_name: Optional[str] = None
    teacher_name: Optional[str] = None


class GuardianChildListResponse(BaseModel):
    success: bool = True
    children: List[GuardianChild]
