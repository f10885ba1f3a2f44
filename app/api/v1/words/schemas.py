from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WordCreate(BaseModel):
    word: str = Field(..., max_length=100)
    hint: str = Field(..., max_length=500)
    category: str = Field(..., max_length=100)
    difficulty: int = Field(..., description="1 easy, 2 medium, 3 hard")
    is_active: bool = True


class ScopedWordCreate(WordCreate):
    """Word limited to one of the teacher's classrooms, or shared with everyone."""

    classroom_id: Optional[UUID] = None
    is_global: bool = False


class WordUpdate(BaseModel):
    word: Optional[str] = Field(None, max_length=100)
    hint: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    difficulty: Optional[int] = None
    is_active: Optional[bool] = None


class WordResponse(BaseModel):
    id: UUID
    word: str
    hint: str
    category: str
    difficulty: int
    is_active: bool
    created_by: Optional[UUID] = None
    creator_name: Optional[str] = None
    classroom_id: Optional[UUID] = None
    is_global: bool
    source_type: Optional[str] = Field(None, description="own | global | classroom, relative to the caller")
    created_at: datetime
    updated_at: datetime


class WordResult(BaseModel):
    success: bool = True
    message: str
    word: WordResponse


class WordListResponse(BaseModel):
    success: bool = True
    words: List[WordResponse]


class GameWord(BaseModel):
    word: str
    hint: str
    category: str


class GameWordListResponse(BaseModel):
    success: bool = True
    words: List[GameWord]


class WordStats(BaseModel):
    total: int
    active: int
    inactive: int
    byDifficulty: Dict[int, int]
    byCategory: Dict[str, int]


class WordStatsResponse(BaseModel):
    success: bool = True
    stats: WordStats
