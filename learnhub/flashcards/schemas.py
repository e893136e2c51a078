from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from datetime import datetime
from typing import Optional, List, Dict


# Set Schemas
class FlashcardSetBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class FlashcardSetCreate(FlashcardSetBase):
    pass


class FlashcardSetResponse(FlashcardSetBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    created_at: Optional[datetime] = None
    card_count: int = 0


# Card Schemas
class FlashcardCreate(BaseModel):
    question: str
    answer: str

    @field_validator("question", "answer")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class FlashcardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    set_id: int
    question: str
    answer: str
    ease_factor: Optional[float] = None
    interval_days: Optional[int] = None
    repetitions: Optional[int] = None
    due_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None


class FlashcardSetDetails(FlashcardSetResponse):
    flashcards: List[FlashcardResponse] = []
    mastered_count: int = 0
    total_cards: int = 0
    mastery_percentage: int = 0


# Study Schemas
class DueCardsRequest(BaseModel):
    """Request the due cards of one or more sets."""
    set_ids: List[int]


class DueCard(BaseModel):
    id: int
    question: str
    answer: str
    set_id: int


class DueCardsResponse(BaseModel):
    success: bool = True
    due_cards: List[DueCard] = []
    set_titles: Dict[int, str] = {}


class ScheduleUpdateRequest(BaseModel):
    """Rate a card. Quality: 0 = Again, 1 = Hard, 2 = Good, 3 = Easy."""
    card_id: int
    quality: StrictInt


class ScheduleUpdateResponse(BaseModel):
    success: bool = True
    next_due_at: datetime
    interval_days: int
    ease_factor: float
    repetitions: int


class PerformanceEntry(BaseModel):
    card_id: int
    question: str
    quality: StrictInt


class SessionReportRequest(BaseModel):
    set_titles: str
    performance: List[PerformanceEntry]
    user_grade_level: Optional[str] = None
    total_due: Optional[int] = None  # Due count of the initiating query; defaults to len(performance)


class SessionReportResponse(BaseModel):
    success: bool
    report: Optional[str] = None
    error: Optional[str] = None


class PerformanceCounts(BaseModel):
    again: int = 0
    hard: int = 0
    good: int = 0
    easy: int = 0


class StudySessionLogCreate(BaseModel):
    set_id: int
    cards_reviewed: int = Field(..., ge=0)
    performance_counts: PerformanceCounts


class StudySessionLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    set_id: int
    cards_reviewed: int
    performance_snapshot: Dict[str, int]
    mastery_at_session_end: Optional[int] = None
    session_completed_at: datetime
