from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from learnhub.database import Base, utcnow


class FlashcardSet(Base):
    __tablename__ = "flashcard_sets"
    
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    owner = relationship("User", back_populates="flashcard_sets")
    flashcards = relationship("Flashcard", back_populates="flashcard_set", cascade="all, delete-orphan")


class Flashcard(Base):
    """
    A question/answer card together with its spaced repetition state.

    The scheduling columns are only written through SRSStateStore.
    """
    __tablename__ = "flashcards"
    __table_args__ = (
        CheckConstraint("ease_factor >= 1.3", name="ck_flashcards_ease_floor"),
        CheckConstraint("interval_days >= 0", name="ck_flashcards_interval_nonneg"),
        CheckConstraint("repetitions >= 0", name="ck_flashcards_repetitions_nonneg"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    set_id = Column(Integer, ForeignKey("flashcard_sets.id", ondelete="CASCADE"), nullable=False, index=True)

    # Spaced repetition fields
    ease_factor = Column(Float, default=2.5, nullable=True)
    interval_days = Column(Integer, default=0, nullable=True)  # 0 = never scheduled
    repetitions = Column(Integer, default=0, nullable=True)  # Consecutive non-lapsing reviews
    due_at = Column(DateTime(timezone=True), default=utcnow, nullable=True, index=True)
    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    owner = relationship("User", back_populates="flashcards")
    flashcard_set = relationship("FlashcardSet", back_populates="flashcards")


class StudySessionLog(Base):
    """Performance record of one completed study session for one set."""
    __tablename__ = "study_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    set_id = Column(Integer, ForeignKey("flashcard_sets.id", ondelete="CASCADE"), nullable=False, index=True)
    cards_reviewed = Column(Integer, nullable=False)
    performance_snapshot = Column(JSON, nullable=False)  # {"again": n, "hard": n, "good": n, "easy": n}
    mastery_at_session_end = Column(Integer, nullable=True)
    session_completed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
