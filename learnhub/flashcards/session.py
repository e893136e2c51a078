from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from learnhub.database import utcnow
from learnhub.flashcards.due_selector import DueCards
from learnhub.flashcards.exceptions import SessionAlreadyCompleteError, SessionIncompleteError
from learnhub.flashcards.scheduler import Quality, validate_quality


@dataclass(frozen=True)
class ReviewEvent:
    card_id: int
    question: str
    quality: Quality


@dataclass
class StudySession:
    """One pass over the cards returned by a due-card query. Lives only in memory."""
    set_titles: Dict[int, str]
    total_due: int
    events: List[ReviewEvent] = field(default_factory=list)
    started_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class SessionSummary:
    events: List[ReviewEvent]
    set_titles: Dict[int, str]
    performance_counts: Dict[str, int]

    @property
    def cards_reviewed(self) -> int:
        return len(self.events)

    @property
    def titles_label(self) -> str:
        return ", ".join(self.set_titles.values())


def performance_counts(events: List[ReviewEvent]) -> Dict[str, int]:
    counts = {quality.name.lower(): 0 for quality in Quality}
    for event in events:
        counts[event.quality.name.lower()] += 1
    return counts


class SessionTracker:
    """
    Bookkeeping for a study session.

    Recording an event never schedules anything: each card has already been
    rescheduled and committed by the time it is recorded here.
    """

    def start(self, due: DueCards) -> StudySession:
        return StudySession(set_titles=dict(due.set_titles), total_due=len(due.cards))

    def record(self, session: StudySession, card_id: int, question_text: str, quality: int) -> ReviewEvent:
        quality = validate_quality(quality)
        if self.is_complete(session):
            raise SessionAlreadyCompleteError(session.total_due)
        event = ReviewEvent(card_id=card_id, question=question_text, quality=quality)
        session.events.append(event)
        return event

    def is_complete(self, session: StudySession, total_due_count: Optional[int] = None) -> bool:
        if total_due_count is None:
            total_due_count = session.total_due
        return len(session.events) == total_due_count

    def summarize(self, session: StudySession) -> SessionSummary:
        if not self.is_complete(session):
            raise SessionIncompleteError(len(session.events), session.total_due)
        return SessionSummary(
            events=list(session.events),
            set_titles=dict(session.set_titles),
            performance_counts=performance_counts(session.events),
        )
