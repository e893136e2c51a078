import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnhub.config import get_settings
from learnhub.database import utcnow
from learnhub.flashcards.due_selector import DueCards, DueSetSelector
from learnhub.flashcards.exceptions import PersistenceError, SetNotFoundError
from learnhub.flashcards.models import Flashcard, FlashcardSet, StudySessionLog
from learnhub.flashcards.report_service import ReportRequester, ReportResult
from learnhub.flashcards.scheduler import (
    SchedulerParameters,
    SRSState,
    advance,
    is_mastered,
    mastery_percentage,
    validate_quality,
)
from learnhub.flashcards.session import SessionSummary, SessionTracker, StudySession
from learnhub.flashcards.store import SRSStateStore, state_from_card

logger = logging.getLogger(__name__)

NO_SUMMARY_WARNING = "Session complete, no summary available."


def scheduler_parameters() -> SchedulerParameters:
    return SchedulerParameters.from_settings(get_settings())


@dataclass
class SessionOutcome:
    summary: SessionSummary
    report: Optional[str] = None
    warning: Optional[str] = None


class StudyService:
    """Service for spaced repetition study sessions."""

    @staticmethod
    def get_due_cards_for_sets(
        set_ids: List[int],
        user_id: int,
        db: Session,
        rng: Optional[random.Random] = None,
        now: Optional[datetime] = None
    ) -> DueCards:
        return DueSetSelector(db, rng=rng).due_cards(set_ids, user_id, now=now)

    @staticmethod
    def start_session(
        set_ids: List[int],
        user_id: int,
        db: Session,
        tracker: SessionTracker,
        rng: Optional[random.Random] = None,
        now: Optional[datetime] = None
    ) -> tuple:
        """
        Run the due-card query and open a session over its result.

        Returns:
            tuple of (due_cards, session)
        """
        due = StudyService.get_due_cards_for_sets(set_ids, user_id, db, rng=rng, now=now)
        return due, tracker.start(due)

    @staticmethod
    def update_card_schedule(
        card_id: int,
        user_id: int,
        quality: int,
        db: Session,
        now: Optional[datetime] = None,
        session: Optional[StudySession] = None,
        tracker: Optional[SessionTracker] = None
    ) -> Dict:
        """
        Rate one card: read its state, compute the next one, persist it.

        The quality is validated before anything is read. When a session is
        given, the review is recorded only after the new state is committed.

        Returns:
            Updated schedule of the card
        """
        quality = validate_quality(quality)
        params = scheduler_parameters()
        store = SRSStateStore(db, params)
        now = now or utcnow()

        card = store.fetch_card(card_id, user_id)
        question = card.question
        current = state_from_card(card, params)
        new_state: SRSState = advance(current, quality, now, params)
        store.update(card_id, user_id, new_state)

        logger.info(
            f"Card {card_id} rated {quality.name}: interval {current.interval_days} -> {new_state.interval_days} days, "
            f"ease {new_state.ease_factor}"
        )

        if session is not None:
            (tracker or SessionTracker()).record(session, card_id, question, quality)

        return {
            "next_due_at": new_state.due_at,
            "interval_days": new_state.interval_days,
            "ease_factor": new_state.ease_factor,
            "repetitions": new_state.repetitions
        }

    @staticmethod
    async def finish_session(
        session: StudySession,
        tracker: SessionTracker,
        requester: ReportRequester,
        user_grade_level: Optional[str] = None
    ) -> SessionOutcome:
        """
        Close a completed session and ask for its narrative report.

        Every schedule update is already committed, so a failed report only
        costs the summary text.
        """
        summary = tracker.summarize(session)
        result: ReportResult = await requester.generate_session_report(
            summary.titles_label, summary.events, user_grade_level
        )
        if not result.success:
            logger.warning(f"Study report unavailable: {result.error}")
            return SessionOutcome(summary=summary, warning=NO_SUMMARY_WARNING)
        return SessionOutcome(summary=summary, report=result.report)

    @staticmethod
    def get_set_mastery(set_id: int, user_id: int, db: Session) -> Dict[str, int]:
        """
        Get mastery statistics for a set.

        Returns:
            {
                "mastered_count": cards at a long interval,
                "total_cards": cards in the set,
                "mastery_percentage": rounded percentage of mastered cards
            }
        """
        rows = db.query(Flashcard.interval_days, Flashcard.repetitions).filter(
            Flashcard.set_id == set_id,
            Flashcard.user_id == user_id
        ).all()
        mastered = sum(1 for interval_days, repetitions in rows if is_mastered(interval_days, repetitions))
        return {
            "mastered_count": mastered,
            "total_cards": len(rows),
            "mastery_percentage": mastery_percentage(mastered, len(rows))
        }

    @staticmethod
    def get_owned_set(set_id: int, user_id: int, db: Session) -> FlashcardSet:
        flashcard_set = db.query(FlashcardSet).filter(
            FlashcardSet.id == set_id,
            FlashcardSet.user_id == user_id
        ).first()
        if not flashcard_set:
            raise SetNotFoundError(set_id)
        return flashcard_set

    @staticmethod
    def add_card(set_id: int, user_id: int, question: str, answer: str, db: Session) -> Flashcard:
        """Add a card to an owned set with a fresh, immediately due schedule."""
        StudyService.get_owned_set(set_id, user_id, db)
        initial = SRSState.initial(utcnow(), scheduler_parameters())
        card = Flashcard(
            set_id=set_id,
            user_id=user_id,
            question=question.strip(),
            answer=answer.strip(),
            ease_factor=initial.ease_factor,
            interval_days=initial.interval_days,
            repetitions=initial.repetitions,
            due_at=initial.due_at,
            last_reviewed_at=None
        )
        db.add(card)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to add card to set {set_id}: {e}")
            raise PersistenceError("Could not add card") from e
        db.refresh(card)
        return card

    @staticmethod
    def list_sets(user_id: int, db: Session) -> List[Dict]:
        # Card count subquery to avoid N+1
        card_count_subq = (
            db.query(Flashcard.set_id, func.count(Flashcard.id).label("card_count"))
            .group_by(Flashcard.set_id)
            .subquery()
        )
        rows = (
            db.query(FlashcardSet, func.coalesce(card_count_subq.c.card_count, 0).label("card_count"))
            .outerjoin(card_count_subq, FlashcardSet.id == card_count_subq.c.set_id)
            .filter(FlashcardSet.user_id == user_id)
            .order_by(FlashcardSet.created_at.desc(), FlashcardSet.id.desc())
            .all()
        )
        return [
            {
                "id": flashcard_set.id,
                "title": flashcard_set.title,
                "description": flashcard_set.description,
                "user_id": flashcard_set.user_id,
                "created_at": flashcard_set.created_at,
                "card_count": card_count
            }
            for flashcard_set, card_count in rows
        ]

    @staticmethod
    def log_study_session(
        set_id: int,
        user_id: int,
        summary_counts: Dict[str, int],
        cards_reviewed: int,
        db: Session
    ) -> StudySessionLog:
        """Persist the performance record of a finished session for one set."""
        StudyService.get_owned_set(set_id, user_id, db)
        mastery = StudyService.get_set_mastery(set_id, user_id, db)
        entry = StudySessionLog(
            user_id=user_id,
            set_id=set_id,
            cards_reviewed=cards_reviewed,
            performance_snapshot=dict(summary_counts),
            mastery_at_session_end=mastery["mastery_percentage"],
            session_completed_at=utcnow()
        )
        db.add(entry)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error logging study session for set {set_id}: {e}")
            raise PersistenceError("Could not log study session") from e
        db.refresh(entry)
        return entry

    @staticmethod
    def session_from_performance(
        set_titles: Dict[int, str],
        performance: List[Dict],
        tracker: SessionTracker,
        total_due: Optional[int] = None
    ) -> StudySession:
        """
        Rebuild a session from the events a client collected.

        The HTTP surface is stateless, so the client replays its review list
        at the end of the session.
        """
        session = StudySession(
            set_titles=dict(set_titles),
            total_due=total_due if total_due is not None else len(performance)
        )
        for entry in performance:
            tracker.record(session, entry["card_id"], entry["question"], entry["quality"])
        return session


