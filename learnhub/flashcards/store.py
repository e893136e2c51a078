import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnhub.database import as_naive_utc, utcnow
from learnhub.flashcards.exceptions import CardNotFoundError, PersistenceError
from learnhub.flashcards.models import Flashcard
from learnhub.flashcards.scheduler import DEFAULT_PARAMETERS, SchedulerParameters, SRSState

logger = logging.getLogger(__name__)


def state_from_card(card: Flashcard, params: SchedulerParameters = DEFAULT_PARAMETERS) -> SRSState:
    """
    Build the SRSState held by a card row.

    Rows created before scheduling existed may carry NULLs; those read as a
    brand new card that is due now.
    """
    return SRSState(
        ease_factor=card.ease_factor if card.ease_factor is not None else params.initial_ease,
        interval_days=card.interval_days if card.interval_days is not None else 0,
        repetitions=card.repetitions if card.repetitions is not None else 0,
        due_at=as_naive_utc(card.due_at) if card.due_at is not None else utcnow(),
        last_reviewed_at=as_naive_utc(card.last_reviewed_at),
    )


class SRSStateStore:
    """
    Reads and writes the scheduling fields of flashcards owned by a user.

    A card owned by someone else is reported exactly like a missing card.
    """

    def __init__(self, db: Session, params: SchedulerParameters = DEFAULT_PARAMETERS):
        self.db = db
        self.params = params

    def fetch_card(self, card_id: int, user_id: int) -> Flashcard:
        try:
            card = self.db.query(Flashcard).filter(
                Flashcard.id == card_id,
                Flashcard.user_id == user_id
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to read schedule for card {card_id}: {e}")
            raise PersistenceError(f"Could not read card {card_id}") from e
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    def get(self, card_id: int, user_id: int) -> SRSState:
        return state_from_card(self.fetch_card(card_id, user_id), self.params)

    def update(self, card_id: int, user_id: int, new_state: SRSState) -> None:
        """
        Write the full state in one UPDATE statement and commit it.

        Raises:
            CardNotFoundError: no card with this id is owned by user_id
            PersistenceError: the write failed; the transaction was rolled back
        """
        try:
            updated = self.db.query(Flashcard).filter(
                Flashcard.id == card_id,
                Flashcard.user_id == user_id
            ).update(
                {
                    Flashcard.ease_factor: new_state.ease_factor,
                    Flashcard.interval_days: new_state.interval_days,
                    Flashcard.repetitions: new_state.repetitions,
                    Flashcard.due_at: new_state.due_at,
                    Flashcard.last_reviewed_at: new_state.last_reviewed_at,
                },
                synchronize_session=False
            )
            if updated == 0:
                self.db.rollback()
                raise CardNotFoundError(card_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to persist schedule for card {card_id}: {e}")
            raise PersistenceError(f"Could not save schedule for card {card_id}") from e

        # Drop any cached copy so the next read sees the committed row
        self.db.expire_all()
