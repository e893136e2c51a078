import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from learnhub.database import utcnow
from learnhub.flashcards.exceptions import EmptySetSelectionError
from learnhub.flashcards.models import Flashcard, FlashcardSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueCardView:
    id: int
    question: str
    answer: str
    set_id: int


@dataclass
class DueCards:
    cards: List[DueCardView] = field(default_factory=list)
    set_titles: Dict[int, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.cards


def _unique(ids: Iterable[int]) -> List[int]:
    seen = set()
    result = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class DueSetSelector:
    """Collects the cards due right now across several of a user's sets."""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def due_cards(self, set_ids: List[int], user_id: int, now: Optional[datetime] = None) -> DueCards:
        """
        Get the union of due cards for the given sets.

        Sets the user does not own are skipped rather than failing the call.
        Cards come back shuffled; an empty list means nothing is due.

        Raises:
            EmptySetSelectionError: set_ids is empty
        """
        set_ids = _unique(set_ids or [])
        if not set_ids:
            raise EmptySetSelectionError()

        now = now or utcnow()

        owned_sets = self.db.query(FlashcardSet.id, FlashcardSet.title).filter(
            FlashcardSet.id.in_(set_ids),
            FlashcardSet.user_id == user_id
        ).all()
        set_titles = {set_id: title for set_id, title in owned_sets}

        skipped = len(set_ids) - len(set_titles)
        if skipped:
            logger.info(f"Skipping {skipped} set(s) not owned by user {user_id}")

        if not set_titles:
            return DueCards(cards=[], set_titles={})

        rows = self.db.query(Flashcard).filter(
            Flashcard.set_id.in_(list(set_titles)),
            Flashcard.user_id == user_id,
            or_(Flashcard.due_at.is_(None), Flashcard.due_at <= now)
        ).order_by(Flashcard.id.asc()).all()

        cards = [
            DueCardView(id=card.id, question=card.question, answer=card.answer, set_id=card.set_id)
            for card in rows
        ]
        self.rng.shuffle(cards)

        logger.info(f"{len(cards)} card(s) due across {len(set_titles)} set(s) for user {user_id}")
        return DueCards(cards=cards, set_titles=set_titles)
