from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from learnhub.database import get_db
from learnhub.auth.utils import get_current_user
from learnhub.users.models import User
from learnhub.flashcards.exceptions import (
    NotFoundOrUnauthorized,
    PersistenceError,
    SessionError,
    ValidationError,
)
from learnhub.flashcards.models import FlashcardSet
from learnhub.flashcards.report_service import ReportRequester, get_report_requester
from learnhub.flashcards.schemas import (
    DueCard,
    DueCardsRequest,
    DueCardsResponse,
    FlashcardCreate,
    FlashcardResponse,
    FlashcardSetCreate,
    FlashcardSetDetails,
    FlashcardSetResponse,
    ScheduleUpdateRequest,
    ScheduleUpdateResponse,
    SessionReportRequest,
    SessionReportResponse,
    StudySessionLogCreate,
    StudySessionLogResponse,
)
from learnhub.flashcards.session import SessionTracker
from learnhub.flashcards.study_service import StudyService

router = APIRouter(prefix="/flashcards", tags=["Flashcards"])


def _http_error(error: Exception) -> HTTPException:
    """Map a flashcard error to the HTTP status the client sees."""
    if isinstance(error, NotFoundOrUnauthorized):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, (ValidationError, SessionError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, PersistenceError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{error}. Please try again."
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unexpected error")


# ============== SET ENDPOINTS ==============

@router.post("/sets", response_model=FlashcardSetResponse, status_code=status.HTTP_201_CREATED)
async def create_set(
    flashcard_set: FlashcardSetCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a new flashcard set."""
    db_set = FlashcardSet(
        title=flashcard_set.title,
        description=flashcard_set.description,
        user_id=current_user.id
    )
    db.add(db_set)
    db.commit()
    db.refresh(db_set)
    return db_set


@router.get("/sets", response_model=List[FlashcardSetResponse])
async def get_sets(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get all flashcard sets for the current user."""
    return StudyService.list_sets(current_user.id, db)


@router.get("/sets/{set_id}", response_model=FlashcardSetDetails)
async def get_set_details(
    set_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a set with its cards and mastery statistics."""
    try:
        flashcard_set = StudyService.get_owned_set(set_id, current_user.id, db)
    except NotFoundOrUnauthorized as e:
        raise _http_error(e)

    mastery = StudyService.get_set_mastery(set_id, current_user.id, db)
    cards = sorted(flashcard_set.flashcards, key=lambda card: card.id)
    return {
        "id": flashcard_set.id,
        "title": flashcard_set.title,
        "description": flashcard_set.description,
        "user_id": flashcard_set.user_id,
        "created_at": flashcard_set.created_at,
        "card_count": len(cards),
        "flashcards": cards,
        **mastery
    }


@router.post("/sets/{set_id}/cards", response_model=FlashcardResponse, status_code=status.HTTP_201_CREATED)
async def add_card(
    set_id: int,
    card: FlashcardCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Add a card to a set. The new card is due immediately."""
    try:
        return StudyService.add_card(set_id, current_user.id, card.question, card.answer, db)
    except (NotFoundOrUnauthorized, PersistenceError) as e:
        raise _http_error(e)


# ============== STUDY ENDPOINTS ==============

@router.post("/study/due", response_model=DueCardsResponse)
async def get_due_cards_for_sets(
    request: DueCardsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Get the cards due now across several sets, shuffled.

    - **set_ids**: IDs of the sets to study; sets you do not own are ignored
    """
    try:
        due = StudyService.get_due_cards_for_sets(request.set_ids, current_user.id, db)
    except ValidationError as e:
        raise _http_error(e)

    return DueCardsResponse(
        success=True,
        due_cards=[DueCard(id=c.id, question=c.question, answer=c.answer, set_id=c.set_id) for c in due.cards],
        set_titles=due.set_titles
    )


@router.post("/study/review", response_model=ScheduleUpdateResponse)
async def update_card_schedule(
    review: ScheduleUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Submit a card review and reschedule the card.

    - **card_id**: ID of the reviewed card
    - **quality**: 0 = Again, 1 = Hard, 2 = Good, 3 = Easy
    """
    try:
        result = StudyService.update_card_schedule(review.card_id, current_user.id, review.quality, db)
    except (ValidationError, NotFoundOrUnauthorized, PersistenceError) as e:
        raise _http_error(e)
    return {"success": True, **result}


@router.post("/study/report", response_model=SessionReportResponse)
async def generate_session_report(
    request: SessionReportRequest,
    current_user: User = Depends(get_current_user),
    requester: ReportRequester = Depends(get_report_requester)
):
    """
    Generate a narrative report for a finished session.

    Failure here never affects the schedules already saved; it is reported
    with success=false.
    """
    tracker = SessionTracker()
    try:
        session = StudyService.session_from_performance(
            {},
            [entry.model_dump() for entry in request.performance],
            tracker,
            total_due=request.total_due
        )
        tracker.summarize(session)
    except (ValidationError, SessionError) as e:
        raise _http_error(e)

    result = await requester.generate_session_report(
        request.set_titles,
        session.events,
        request.user_grade_level or current_user.grade_level
    )
    return SessionReportResponse(success=result.success, report=result.report, error=result.error)


@router.post("/study/sessions", response_model=StudySessionLogResponse, status_code=status.HTTP_201_CREATED)
async def log_study_session(
    payload: StudySessionLogCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record the performance of a completed session for one set."""
    try:
        return StudyService.log_study_session(
            payload.set_id,
            current_user.id,
            payload.performance_counts.model_dump(),
            payload.cards_reviewed,
            db
        )
    except (NotFoundOrUnauthorized, PersistenceError) as e:
        raise _http_error(e)
