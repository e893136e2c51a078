from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import NOW
from learnhub.flashcards.exceptions import CardNotFoundError, PersistenceError
from learnhub.flashcards.models import Flashcard
from learnhub.flashcards.scheduler import Quality, SRSState, advance
from learnhub.flashcards.store import SRSStateStore
from learnhub.flashcards.study_service import StudyService


def test_get_reads_initial_state(db, user, make_set, make_card):
    card = make_card(make_set(user))
    state = SRSStateStore(db).get(card.id, user.id)
    assert state == SRSState(ease_factor=2.5, interval_days=0, repetitions=0, due_at=NOW, last_reviewed_at=None)


def test_get_after_update_returns_written_state(db, user, make_set, make_card):
    card = make_card(make_set(user))
    store = SRSStateStore(db)
    new_state = advance(store.get(card.id, user.id), Quality.GOOD, NOW)

    store.update(card.id, user.id, new_state)

    assert store.get(card.id, user.id) == new_state


def test_null_columns_read_as_new_card(db, user, make_set, make_card):
    card = make_card(make_set(user))
    # Rows written before scheduling existed carry NULLs
    db.query(Flashcard).filter(Flashcard.id == card.id).update(
        {
            Flashcard.ease_factor: None,
            Flashcard.interval_days: None,
            Flashcard.repetitions: None,
            Flashcard.due_at: None,
        },
        synchronize_session=False
    )
    db.commit()

    state = SRSStateStore(db).get(card.id, user.id)
    assert state.ease_factor == 2.5
    assert state.interval_days == 0
    assert state.repetitions == 0
    assert state.due_at is not None


def test_other_users_card_looks_missing(db, user, other_user, make_set, make_card):
    card = make_card(make_set(other_user))
    store = SRSStateStore(db)

    with pytest.raises(CardNotFoundError):
        store.get(card.id, user.id)
    with pytest.raises(CardNotFoundError):
        store.get(999_999, user.id)


def test_update_refuses_cards_of_other_users(db, user, other_user, make_set, make_card):
    card = make_card(make_set(other_user))
    store = SRSStateStore(db)
    hijack = advance(SRSState.initial(NOW), Quality.EASY, NOW)

    with pytest.raises(CardNotFoundError):
        store.update(card.id, user.id, hijack)

    assert store.get(card.id, other_user.id).repetitions == 0


def test_failed_write_is_rolled_back(db, user, make_set, make_card, monkeypatch):
    card = make_card(make_set(user))
    store = SRSStateStore(db)
    before = store.get(card.id, user.id)

    def broken_commit():
        raise OperationalError("UPDATE flashcards", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(PersistenceError):
        store.update(card.id, user.id, advance(before, Quality.GOOD, NOW))
    monkeypatch.undo()

    assert store.get(card.id, user.id) == before


def test_failed_read_is_a_persistence_error(db, user, make_set, make_card, monkeypatch):
    card = make_card(make_set(user))

    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT flashcards", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "query", broken_query)
    with pytest.raises(PersistenceError):
        StudyService.update_card_schedule(card.id, user.id, 2, db, now=NOW)
    monkeypatch.undo()

    assert SRSStateStore(db).get(card.id, user.id).repetitions == 0


def test_review_action_reads_computes_and_persists(db, user, make_set, make_card):
    card = make_card(make_set(user), repetitions=2, interval_days=6, ease_factor=2.5)

    result = StudyService.update_card_schedule(card.id, user.id, 3, db, now=NOW)

    assert result == {
        "next_due_at": NOW + timedelta(days=20),
        "interval_days": 20,
        "ease_factor": 2.65,
        "repetitions": 3,
    }
    stored = SRSStateStore(db).get(card.id, user.id)
    assert stored.interval_days == 20
    assert stored.last_reviewed_at == NOW
