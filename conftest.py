import os

# Must be set before learnhub.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = ""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from learnhub.database import Base, SessionLocal, engine, get_db
from learnhub.auth.utils import get_current_user
from learnhub.flashcards.models import Flashcard, FlashcardSet
from learnhub.flashcards.report_service import get_report_requester
from learnhub.users.models import User

NOW = datetime(2025, 3, 10, 12, 0, 0)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _create_user(db, email):
    user = User(email=email, hashed_password="not-a-real-hash")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return _create_user(db, "student@example.com")


@pytest.fixture
def other_user(db):
    return _create_user(db, "someone-else@example.com")


@pytest.fixture
def make_set(db):
    def _make_set(owner, title="Biology"):
        flashcard_set = FlashcardSet(title=title, user_id=owner.id)
        db.add(flashcard_set)
        db.commit()
        db.refresh(flashcard_set)
        return flashcard_set
    return _make_set


@pytest.fixture
def make_card(db):
    def _make_card(flashcard_set, question="Q?", answer="A", due_at=NOW, **srs):
        card = Flashcard(
            set_id=flashcard_set.id,
            user_id=flashcard_set.user_id,
            question=question,
            answer=answer,
            ease_factor=srs.get("ease_factor", 2.5),
            interval_days=srs.get("interval_days", 0),
            repetitions=srs.get("repetitions", 0),
            due_at=due_at,
            last_reviewed_at=srs.get("last_reviewed_at"),
        )
        db.add(card)
        db.commit()
        db.refresh(card)
        return card
    return _make_card


@pytest.fixture
def client(db, user):
    from learnhub.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def override_requester():
    from learnhub.main import app

    def _override(requester):
        app.dependency_overrides[get_report_requester] = lambda: requester
    return _override
