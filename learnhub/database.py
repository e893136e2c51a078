from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from learnhub.config import get_settings

settings = get_settings()


def postgres_connect_args() -> dict:
    return {
        "connect_timeout": "10",  # Connection timeout for psycopg3 (string value in seconds)
        # Naive timestamps are stored as UTC; the session time zone must agree
        "options": "-c timezone=UTC",
    }


def _build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # Use psycopg3 driver - convert postgresql:// to postgresql+psycopg://
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+psycopg://", 1)

    # Add connection pool settings with timeouts to prevent hanging
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Check connection health before using
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,  # Timeout when getting connection from pool (seconds)
        connect_args=postgres_connect_args()
    )


engine = _build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the convention for every stored timestamp."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize a timestamp read back from the driver to naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
