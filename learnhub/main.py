import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnhub.config import get_settings
from learnhub.database import Base, engine
from learnhub.auth.routes import router as auth_router
from learnhub.flashcards.routes import router as flashcards_router

# Import models so SQLAlchemy can create tables
from learnhub.users.models import User  # noqa: F401
from learnhub.flashcards.models import Flashcard, FlashcardSet, StudySessionLog  # noqa: F401

settings = get_settings()
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup: Create database tables
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")
        # Don't crash the app - let it start and handle errors per-request
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="LearnHub Flashcards API",
    description="Spaced repetition study sessions for flashcard sets",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - must be first to handle OPTIONS requests quickly
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(flashcards_router)


@app.get("/")
async def root():
    return {"message": "LearnHub Flashcards API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
