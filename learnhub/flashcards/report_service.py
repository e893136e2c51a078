"""
Narrative study-session reports generated with Gemini.

Report generation is best-effort: every failure comes back as a ReportResult
with success=False and is never raised to the caller.
"""
import logging
import asyncio
from dataclasses import dataclass
from typing import List, Optional
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache

from google import genai
from google.genai import types

from learnhub.config import get_settings
from learnhub.flashcards.exceptions import CollaboratorError
from learnhub.flashcards.scheduler import Quality
from learnhub.flashcards.session import ReviewEvent

logger = logging.getLogger(__name__)

# Thread pool for running sync Gemini calls
_executor = ThreadPoolExecutor(max_workers=4)

MAX_CARDS_IN_PROMPT = 5

REPORT_SYSTEM_PROMPT = """
You are a supportive study coach. You write short study session reports for students
who just finished reviewing flashcards. Output only the report as well-formatted Markdown.
"""

REPORT_INSTRUCTIONS = """
Please generate a concise study session report that includes:
1.  A brief overall encouragement or summary statement.
2.  Specific areas or topics (based on the challenging card questions) the student should focus on more.
3.  Positive reinforcement for topics they seem to understand well (if any were reviewed positively).
4.  One or two practical study tips relevant to flashcard learning or the topics covered.
5.  Keep the tone supportive and constructive.
Output the report as a well-formatted Markdown string.
"""

_RATING_LABELS = {
    Quality.AGAIN: "Again",
    Quality.HARD: "Hard",
    Quality.GOOD: "Good",
    Quality.EASY: "Easy",
}


@dataclass
class ReportResult:
    success: bool
    report: Optional[str] = None
    error: Optional[str] = None


def build_report_prompt(set_titles: str, performance: List[ReviewEvent], user_grade_level: Optional[str] = None) -> str:
    """
    Summarize a session for the model.

    Challenging cards (Again/Hard) come first; well-known cards fill the
    remaining slots up to MAX_CARDS_IN_PROMPT.
    """
    summary = f'The student just finished a study session for the flashcard set titled "{set_titles}".\n'
    if user_grade_level:
        summary += f"The student is in {user_grade_level}.\n"
    summary += "Here's a summary of their performance on some cards:\n"

    difficult = [event for event in performance if event.quality < Quality.GOOD]
    well_known = [event for event in performance if event.quality >= Quality.GOOD]

    if difficult:
        summary += "\nCards they found challenging (marked 'Again' or 'Hard'):\n"
        for event in difficult[:MAX_CARDS_IN_PROMPT]:
            summary += f'- Question: "{event.question}" (Rated: {_RATING_LABELS[event.quality]})\n'
    if well_known and len(difficult) < MAX_CARDS_IN_PROMPT:
        summary += "\nCards they recalled well (marked 'Good' or 'Easy'):\n"
        for event in well_known[:MAX_CARDS_IN_PROMPT - len(difficult)]:
            summary += f'- Question: "{event.question}" (Rated: {_RATING_LABELS[event.quality]})\n'
    if not difficult and well_known:
        summary += "\nGreat job! The student recalled all reviewed cards well or easily.\n"

    return f"{summary}\n{REPORT_INSTRUCTIONS}"


class ReportRequester:
    """Hands a completed session to Gemini and returns the prose it writes."""

    def __init__(self, client=None, model: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.model = model or settings.GEMINI_MODEL
        self.timeout = timeout if timeout is not None else settings.REPORT_TIMEOUT_SECONDS
        self._client = client
        if self._client is None and settings.GEMINI_API_KEY:
            # Configure Gemini with HTTP timeout
            self._client = genai.Client(
                api_key=settings.GEMINI_API_KEY,
                http_options={"timeout": settings.GEMINI_HTTP_TIMEOUT_MS}
            )

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _generate_sync(self, prompt: str) -> str:
        """
        Synchronous Gemini call (runs in thread pool).
        """
        try:
            logger.info("Requesting study session report from Gemini...")
            response = self._client.models.generate_content(
                model=self.model,
                config=types.GenerateContentConfig(
                    system_instruction=REPORT_SYSTEM_PROMPT,
                    temperature=0.6,
                    max_output_tokens=500,
                ),
                contents=prompt
            )
        except Exception as e:
            raise CollaboratorError(f"AI report generation failed: {e}") from e

        text = (response.text or "").strip() if response else ""
        if not text:
            raise CollaboratorError("AI could not generate a study report.")
        logger.info("Received study session report from Gemini.")
        return text

    async def generate_session_report(
        self,
        set_titles: str,
        performance: List[ReviewEvent],
        user_grade_level: Optional[str] = None
    ) -> ReportResult:
        if not self.configured:
            return ReportResult(success=False, error="AI Service not configured.")
        if not performance:
            return ReportResult(success=False, error="No study data to generate a report.")

        prompt = build_report_prompt(set_titles, performance, user_grade_level)
        loop = asyncio.get_running_loop()
        try:
            report = await asyncio.wait_for(
                loop.run_in_executor(_executor, self._generate_sync, prompt),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Gemini report request timed out after {self.timeout} seconds")
            return ReportResult(success=False, error="AI report generation timed out.")
        except CollaboratorError as e:
            logger.error(f"Study report generation failed: {e}")
            return ReportResult(success=False, error=str(e))

        return ReportResult(success=True, report=report)


@lru_cache()
def get_report_requester() -> ReportRequester:
    """Dependency providing the shared report collaborator."""
    return ReportRequester()
