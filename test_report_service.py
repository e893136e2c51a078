import asyncio
import time
from types import SimpleNamespace

from learnhub.flashcards.report_service import ReportRequester, build_report_prompt, get_report_requester
from learnhub.flashcards.scheduler import Quality
from learnhub.flashcards.session import ReviewEvent


def _events(*qualities):
    return [ReviewEvent(card_id=i, question=f"Question {i}", quality=Quality(q)) for i, q in enumerate(qualities)]


class FakeModels:
    def __init__(self, text="## Great session"):
        self.text = text
        self.calls = []

    def generate_content(self, model, config, contents):
        self.calls.append({"model": model, "contents": contents})
        return SimpleNamespace(text=self.text)


class SlowModels:
    def generate_content(self, **kwargs):
        time.sleep(0.5)
        return SimpleNamespace(text="too late")


class FailingModels:
    def generate_content(self, **kwargs):
        raise RuntimeError("quota exceeded")


def test_prompt_lists_challenging_cards_first():
    prompt = build_report_prompt("Biology", _events(2, 0, 1, 3), "Grade 9")

    assert 'flashcard set titled "Biology"' in prompt
    assert "The student is in Grade 9." in prompt
    challenging = prompt.index("Cards they found challenging")
    recalled = prompt.index("Cards they recalled well")
    assert challenging < recalled
    assert '"Question 1" (Rated: Again)' in prompt
    assert '"Question 2" (Rated: Hard)' in prompt
    assert '"Question 3" (Rated: Easy)' in prompt


def test_prompt_caps_listed_cards():
    prompt = build_report_prompt("History", _events(0, 0, 0, 1, 1, 1, 2))

    assert prompt.count("- Question:") == 5
    assert "Cards they recalled well" not in prompt


def test_prompt_praises_a_clean_session():
    prompt = build_report_prompt("History", _events(2, 3))
    assert "Great job!" in prompt
    assert "challenging" not in prompt.split("Please generate")[0]


def test_report_is_returned():
    models = FakeModels("## Nice work\nKeep going.")
    requester = ReportRequester(client=SimpleNamespace(models=models), model="test-model")

    result = asyncio.run(requester.generate_session_report("Biology", _events(0, 2)))

    assert result.success
    assert result.report == "## Nice work\nKeep going."
    assert models.calls[0]["model"] == "test-model"
    assert "Biology" in models.calls[0]["contents"]


def test_missing_configuration_is_a_soft_failure():
    result = asyncio.run(ReportRequester().generate_session_report("Biology", _events(0)))
    assert not result.success
    assert result.error == "AI Service not configured."


def test_empty_session_is_a_soft_failure():
    requester = ReportRequester(client=SimpleNamespace(models=FakeModels()))
    result = asyncio.run(requester.generate_session_report("Biology", []))
    assert not result.success
    assert result.error == "No study data to generate a report."


def test_model_errors_are_a_soft_failure():
    requester = ReportRequester(client=SimpleNamespace(models=FailingModels()))
    result = asyncio.run(requester.generate_session_report("Biology", _events(1)))
    assert not result.success
    assert "quota exceeded" in result.error


def test_blank_model_output_is_a_soft_failure():
    requester = ReportRequester(client=SimpleNamespace(models=FakeModels("   ")))
    result = asyncio.run(requester.generate_session_report("Biology", _events(1)))
    assert not result.success
    assert result.error == "AI could not generate a study report."


def test_timeout_is_a_soft_failure():
    requester = ReportRequester(client=SimpleNamespace(models=SlowModels()), timeout=0.05)
    result = asyncio.run(requester.generate_session_report("Biology", _events(1)))
    assert not result.success
    assert "timed out" in result.error


def test_requester_dependency_is_shared():
    get_report_requester.cache_clear()
    requester = get_report_requester()

    assert get_report_requester() is requester
    assert not requester.configured
    get_report_requester.cache_clear()
