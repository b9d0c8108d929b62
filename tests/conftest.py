"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mockinterview.engine.clock import ManualClock  # noqa: E402
from mockinterview.engine.models import Candidate, Difficulty  # noqa: E402
from mockinterview.engine.questions import build_questions, STATIC_QUESTIONS  # noqa: E402
from mockinterview.engine.scoring import Scorer, ScoreResult, SummaryItem  # noqa: E402
from mockinterview.engine.store import SessionStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (full interview flows)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Scorer Doubles
# =============================================================================


class ScriptedScorer(Scorer):
    """Returns queued scores in order; summarizes with a fixed text."""

    name = "scripted"

    def __init__(self, scores=None, summary="Scripted summary."):
        self.scores = list(scores or [])
        self.summary = summary
        self.calls = []
        self.available = True

    def is_available(self) -> bool:
        return self.available

    async def score(self, question_text, answer_text, difficulty):
        self.calls.append((question_text, answer_text, difficulty))
        score = self.scores.pop(0) if self.scores else 5
        return ScoreResult(score=score, feedback=f"Scored {score}")

    async def summarize(self, items, total_score):
        return self.summary


class GatedScorer(ScriptedScorer):
    """Blocks every call until ``release()``; used to observe in-flight scoring."""

    def __init__(self, scores=None, summary="Gated summary."):
        super().__init__(scores, summary)
        self.gate = asyncio.Event()
        self.entered = 0

    def release(self) -> None:
        self.gate.set()

    async def score(self, question_text, answer_text, difficulty):
        self.entered += 1
        await self.gate.wait()
        return await super().score(question_text, answer_text, difficulty)


class FailingScorer(Scorer):
    """Always raises; exercises fallback masking."""

    name = "failing"

    def __init__(self, error=None):
        self.error = error or RuntimeError("model exploded")

    async def score(self, question_text, answer_text, difficulty):
        raise self.error

    async def summarize(self, items: list[SummaryItem], total_score: int) -> str:
        raise self.error


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def clock():
    """Virtual clock starting at 2024-01-01 UTC."""
    return ManualClock()


@pytest.fixture
def store(tmp_path):
    """Session store backed by a temporary state file."""
    return SessionStore(tmp_path / "state.json")


@pytest.fixture
def sample_questions():
    """The six reference questions (2 easy / 2 medium / 2 hard)."""
    return build_questions(STATIC_QUESTIONS)


@pytest.fixture
def short_questions():
    """Three quick questions for focused flow tests."""
    from mockinterview.engine.questions import QuestionSpec

    return build_questions([
        QuestionSpec("What is a closure?", Difficulty.EASY, 20),
        QuestionSpec("Explain the event loop.", Difficulty.MEDIUM, 60),
        QuestionSpec("Design a rate limiter.", Difficulty.HARD, 120),
    ])


@pytest.fixture
def candidate():
    """A candidate whose profile is complete and who has resume text."""
    return Candidate(
        id="candidate-001",
        created_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        name="Jane Doe",
        email="jane.doe@example.com",
        phone="+1 (555) 123-4567",
        resume_text="Jane Doe\nSoftware Engineer\njane.doe@example.com",
        profile_complete=True,
    )


@pytest.fixture
def scripted_scorer():
    """Factory for ScriptedScorer doubles."""
    return ScriptedScorer


@pytest.fixture
def gated_scorer():
    """Factory for GatedScorer doubles."""
    return GatedScorer


@pytest.fixture
def failing_scorer():
    """Factory for FailingScorer doubles."""
    return FailingScorer
