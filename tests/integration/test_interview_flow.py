"""
Integration Tests for the Interview Flow.

Runs complete sessions through the orchestrator, state machine, timer and a
real JSON store on a virtual clock:
1. Six questions answered and timed out through to completion
2. Pause, simulated process restart, restore and resume
3. Settings-wired orchestrator with no remote model configured
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from mockinterview.config import Settings
from mockinterview.engine.models import SessionStatus
from mockinterview.engine.orchestrator import SessionOrchestrator
from mockinterview.engine.scoring import ScoringGateway
from mockinterview.engine.state_machine import SessionStateMachine
from mockinterview.engine.store import SessionStore

pytestmark = pytest.mark.integration


def provider_for(questions):
    provider = MagicMock()
    provider.fetch = AsyncMock(return_value=list(questions))
    return provider


def assert_cursor_invariant(store, session_id):
    """Stored snapshot must rehydrate cleanly (runs the invariant checks)."""
    SessionStateMachine.from_snapshot(store.get_session(session_id))


class TestFullInterview:
    """Six questions from start to Completed."""

    @pytest.mark.asyncio
    async def test_five_answers_and_a_timeout_total_43(
        self, tmp_path, clock, sample_questions, candidate, scripted_scorer
    ):
        store = SessionStore(tmp_path / "state.json")
        orchestrator = SessionOrchestrator(
            store=store,
            scoring=ScoringGateway(remote=scripted_scorer([8, 8, 7, 9, 8, 3], summary="Strong candidate.")),
            questions=provider_for(sample_questions),
            clock=clock,
        )
        session = await orchestrator.start_session(candidate)

        for index in range(5):
            await clock.advance(5)
            outcome = await orchestrator.submit(f"Answer number {index + 1}")
            assert outcome.accepted
            assert_cursor_invariant(store, session.id)

        # Final question (hard, 120s) times out with nothing typed
        await clock.advance(120)
        completed = await orchestrator.wait_completed()

        assert completed.questions[5].answer == ""
        assert completed.questions[5].score == 3
        assert completed.total_score == 43
        assert completed.status is SessionStatus.COMPLETED
        assert completed.ended_at is not None
        assert completed.summary

        stored = store.get_session(session.id)
        assert stored.total_score == 43
        assert stored.total_score == sum(q.score for q in stored.questions)
        assert store.get_candidate(candidate.id).final_score == 43
        assert store.load_resumable() is None


class TestPauseAndRestart:
    """Pause during question 3, restart, restore, resume."""

    @pytest.mark.asyncio
    async def test_restore_paused_session(self, tmp_path, clock, sample_questions, candidate, scripted_scorer):
        path = tmp_path / "state.json"
        first = SessionOrchestrator(
            store=SessionStore(path),
            scoring=ScoringGateway(remote=scripted_scorer([6, 7])),
            questions=provider_for(sample_questions),
            clock=clock,
        )
        await first.start_session(candidate)
        await first.submit("first answer")
        await first.submit("second answer")
        await clock.advance(30)
        await first.pause()
        await first.shutdown()

        # New process: fresh store instance and orchestrator over the same file
        second = SessionOrchestrator(
            store=SessionStore(path),
            questions=provider_for(sample_questions),
            clock=clock,
        )
        restored = await second.restore()

        assert restored.current_index == 2
        assert restored.status is SessionStatus.PAUSED
        assert not second.timer.running

        resumed = await second.resume()

        assert resumed.status is SessionStatus.ACTIVE
        assert second.timer.running
        assert second.timer.remaining == sample_questions[2].time_limit_seconds
        assert [q.answer for q in resumed.questions[:2]] == ["first answer", "second answer"]
        assert [q.score for q in resumed.questions[:2]] == [6, 7]
        await second.shutdown()


class TestSettingsWiring:
    """Orchestrator built from Settings, offline."""

    @pytest.mark.asyncio
    async def test_offline_interview_by_timeouts(self, tmp_path, clock, candidate):
        settings = Settings(
            gemini_api_key=None,
            data_dir=tmp_path,
            easy_time_limit_seconds=2,
            medium_time_limit_seconds=3,
            hard_time_limit_seconds=4,
        )
        orchestrator = SessionOrchestrator.from_settings(settings, clock=clock)

        session = await orchestrator.start_session(candidate)
        assert [q.time_limit_seconds for q in session.questions] == [2, 2, 3, 3, 4, 4]

        await clock.advance(2 + 2 + 3 + 3 + 4 + 4)
        completed = await orchestrator.wait_completed()

        # Empty answers: fallback minimum, +1 on easy questions
        assert [q.score for q in completed.questions] == [2, 2, 1, 1, 1, 1]
        assert completed.total_score == 8
        assert orchestrator.scoring.fallback_count == 7  # six answers and the summary
        assert SessionStore(settings.state_path).get_session(session.id).status is SessionStatus.COMPLETED
        await orchestrator.shutdown()
