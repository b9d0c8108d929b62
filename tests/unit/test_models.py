"""
Unit tests for the interview data model.
"""

from dataclasses import FrozenInstanceError, replace
from datetime import datetime, timezone

import pytest

from mockinterview.engine.models import (
    Candidate,
    Difficulty,
    Question,
    Session,
    SessionStatus,
    UiPreferences,
    ViewTab,
)


def _session(questions, **overrides):
    fields = dict(
        id="interview_abc",
        candidate_id="candidate-001",
        questions=questions,
        started_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return Session(**fields)


class TestQuestion:
    """Question immutability and answer state."""

    def test_question_is_frozen(self, sample_questions):
        """Answering must go through replace(), never mutation."""
        with pytest.raises(FrozenInstanceError):
            sample_questions[0].answer = "mutated"

    def test_empty_answer_counts_as_answered(self, sample_questions):
        """An empty string is a recorded answer (timed out with no input)."""
        answered = replace(sample_questions[0], answer="", score=1)
        assert answered.is_answered
        assert not sample_questions[0].is_answered

    def test_dict_round_trip_keeps_timestamp(self, sample_questions):
        answered = replace(
            sample_questions[0],
            answer="React is a UI library",
            score=6,
            feedback="ok",
            answered_at=datetime(2024, 1, 1, 0, 0, 20, tzinfo=timezone.utc),
        )
        restored = Question.from_dict(answered.to_dict())

        assert restored == answered
        assert restored.difficulty is Difficulty.EASY


class TestSession:
    """Session helpers used by the state machine and orchestrator."""

    def test_current_question_follows_cursor(self, sample_questions):
        session = _session(sample_questions, current_index=2)
        assert session.current_question.id == "q_3"

    def test_current_question_none_at_end(self, sample_questions):
        session = _session(sample_questions, current_index=len(sample_questions))
        assert session.current_question is None
        assert session.is_finished

    def test_score_sum_treats_missing_scores_as_zero(self, sample_questions):
        questions = list(sample_questions)
        questions[0] = replace(questions[0], answer="a", score=7)
        questions[1] = replace(questions[1], answer="b", score=None)
        session = _session(questions, current_index=2)

        assert session.score_sum() == 7
        assert session.max_score == 60
        assert [q.id for q in session.answered_questions] == ["q_1", "q_2"]

    def test_dict_round_trip(self, sample_questions):
        session = _session(
            sample_questions,
            status=SessionStatus.PAUSED,
            current_index=1,
        )
        restored = Session.from_dict(session.to_dict())

        assert restored == session
        assert restored.status is SessionStatus.PAUSED


class TestCandidateAndPreferences:
    """Candidate and UI preference serialization."""

    def test_candidate_round_trip(self, candidate):
        assert Candidate.from_dict(candidate.to_dict()) == candidate

    def test_ui_preferences_keep_unknown_keys(self):
        prefs = UiPreferences.from_dict({"active_tab": "interviewer", "theme": "dark"})

        assert prefs.active_tab is ViewTab.INTERVIEWER
        assert prefs.extra == {"theme": "dark"}
        assert prefs.to_dict() == {"active_tab": "interviewer", "theme": "dark"}

    def test_ui_preferences_default_tab(self):
        assert UiPreferences.from_dict({}).active_tab is ViewTab.INTERVIEWEE
