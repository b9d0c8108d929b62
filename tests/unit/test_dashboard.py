"""
Unit tests for dashboard rows, search and sort.
"""

import copy
from datetime import datetime, timedelta, timezone

import pytest

from mockinterview.dashboard import build_rows, score_band, search_rows, sort_rows
from mockinterview.engine.models import Candidate, SessionStatus
from mockinterview.engine.state_machine import SessionStateMachine

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_candidate(cid, name, email, days=0):
    return Candidate(id=cid, created_at=BASE + timedelta(days=days), name=name, email=email)


def finished_session(questions, candidate_id, score, session_id):
    machine = SessionStateMachine.create(candidate_id, questions, session_id=session_id)
    for _ in questions:
        machine.submit_answer(machine.current_question.id, "a", score, None)
        machine.advance()
    machine.complete(score * len(questions), "summary")
    return machine.session


@pytest.fixture
def people():
    return [
        make_candidate("c1", "Zoe Park", "zoe@example.com", days=0),
        make_candidate("c2", "Adam Ng", "adam@corp.io", days=2),
        make_candidate("c3", "Mia Ruiz", "mia@example.com", days=1),
    ]


class TestBuildRows:
    """Joining candidates with their latest session."""

    def test_statuses_and_scores(self, people, sample_questions):
        done = finished_session(sample_questions, "c1", 8, "s1")
        paused = SessionStateMachine.create("c3", sample_questions, session_id="s2")
        paused.pause()

        rows = build_rows(people, [done, paused.session])

        assert [r.status_label for r in rows] == ["Completed", "Not Started", "Paused"]
        assert [r.total_score for r in rows] == [48, 0, 0]
        assert rows[0].progress == "6/6"
        assert rows[1].progress == "-"

    def test_latest_session_wins(self, people, sample_questions):
        older = finished_session(sample_questions, "c1", 2, "old")
        newer = SessionStateMachine.create("c1", sample_questions, session_id="new").session

        row = build_rows(people[:1], [older, newer])[0]

        assert row.session.id == "new"
        assert row.status_label == "In Progress"

    def test_live_session_overrides_stored_copy(self, people, sample_questions):
        stored = SessionStateMachine.create("c2", sample_questions, session_id="live").session
        live = SessionStateMachine.from_snapshot(copy.deepcopy(stored))
        live.submit_answer("q_1", "answer", 6, None)
        live.advance()

        class Handle:
            session = live.snapshot()

        row = build_rows(people, [stored], current=Handle())[1]
        assert row.progress == "1/6"
        assert row.session.status is SessionStatus.ACTIVE


class TestSearchAndSort:
    """Interviewer list controls."""

    def test_search_by_name_or_email(self, people):
        rows = build_rows(people, [])

        assert [r.name for r in search_rows(rows, "ZOE")] == ["Zoe Park"]
        assert [r.name for r in search_rows(rows, "corp.io")] == ["Adam Ng"]
        assert len(search_rows(rows, "")) == 3

    def test_sort_by_score(self, people, sample_questions):
        sessions = [
            finished_session(sample_questions, "c1", 5, "a"),
            finished_session(sample_questions, "c3", 9, "b"),
        ]
        rows = sort_rows(build_rows(people, sessions), "score")
        assert [r.candidate.id for r in rows] == ["c3", "c1", "c2"]

    def test_sort_by_name(self, people):
        rows = sort_rows(build_rows(people, []), "name")
        assert [r.name for r in rows] == ["Adam Ng", "Mia Ruiz", "Zoe Park"]

    def test_sort_by_date_newest_first(self, people):
        rows = sort_rows(build_rows(people, []), "date")
        assert [r.candidate.id for r in rows] == ["c2", "c3", "c1"]

    def test_unknown_sort_key(self, people):
        with pytest.raises(ValueError):
            sort_rows(build_rows(people, []), "age")


class TestScoreBand:
    """Colour bands for total scores."""

    @pytest.mark.parametrize(
        "score, band",
        [(60, "high"), (45, "high"), (44, "medium"), (30, "medium"), (29, "low"), (0, "low")],
    )
    def test_thresholds(self, score, band):
        assert score_band(score) == band
