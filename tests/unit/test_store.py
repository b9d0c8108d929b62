"""
Unit tests for the JSON session store.
"""

import json

import pytest

from mockinterview.core.errors import SessionStoreError
from mockinterview.engine.models import SessionStatus, UiPreferences, ViewTab
from mockinterview.engine.state_machine import SessionStateMachine
from mockinterview.engine.store import SessionStore


@pytest.fixture
def machine(sample_questions, clock):
    return SessionStateMachine.create("candidate-001", sample_questions, clock=clock, session_id="s1")


class TestSessions:
    """Session snapshots and the current-session slot."""

    def test_round_trip(self, store, machine, candidate):
        machine.submit_answer("q_1", "React is a library", 8, "Good")
        store.save_session(machine.session, candidate)

        loaded = store.get_session("s1")
        assert loaded == machine.session
        assert store.get_candidate(candidate.id) == candidate

    def test_active_session_is_resumable(self, store, machine, candidate):
        store.save_session(machine.session, candidate)

        session, stored_candidate = store.load_resumable()
        assert session.id == "s1"
        assert stored_candidate.name == "Jane Doe"

    def test_paused_session_is_resumable(self, store, machine):
        machine.pause()
        store.save_session(machine.session)

        session, stored_candidate = store.load_resumable()
        assert session.status is SessionStatus.PAUSED
        assert stored_candidate is None

    def test_completed_session_releases_slot(self, store, machine):
        for _ in range(6):
            machine.submit_answer(machine.current_question.id, "a", 5, None)
            machine.advance()
        machine.complete(30, "done")
        store.save_session(machine.session)

        assert store.load_resumable() is None
        assert store.list_sessions()[0].total_score == 30

    def test_completed_session_is_immutable(self, store, machine):
        for _ in range(6):
            machine.submit_answer(machine.current_question.id, "a", 5, None)
            machine.advance()
        machine.complete(30, "done")
        store.save_session(machine.session)

        with pytest.raises(SessionStoreError):
            store.save_session(machine.session)

    def test_list_sessions_by_candidate(self, store, sample_questions, clock):
        for session_id, candidate_id in (("a", "c1"), ("b", "c2"), ("c", "c1")):
            m = SessionStateMachine.create(candidate_id, sample_questions, clock=clock, session_id=session_id)
            store.save_session(m.session)

        assert [s.id for s in store.list_sessions("c1")] == ["a", "c"]
        assert len(store.list_sessions()) == 3

    def test_empty_store(self, store):
        assert store.load_resumable() is None
        assert store.list_candidates() == []
        assert store.get_session("missing") is None


class TestPersistenceFormat:
    """Whitelisted keys and corruption handling."""

    def test_only_whitelisted_keys_written(self, tmp_path, machine):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"session": {"draft": "volatile"}, "ui": {"active_tab": "interviewer"}}))
        store = SessionStore(path)

        store.save_session(machine.session)

        document = json.loads(path.read_text())
        assert set(document) == {"candidates", "interviews", "ui"}
        assert document["ui"]["active_tab"] == "interviewer"

    def test_corrupt_file_is_set_aside(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        store = SessionStore(path)

        assert store.load_resumable() is None
        assert (tmp_path / "state.json.corrupt").exists()

    def test_invalid_snapshot_is_quarantined(self, tmp_path, store, machine):
        broken = machine.snapshot()
        broken.current_index = 2  # two unanswered questions behind the cursor
        store.save_session(broken)

        assert store.load_resumable() is None
        assert store.get_session("s1") is None
        quarantined = json.loads((tmp_path / "state.json.s1.corrupt").read_text())
        assert quarantined["current_index"] == 2

    def test_unreadable_session_record_is_quarantined(self, tmp_path, store, machine):
        store.save_session(machine.session)
        document = json.loads(store.path.read_text())
        del document["interviews"]["sessions"][0]["questions"]
        store.path.write_text(json.dumps(document))

        assert store.load_resumable() is None
        assert (tmp_path / "state.json.s1.corrupt").exists()
        assert store.list_sessions() == []

    def test_survives_new_store_instance(self, tmp_path, machine):
        SessionStore(tmp_path / "state.json").save_session(machine.session)
        session, _ = SessionStore(tmp_path / "state.json").load_resumable()
        assert session.id == "s1"


class TestCandidatesAndPreferences:
    """Candidate upserts and UI preferences."""

    def test_candidate_upsert(self, store, candidate):
        store.save_candidate(candidate)
        candidate.final_score = 43
        store.save_candidate(candidate)

        candidates = store.list_candidates()
        assert len(candidates) == 1
        assert candidates[0].final_score == 43

    def test_ui_preferences(self, store):
        assert store.load_ui_preferences().active_tab is ViewTab.INTERVIEWEE

        store.save_ui_preferences(UiPreferences(active_tab=ViewTab.INTERVIEWER))
        assert store.load_ui_preferences().active_tab is ViewTab.INTERVIEWER
