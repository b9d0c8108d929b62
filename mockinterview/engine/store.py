"""
Durable state for interview sessions.

Enables resume-after-interruption: the orchestrator snapshots the session
after every transition, and on start-up the last Active or Paused session is
offered for resume. State is one JSON document (default
``~/.mockinterview/state.json``) with whitelisted top-level keys:

    candidates  - list of Candidate records
    interviews  - {"sessions": [...], "current_session_id": str | None}
    ui          - UiPreferences
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from loguru import logger

from mockinterview.core.errors import ContractViolation, SessionStoreError

from .models import Candidate, Session, SessionStatus, UiPreferences
from .state_machine import SessionStateMachine

PERSISTED_KEYS = ("candidates", "interviews", "ui")

RESUMABLE_STATUSES = (SessionStatus.ACTIVE, SessionStatus.PAUSED)


def _empty_state() -> dict[str, Any]:
    return {
        "candidates": [],
        "interviews": {"sessions": [], "current_session_id": None},
        "ui": UiPreferences().to_dict(),
    }


class SessionStore:
    """
    Manages interview persistence.

    Every write rewrites the whole document atomically (temp file + rename),
    so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    # =========================================================================
    # Document I/O
    # =========================================================================

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return _empty_state()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("state document is not an object")
        except (json.JSONDecodeError, ValueError, UnicodeDecodeError) as e:
            corrupt = self.path.with_suffix(self.path.suffix + ".corrupt")
            os.replace(self.path, corrupt)
            logger.warning(f"Corrupt state file moved to {corrupt}: {e}")
            return _empty_state()

        state = _empty_state()
        for key in PERSISTED_KEYS:
            if key in raw:
                state[key] = raw[key]
        dropped = set(raw) - set(PERSISTED_KEYS)
        if dropped:
            logger.debug(f"Ignoring non-persisted keys: {sorted(dropped)}")
        return state

    def _write(self, state: dict[str, Any]) -> None:
        document = {key: state[key] for key in PERSISTED_KEYS}
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            Path(tmp_path).unlink(missing_ok=True)
            raise SessionStoreError(f"Could not write {self.path}: {e}") from e

    # =========================================================================
    # Sessions
    # =========================================================================

    def save_session(self, session: Session, candidate: Candidate | None = None) -> None:
        """
        Upsert a session snapshot (and optionally its candidate).

        Active and Paused sessions take the current-session slot; a Completed
        session releases it and joins the history.

        Raises:
            SessionStoreError: attempt to overwrite a completed session
        """
        with self._lock:
            state = self._read()
            interviews = state["interviews"]
            sessions: list[dict[str, Any]] = interviews["sessions"]

            record = session.to_dict()
            for index, existing in enumerate(sessions):
                if existing["id"] == session.id:
                    if existing.get("status") == SessionStatus.COMPLETED.value:
                        raise SessionStoreError(f"Session {session.id} is completed and immutable")
                    sessions[index] = record
                    break
            else:
                sessions.append(record)

            if session.status in RESUMABLE_STATUSES:
                interviews["current_session_id"] = session.id
            elif interviews.get("current_session_id") == session.id:
                interviews["current_session_id"] = None

            if candidate is not None:
                self._upsert_candidate(state, candidate)

            self._write(state)

    def get_session(self, session_id: str) -> Session | None:
        with self._lock:
            for record in self._read()["interviews"]["sessions"]:
                if record["id"] == session_id:
                    return Session.from_dict(record)
        return None

    def list_sessions(self, candidate_id: str | None = None) -> list[Session]:
        """All sessions in creation order, optionally for one candidate."""
        with self._lock:
            records = self._read()["interviews"]["sessions"]
        sessions = [Session.from_dict(r) for r in records]
        if candidate_id is not None:
            sessions = [s for s in sessions if s.candidate_id == candidate_id]
        return sessions

    def load_resumable(self) -> tuple[Session, Candidate | None] | None:
        """
        The session in the current-session slot, if it is Active or Paused.

        A snapshot that breaks the session invariants is quarantined and the
        slot released.
        """
        with self._lock:
            state = self._read()
            current_id = state["interviews"].get("current_session_id")
            if not current_id:
                return None

            for record in state["interviews"]["sessions"]:
                if record.get("id") == current_id:
                    break
            else:
                logger.warning(f"Current session {current_id} missing from history")
                return None

            try:
                session = Session.from_dict(record)
                if session.status not in RESUMABLE_STATUSES:
                    return None
                SessionStateMachine.from_snapshot(session)
            except (ContractViolation, KeyError, TypeError, ValueError) as e:
                self.quarantine_session(current_id, f"{type(e).__name__}: {e}")
                return None
            return session, self._find_candidate(state, session.candidate_id)

    def quarantine_session(self, session_id: str, reason: str) -> Path | None:
        """
        Move an unusable session record out of the document.

        The record is written beside the state file as
        ``<state>.<session_id>.corrupt`` and the current-session slot is
        released, so a new interview can start.

        Returns:
            Path of the quarantined record, or None if the session was not stored
        """
        with self._lock:
            state = self._read()
            interviews = state["interviews"]
            sessions: list[dict[str, Any]] = interviews["sessions"]
            for index, record in enumerate(sessions):
                if record.get("id") == session_id:
                    break
            else:
                return None

            target = self.path.with_suffix(f"{self.path.suffix}.{session_id}.corrupt")
            try:
                target.write_text(json.dumps(record, indent=2), encoding="utf-8")
            except OSError as e:
                raise SessionStoreError(f"Could not write {target}: {e}") from e
            del sessions[index]
            if interviews.get("current_session_id") == session_id:
                interviews["current_session_id"] = None
            self._write(state)

        logger.warning(f"Session {session_id} moved to {target}: {reason}")
        return target

    # =========================================================================
    # Candidates
    # =========================================================================

    def save_candidate(self, candidate: Candidate) -> None:
        with self._lock:
            state = self._read()
            self._upsert_candidate(state, candidate)
            self._write(state)

    def get_candidate(self, candidate_id: str) -> Candidate | None:
        with self._lock:
            return self._find_candidate(self._read(), candidate_id)

    def list_candidates(self) -> list[Candidate]:
        with self._lock:
            return [Candidate.from_dict(c) for c in self._read()["candidates"]]

    @staticmethod
    def _upsert_candidate(state: dict[str, Any], candidate: Candidate) -> None:
        candidates: list[dict[str, Any]] = state["candidates"]
        record = candidate.to_dict()
        for index, existing in enumerate(candidates):
            if existing["id"] == candidate.id:
                candidates[index] = record
                return
        candidates.append(record)

    @staticmethod
    def _find_candidate(state: dict[str, Any], candidate_id: str) -> Candidate | None:
        for record in state["candidates"]:
            if record["id"] == candidate_id:
                return Candidate.from_dict(record)
        return None

    # =========================================================================
    # UI Preferences
    # =========================================================================

    def load_ui_preferences(self) -> UiPreferences:
        with self._lock:
            return UiPreferences.from_dict(self._read()["ui"] or {})

    def save_ui_preferences(self, preferences: UiPreferences) -> None:
        with self._lock:
            state = self._read()
            state["ui"] = preferences.to_dict()
            self._write(state)
