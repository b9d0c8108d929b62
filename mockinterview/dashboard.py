"""
Interviewer dashboard: candidate rows with their latest interview.

Pure functions over store contents; the CLI renders the result with rich.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from mockinterview.engine.models import Candidate, Session, SessionStatus

if TYPE_CHECKING:
    from mockinterview.engine.orchestrator import CurrentSession

SORT_KEYS = ("score", "name", "date")

STATUS_COMPLETED = "Completed"
STATUS_IN_PROGRESS = "In Progress"
STATUS_PAUSED = "Paused"
STATUS_NOT_STARTED = "Not Started"

HIGH_SCORE = 45
MEDIUM_SCORE = 30


@dataclass
class CandidateRow:
    """A candidate joined with their latest session."""

    candidate: Candidate
    session: Session | None = None

    @property
    def name(self) -> str:
        return self.candidate.name

    @property
    def email(self) -> str:
        return self.candidate.email

    @property
    def total_score(self) -> int:
        if self.session is not None and self.session.total_score is not None:
            return self.session.total_score
        return 0

    @property
    def status_label(self) -> str:
        if self.session is None:
            return STATUS_NOT_STARTED
        if self.session.status == SessionStatus.COMPLETED:
            return STATUS_COMPLETED
        if self.session.status == SessionStatus.PAUSED:
            return STATUS_PAUSED
        return STATUS_IN_PROGRESS

    @property
    def progress(self) -> str:
        if self.session is None:
            return "-"
        answered = len(self.session.answered_questions)
        return f"{answered}/{len(self.session.questions)}"


def build_rows(
    candidates: list[Candidate],
    sessions: list[Session],
    current: CurrentSession | None = None,
) -> list[CandidateRow]:
    """
    Join candidates with their most recent session.

    Args:
        candidates: Candidates from the store
        sessions: Sessions from the store, in creation order
        current: Live session handle; its snapshot replaces the stored copy

    Returns:
        One row per candidate, in store order
    """
    live = current.session if current is not None else None

    latest: dict[str, Session] = {}
    for session in sessions:
        latest[session.candidate_id] = session
    if live is not None:
        latest[live.candidate_id] = live

    return [CandidateRow(candidate, latest.get(candidate.id)) for candidate in candidates]


def search_rows(rows: list[CandidateRow], term: str | None) -> list[CandidateRow]:
    """Case-insensitive substring match on name or email."""
    if not term:
        return list(rows)
    needle = term.lower()
    return [row for row in rows if needle in row.name.lower() or needle in row.email.lower()]


def sort_rows(rows: list[CandidateRow], sort_by: str = "score") -> list[CandidateRow]:
    """
    Order rows for display.

    Args:
        rows: Rows to sort
        sort_by: "score" (highest first), "name" (A-Z) or "date" (newest first)

    Raises:
        ValueError: unknown sort key
    """
    if sort_by == "score":
        return sorted(rows, key=lambda row: row.total_score, reverse=True)
    if sort_by == "name":
        return sorted(rows, key=lambda row: row.name.lower())
    if sort_by == "date":
        return sorted(rows, key=lambda row: row.candidate.created_at, reverse=True)
    raise ValueError(f"Unknown sort key {sort_by!r}; expected one of {', '.join(SORT_KEYS)}")


def score_band(total_score: int) -> str:
    """Display band for a total score: "high", "medium" or "low"."""
    if total_score >= HIGH_SCORE:
        return "high"
    if total_score >= MEDIUM_SCORE:
        return "medium"
    return "low"
