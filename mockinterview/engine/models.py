"""
Interview data model.

Questions are immutable once built; answering produces a new Question via
``dataclasses.replace``. Sessions are mutated only by the state machine.
All timestamps serialize to ISO-8601 so snapshots round-trip losslessly.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Difficulty(str, Enum):
    """Question difficulty tier."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionStatus(str, Enum):
    """Lifecycle state of an interview session."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class ViewTab(str, Enum):
    """Top-level views of the front end."""

    INTERVIEWEE = "interviewee"
    INTERVIEWER = "interviewer"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# =============================================================================
# Question
# =============================================================================


@dataclass(frozen=True)
class Question:
    """A single interview question and, once answered, its result."""

    id: str
    text: str
    difficulty: Difficulty
    time_limit_seconds: int

    # Set exactly once, when the question is answered
    answer: str | None = None
    score: int | None = None
    feedback: str | None = None
    answered_at: datetime | None = None

    @property
    def is_answered(self) -> bool:
        return self.answer is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "difficulty": self.difficulty.value,
            "time_limit_seconds": self.time_limit_seconds,
            "answer": self.answer,
            "score": self.score,
            "feedback": self.feedback,
            "answered_at": _iso(self.answered_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Question:
        return cls(
            id=data["id"],
            text=data["text"],
            difficulty=Difficulty(data["difficulty"]),
            time_limit_seconds=int(data["time_limit_seconds"]),
            answer=data.get("answer"),
            score=data.get("score"),
            feedback=data.get("feedback"),
            answered_at=_parse_iso(data.get("answered_at")),
        )


# =============================================================================
# Session
# =============================================================================


@dataclass
class Session:
    """One candidate's end-to-end interview attempt."""

    id: str
    candidate_id: str
    questions: list[Question]
    started_at: datetime
    current_index: int = 0
    status: SessionStatus = SessionStatus.ACTIVE

    # Defined only once Completed
    ended_at: datetime | None = None
    total_score: int | None = None
    summary: str | None = None

    @property
    def current_question(self) -> Question | None:
        """Question under the cursor, or None once every question is answered."""
        if self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def is_finished(self) -> bool:
        """Cursor has moved past the last question."""
        return self.current_index >= len(self.questions)

    @property
    def answered_questions(self) -> list[Question]:
        return [q for q in self.questions if q.is_answered]

    @property
    def max_score(self) -> int:
        return 10 * len(self.questions)

    def score_sum(self) -> int:
        """Sum of per-question scores, absent scores counting as 0."""
        return sum(q.score or 0 for q in self.questions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "candidate_id": self.candidate_id,
            "questions": [q.to_dict() for q in self.questions],
            "current_index": self.current_index,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
            "total_score": self.total_score,
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            id=data["id"],
            candidate_id=data["candidate_id"],
            questions=[Question.from_dict(q) for q in data["questions"]],
            current_index=int(data.get("current_index", 0)),
            status=SessionStatus(data.get("status", SessionStatus.ACTIVE.value)),
            started_at=_parse_iso(data["started_at"]),
            ended_at=_parse_iso(data.get("ended_at")),
            total_score=data.get("total_score"),
            summary=data.get("summary"),
        )


# =============================================================================
# Candidate & UI Preferences
# =============================================================================


@dataclass
class Candidate:
    """Interviewee identity and the outcome of their latest interview."""

    id: str
    created_at: datetime
    name: str = ""
    email: str = ""
    phone: str = ""
    resume_text: str = ""
    profile_complete: bool = False
    interview_complete: bool = False
    final_score: int | None = None
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _iso(self.created_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Candidate:
        fields = dict(data)
        fields["created_at"] = _parse_iso(fields.get("created_at"))
        return cls(**fields)


@dataclass
class UiPreferences:
    """Persisted front-end preferences."""

    active_tab: ViewTab = ViewTab.INTERVIEWEE
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"active_tab": self.active_tab.value, **self.extra}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UiPreferences:
        fields = dict(data)
        tab = fields.pop("active_tab", ViewTab.INTERVIEWEE.value)
        return cls(active_tab=ViewTab(tab), extra=fields)
