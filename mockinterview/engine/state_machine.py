"""
Session state machine.

Owns the lifecycle of one interview session:

    Active --pause--> Paused --resume--> Active
    Active --submit_answer/advance--> Active (cursor moves)
    Active (cursor at end) --complete--> Completed (terminal)

Every transition validates its preconditions before touching the session, so
a rejected call leaves the session exactly as it was. Transitions are
serialized with a lock; listeners are notified after each successful one, and
a listener that raises rolls the transition back before the error propagates.
"""

from __future__ import annotations

import copy
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Iterator

from loguru import logger

from mockinterview.core.errors import (
    ContractViolation,
    DuplicateSubmission,
    InvalidTransition,
    QuestionMismatch,
)

from .clock import Clock, SystemClock
from .models import Question, Session, SessionStatus

TransitionListener = Callable[[str, Session], None]

MIN_SCORE = 0
MAX_SCORE = 10


class SessionStateMachine:
    """
    Transition guard around a single Session.

    The wrapped Session is only mutated here. Consumers that need to read it
    outside the engine should use ``snapshot()``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self.clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._listeners: list[TransitionListener] = []
        self._awaiting_advance = False

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def create(
        cls,
        candidate_id: str,
        questions: list[Question],
        clock: Clock | None = None,
        session_id: str | None = None,
    ) -> SessionStateMachine:
        """
        Create a new Active session at the first question.

        Raises:
            ContractViolation: questions empty, duplicated ids, or pre-answered
        """
        if not questions:
            raise ContractViolation("Cannot create a session without questions")

        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            raise ContractViolation(f"Question ids must be unique within a session: {ids}")
        if any(q.is_answered for q in questions):
            raise ContractViolation("New sessions must start with unanswered questions")

        clock = clock or SystemClock()
        session = Session(
            id=session_id or f"interview_{uuid.uuid4().hex[:12]}",
            candidate_id=candidate_id,
            questions=list(questions),
            started_at=clock.now(),
        )
        logger.info(f"Session {session.id} created with {len(questions)} questions")
        return cls(session, clock=clock)

    @classmethod
    def from_snapshot(cls, session: Session, clock: Clock | None = None) -> SessionStateMachine:
        """
        Rehydrate from a persisted snapshot.

        A snapshot written between ``submit_answer`` and ``advance`` carries an
        answered question under the cursor; the machine resumes expecting the
        matching ``advance``.
        """
        machine = cls(session, clock=clock)
        current = session.current_question
        if current is not None and current.is_answered:
            machine._awaiting_advance = True
        machine.check_invariants()
        return machine

    # =========================================================================
    # Observation
    # =========================================================================

    @property
    def session(self) -> Session:
        return self._session

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def current_index(self) -> int:
        return self._session.current_index

    @property
    def current_question(self) -> Question | None:
        return self._session.current_question

    @property
    def awaiting_advance(self) -> bool:
        return self._awaiting_advance

    def snapshot(self) -> Session:
        """Deep copy of the session, safe to hand to other components."""
        with self._lock:
            return copy.deepcopy(self._session)

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    # =========================================================================
    # Transitions
    # =========================================================================

    def submit_answer(
        self,
        question_id: str,
        answer_text: str,
        score: int | None,
        feedback: str | None,
    ) -> Question:
        """Record the answer for the question under the cursor."""
        with self._lock:
            session = self._session
            if session.status != SessionStatus.ACTIVE:
                raise InvalidTransition("submit_answer", session.status.value)

            current = session.current_question
            if current is None:
                raise InvalidTransition("submit_answer", session.status.value, "no current question")
            if current.id != question_id:
                if any(q.id == question_id and q.is_answered for q in session.questions):
                    raise DuplicateSubmission(question_id)
                raise QuestionMismatch(current.id, question_id)
            if current.is_answered or self._awaiting_advance:
                raise DuplicateSubmission(question_id)
            if answer_text is None:
                raise ContractViolation("answer_text must be a string (use '' for no input)")
            if score is not None and not MIN_SCORE <= score <= MAX_SCORE:
                raise ContractViolation(f"Score {score} outside [{MIN_SCORE}, {MAX_SCORE}]")

            previous = self._checkpoint()
            answered = replace(
                current,
                answer=answer_text,
                score=score,
                feedback=feedback,
                answered_at=self.clock.now(),
            )
            session.questions[session.current_index] = answered
            self._awaiting_advance = True
            self._commit("submit_answer", previous)
            return answered

    def advance(self) -> int:
        """Move the cursor past the question just answered. Returns the new index."""
        with self._lock:
            session = self._session
            if session.status == SessionStatus.COMPLETED:
                raise InvalidTransition("advance", session.status.value)
            if not self._awaiting_advance:
                raise InvalidTransition(
                    "advance", session.status.value, "current question has not been answered"
                )

            previous = self._checkpoint()
            session.current_index += 1
            self._awaiting_advance = False
            self._commit("advance", previous)
            return session.current_index

    def pause(self) -> None:
        with self._lock:
            if self._session.status != SessionStatus.ACTIVE:
                raise InvalidTransition("pause", self._session.status.value)
            previous = self._checkpoint()
            self._session.status = SessionStatus.PAUSED
            self._commit("pause", previous)

    def resume(self) -> None:
        with self._lock:
            if self._session.status != SessionStatus.PAUSED:
                raise InvalidTransition("resume", self._session.status.value)
            previous = self._checkpoint()
            self._session.status = SessionStatus.ACTIVE
            self._commit("resume", previous)

    def complete(self, total_score: int, summary: str) -> None:
        """Finish the session. Irreversible."""
        with self._lock:
            session = self._session
            if session.status != SessionStatus.ACTIVE:
                raise InvalidTransition("complete", session.status.value)
            if not session.is_finished:
                raise InvalidTransition(
                    "complete",
                    session.status.value,
                    f"{len(session.questions) - session.current_index} question(s) remain",
                )
            expected = session.score_sum()
            if total_score != expected:
                raise ContractViolation(
                    f"Total score {total_score} does not match recorded scores ({expected})"
                )

            previous = self._checkpoint()
            session.status = SessionStatus.COMPLETED
            session.ended_at = self.clock.now()
            session.total_score = total_score
            session.summary = summary
            self._commit("complete", previous)
            logger.info(f"Session {session.id} completed with {total_score}/{session.max_score}")

    @contextmanager
    def transaction(self) -> Iterator[SessionStateMachine]:
        """
        Group several transitions so they commit together.

        If anything inside the block raises, the session and the
        submit/advance flag return to their state on entry. Listeners are not
        notified of the rollback.
        """
        with self._lock:
            previous = self._checkpoint()
            try:
                yield self
            except Exception:
                self._rollback(previous)
                raise

    # =========================================================================
    # Invariants
    # =========================================================================

    def check_invariants(self) -> None:
        """
        Validate the session against its data-model invariants.

        The question under the cursor may be answered only while the
        submit/advance pair is in progress.

        Raises:
            ContractViolation: on the first broken invariant
        """
        session = self._session
        count = len(session.questions)

        if not 0 <= session.current_index <= count:
            raise ContractViolation(f"Cursor {session.current_index} outside [0, {count}]")
        if session.status == SessionStatus.COMPLETED and session.current_index != count:
            raise ContractViolation("Completed session must have its cursor at the end")

        for position, question in enumerate(session.questions):
            pending = self._awaiting_advance and position == session.current_index
            if position < session.current_index and not question.is_answered:
                raise ContractViolation(f"Question {question.id} behind the cursor is unanswered")
            if position >= session.current_index and question.is_answered and not pending:
                raise ContractViolation(f"Question {question.id} ahead of the cursor is answered")

        completed = session.status == SessionStatus.COMPLETED
        if completed != (session.total_score is not None):
            raise ContractViolation("total_score must be set exactly when Completed")
        if completed and session.total_score != session.score_sum():
            raise ContractViolation("total_score does not equal the sum of question scores")

    def _checkpoint(self) -> tuple[Session, bool]:
        return copy.deepcopy(self._session), self._awaiting_advance

    def _rollback(self, previous: tuple[Session, bool]) -> None:
        session, awaiting_advance = previous
        vars(self._session).update(vars(session))
        self._awaiting_advance = awaiting_advance

    def _commit(self, transition: str, previous: tuple[Session, bool]) -> None:
        try:
            self._notify(transition)
        except Exception as e:
            self._rollback(previous)
            logger.warning(f"Session {self._session.id}: {transition} rolled back: {e}")
            raise

    def _notify(self, transition: str) -> None:
        logger.debug(
            f"Session {self._session.id}: {transition} -> "
            f"{self._session.status.value} @ {self._session.current_index}"
        )
        for listener in self._listeners:
            listener(transition, self._session)
