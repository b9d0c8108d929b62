"""
Session Orchestrator: the asynchronous control loop of an interview.

Per-question cycle:
1. Start the question timer with the question's full time limit
2. Wait for a manual submit or timer expiry (forced submit of the draft)
3. Cancel the timer, score the answer (fallback on any scorer failure)
4. submit_answer + advance on the state machine
5. Next question, or total + summary + complete at the end

Only one submission per question index is in flight at a time. Scoring is
never aborted; a result that arrives after the session changed state (for
example a pause during scoring) is discarded.
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any

from loguru import logger

from mockinterview.candidates.profile import interview_blockers
from mockinterview.config import Settings, get_settings
from mockinterview.core.errors import (
    ContractViolation,
    ProfileIncomplete,
    SessionInProgress,
    SessionStoreError,
    SubmissionFailed,
)
from mockinterview.integrations.gemini_client import GeminiClient

from .clock import Clock, SystemClock
from .models import Candidate, Difficulty, Question, Session, SessionStatus, UiPreferences, ViewTab
from .questions import QuestionProvider, RemoteQuestionSource, StaticQuestionSource
from .scoring import FallbackScorer, RemoteScorer, ScoringGateway, SummaryItem
from .state_machine import SessionStateMachine
from .store import SessionStore
from .timer import QuestionTimer


@dataclass
class SubmissionOutcome:
    """Result of one submission attempt."""

    accepted: bool
    forced: bool = False
    question: Question | None = None
    completed: bool = False
    reason: str | None = None


class SessionObserver:
    """
    Hooks for a front end. Every method is optional; defaults do nothing.

    Callbacks run on the event loop and must not block.
    """

    def on_question_started(self, question: Question, index: int, total: int) -> None:
        pass

    def on_tick(self, remaining: int) -> None:
        pass

    def on_answer_recorded(self, question: Question, index: int, forced: bool) -> None:
        pass

    def on_paused(self, session: Session) -> None:
        pass

    def on_resumed(self, session: Session) -> None:
        pass

    def on_completed(self, session: Session) -> None:
        pass

    def on_view_changed(self, tab: ViewTab) -> None:
        pass

    def on_error(self, error: Exception) -> None:
        pass


class CurrentSession:
    """
    The single current-session slot.

    Written only by the orchestrator, after successful transitions. Consumers
    (dashboard, views) receive this handle explicitly and read copies.
    """

    def __init__(self) -> None:
        self._machine: SessionStateMachine | None = None
        self._candidate: Candidate | None = None
        self._timer: QuestionTimer | None = None

    @property
    def occupied(self) -> bool:
        return self._machine is not None

    @property
    def session(self) -> Session | None:
        return self._machine.snapshot() if self._machine else None

    @property
    def candidate(self) -> Candidate | None:
        return copy.deepcopy(self._candidate)

    @property
    def status(self) -> SessionStatus | None:
        return self._machine.status if self._machine else None

    @property
    def question(self) -> Question | None:
        return self._machine.current_question if self._machine else None

    @property
    def progress(self) -> tuple[int, int]:
        """(answered, total) for the bound session, (0, 0) when empty."""
        if not self._machine:
            return 0, 0
        session = self._machine.session
        return min(session.current_index, len(session.questions)), len(session.questions)

    @property
    def remaining_seconds(self) -> int | None:
        """Countdown value for display only."""
        if self._timer is None or not self._timer.running:
            return None
        return self._timer.remaining

    def _bind(self, machine: SessionStateMachine, candidate: Candidate | None, timer: QuestionTimer) -> None:
        self._machine = machine
        self._candidate = candidate
        self._timer = timer

    def _set_candidate(self, candidate: Candidate | None) -> None:
        self._candidate = candidate

    def _clear(self) -> None:
        self._machine = None
        self._candidate = None


class SessionOrchestrator:
    """Glues timer, state machine, scorer and store into interview cycles."""

    def __init__(
        self,
        store: SessionStore,
        scoring: ScoringGateway | None = None,
        questions: QuestionProvider | None = None,
        clock: Clock | None = None,
        observer: SessionObserver | None = None,
        tick_seconds: float = 1.0,
    ):
        self.store = store
        self.scoring = scoring or ScoringGateway()
        self.questions = questions or QuestionProvider()
        self.clock = clock or SystemClock()
        self.observer = observer or SessionObserver()

        self.timer = QuestionTimer(
            clock=self.clock,
            on_expire=self._on_timer_expired,
            on_tick=self._on_tick,
            tick_seconds=tick_seconds,
        )
        self.current = CurrentSession()

        self._machine: SessionStateMachine | None = None
        self._candidate: Candidate | None = None
        self._draft = ""
        self._in_flight: int | None = None
        self._finalizing = False
        self._tasks: set[asyncio.Task] = set()
        self._completed = asyncio.Event()
        self._last_completed: Session | None = None
        self._owned_clients: list[GeminiClient] = []

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        observer: SessionObserver | None = None,
        clock: Clock | None = None,
    ) -> SessionOrchestrator:
        """Wire the production collaborators from configuration."""
        settings = settings or get_settings()
        client = GeminiClient(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            model=settings.ai_model,
            timeout_seconds=settings.ai_timeout_seconds,
            retry_attempts=settings.ai_retry_attempts,
        )
        time_limits = {Difficulty(k): v for k, v in settings.get_time_limits().items()}
        mix = {Difficulty(k): v for k, v in settings.get_question_mix().items()}

        orchestrator = cls(
            store=SessionStore(settings.state_path),
            scoring=ScoringGateway(
                remote=RemoteScorer(client),
                fallback=FallbackScorer(settings.extra_keywords),
                timeout_seconds=settings.ai_timeout_seconds,
            ),
            questions=QuestionProvider(
                remote=RemoteQuestionSource(
                    client, role=settings.interview_role, mix=mix, time_limits=time_limits
                ),
                fallback=StaticQuestionSource(time_limits),
            ),
            clock=clock,
            observer=observer,
            tick_seconds=settings.timer_tick_seconds,
        )
        orchestrator._owned_clients.append(client)
        return orchestrator

    # =========================================================================
    # Observation
    # =========================================================================

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def last_completed(self) -> Session | None:
        return self._last_completed

    # =========================================================================
    # Session Lifecycle
    # =========================================================================

    async def start_session(self, candidate: Candidate) -> Session:
        """
        Create a session for a candidate and enter the first question.

        Raises:
            ProfileIncomplete: profile not complete or no resume text
            SessionInProgress: another session is Active or Paused
        """
        missing = interview_blockers(candidate)
        if missing:
            raise ProfileIncomplete(candidate.id, missing)

        if self._machine is not None:
            raise SessionInProgress(self._machine.session.id)
        resumable = self.store.load_resumable()
        if resumable is not None:
            raise SessionInProgress(resumable[0].id)

        questions = await self.questions.fetch()
        machine = SessionStateMachine.create(candidate.id, questions, clock=self.clock)
        self.store.save_session(machine.session, candidate)
        self._bind(machine, candidate)

        logger.info(f"Interview {machine.session.id} started for candidate {candidate.id}")
        self._enter_question()
        return machine.snapshot()

    async def restore(self) -> Session | None:
        """
        Rehydrate the resumable session from the store, if any.

        Active sessions re-enter the cycle with a fresh full timer; Paused
        sessions wait for ``resume()``. Snapshots that fail validation never reach
        here; the store quarantines them.
        """
        if self._machine is not None:
            raise SessionInProgress(self._machine.session.id)

        found = self.store.load_resumable()
        if found is None:
            return None

        session, candidate = found
        if candidate is None:
            logger.warning(f"Candidate {session.candidate_id} missing for session {session.id}")
        machine = SessionStateMachine.from_snapshot(session, clock=self.clock)
        self._bind(machine, candidate)
        logger.info(
            f"Restored session {session.id} ({session.status.value}) at question "
            f"{session.current_index + 1}/{len(session.questions)}"
        )

        if machine.awaiting_advance:
            # Interrupted between recording an answer and moving on
            machine.advance()

        if machine.status == SessionStatus.ACTIVE:
            self._enter_question()
        return machine.snapshot()

    async def pause(self) -> Session:
        """Cancel the countdown and pause. In-flight scoring is left to finish."""
        machine = self._require_machine()
        self.timer.cancel()
        machine.pause()
        snapshot = machine.snapshot()
        self.observer.on_paused(snapshot)
        return snapshot

    async def resume(self) -> Session:
        """Resume with a fresh full-duration timer for the current question."""
        machine = self._require_machine()
        machine.resume()
        snapshot = machine.snapshot()
        self.observer.on_resumed(snapshot)
        self._enter_question(reset_draft=False)
        return snapshot

    def switch_view(self, tab: ViewTab | str) -> UiPreferences:
        """Command interface for front-end view changes; persisted."""
        tab = ViewTab(tab)
        preferences = self.store.load_ui_preferences()
        preferences.active_tab = tab
        self.store.save_ui_preferences(preferences)
        self.observer.on_view_changed(tab)
        return preferences

    async def wait_idle(self) -> None:
        """Wait for background submissions and finalization to settle."""
        while self._tasks:
            await asyncio.wait(list(self._tasks))

    async def wait_completed(self) -> Session | None:
        await self._completed.wait()
        return self._last_completed

    async def shutdown(self) -> None:
        """Stop the timer, let in-flight work finish, close owned clients."""
        self.timer.cancel()
        await self.wait_idle()
        for client in self._owned_clients:
            await client.close()
        self._owned_clients.clear()

    # =========================================================================
    # Answers
    # =========================================================================

    def update_draft(self, text: str) -> None:
        """Replace the typed-so-far answer used for forced submissions."""
        self._draft = text

    def append_draft(self, line: str) -> None:
        self._draft = f"{self._draft}\n{line}" if self._draft else line

    async def submit(self, answer_text: str | None = None) -> SubmissionOutcome:
        """
        Manual submission for the current question.

        Args:
            answer_text: Answer to submit; defaults to the current draft

        Raises:
            SubmissionFailed: the answer was rejected or could not be saved
        """
        machine = self._require_machine()
        if machine.status != SessionStatus.ACTIVE:
            return SubmissionOutcome(accepted=False, reason=f"session is {machine.status.value}")
        if machine.session.is_finished:
            # Every answer is recorded; only completion is outstanding
            await self._finalize()
            done = self._machine is None
            return SubmissionOutcome(
                accepted=done, completed=done, reason=None if done else "completion in progress"
            )

        text = self._draft if answer_text is None else answer_text
        return await self._process_submission(machine.current_index, text, forced=False)

    async def _process_submission(self, index: int, text: str, forced: bool) -> SubmissionOutcome:
        machine = self._machine
        if machine is None:
            return SubmissionOutcome(accepted=False, forced=forced, reason="no session")
        if self._in_flight == index:
            logger.debug(f"Ignoring duplicate submission for question {index + 1}")
            return SubmissionOutcome(accepted=False, forced=forced, reason="submission already in progress")

        self._in_flight = index
        self.timer.cancel()
        try:
            question = machine.session.questions[index]
            result = await self.scoring.score(question.text, text, question.difficulty)

            if (
                machine is not self._machine
                or machine.status != SessionStatus.ACTIVE
                or machine.current_index != index
                or machine.awaiting_advance
            ):
                logger.info(f"Discarding score for question {index + 1}: session state changed")
                return SubmissionOutcome(
                    accepted=False, forced=forced, reason="session state changed while scoring"
                )

            try:
                with machine.transaction():
                    recorded = machine.submit_answer(question.id, text, result.score, result.feedback)
                    machine.advance()
            except (ContractViolation, SessionStoreError) as e:
                logger.error(f"Answer for question {index + 1} rejected: {e}")
                if machine.status == SessionStatus.ACTIVE and not machine.awaiting_advance:
                    # Question is still open; give it a fresh countdown
                    self.timer.start(question.time_limit_seconds)
                if forced:
                    self.observer.on_error(e)
                    return SubmissionOutcome(accepted=False, forced=True, reason=str(e))
                raise SubmissionFailed(e) from e
        finally:
            self._in_flight = None

        kind = "forced" if forced else "manual"
        logger.info(f"Question {index + 1} answered ({kind}), score {recorded.score}")
        self.observer.on_answer_recorded(recorded, index, forced)

        if machine.session.is_finished:
            await self._finalize()
            return SubmissionOutcome(
                accepted=True, forced=forced, question=recorded, completed=self._machine is None
            )

        self._enter_question()
        return SubmissionOutcome(accepted=True, forced=forced, question=recorded)

    # =========================================================================
    # Internals
    # =========================================================================

    def _enter_question(self, reset_draft: bool = True) -> None:
        machine = self._require_machine()
        session = machine.session
        if session.is_finished:
            self._spawn(self._finalize())
            return

        if reset_draft:
            self._draft = ""
        question = session.current_question
        self.timer.start(question.time_limit_seconds)
        self.observer.on_question_started(question, session.current_index, len(session.questions))

    async def _finalize(self) -> None:
        machine = self._machine
        if machine is None or self._finalizing:
            return

        self._finalizing = True
        try:
            self.timer.cancel()
            session = machine.session
            total = session.score_sum()
            items = [
                SummaryItem(q.text, q.answer or "", q.score or 0) for q in session.questions
            ]
            summary = await self.scoring.summarize(items, total)

            if machine is not self._machine or machine.status != SessionStatus.ACTIVE:
                logger.info("Discarding summary: session state changed while summarizing")
                return
            try:
                machine.complete(total, summary)
            except SessionStoreError as e:
                logger.error(f"Could not save completed session {machine.session.id}: {e}")
                raise SubmissionFailed(e) from e
        finally:
            self._finalizing = False

        completed = machine.snapshot()
        if self._candidate is not None:
            self._candidate.interview_complete = True
            self._candidate.final_score = completed.total_score
            self._candidate.summary = completed.summary
            try:
                self.store.save_candidate(self._candidate)
            except SessionStoreError as e:
                # The session itself is already stored as Completed
                logger.error(f"Could not save result for candidate {self._candidate.id}: {e}")
                self.observer.on_error(e)

        self._release()
        self._last_completed = completed
        self._completed.set()
        self.observer.on_completed(completed)

    def _bind(self, machine: SessionStateMachine, candidate: Candidate | None) -> None:
        candidate = copy.deepcopy(candidate)
        self._machine = machine
        self._candidate = candidate
        self._last_completed = None
        self._completed.clear()
        machine.add_listener(self._persist)
        self.current._bind(machine, candidate, self.timer)

    def _release(self) -> None:
        self.timer.cancel()
        self._machine = None
        self._candidate = None
        self._draft = ""
        self.current._clear()

    def _persist(self, transition: str, session: Session) -> None:
        self.store.save_session(session, self._candidate)

    def _require_machine(self) -> SessionStateMachine:
        if self._machine is None:
            raise ContractViolation("No interview is in progress")
        return self._machine

    def _on_tick(self, remaining: int) -> None:
        self.observer.on_tick(remaining)

    def _on_timer_expired(self) -> None:
        machine = self._machine
        if machine is None or machine.status != SessionStatus.ACTIVE:
            return
        index = machine.current_index
        logger.info(f"Time expired on question {index + 1}; submitting draft")
        self._spawn(self._process_submission(index, self._draft, forced=True))

    def _spawn(self, coro: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error("Interview background task failed")
            self.observer.on_error(error)
