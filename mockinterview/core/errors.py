"""
Exception taxonomy for the interview engine.

Contract violations are programming errors and must fail loudly.
Scorer, question-source and remote-model errors are recoverable and are
always masked by a deterministic fallback before they reach a caller.
"""

from __future__ import annotations


class MockInterviewError(Exception):
    """Base class for all engine errors."""


# =============================================================================
# Contract Violations
# =============================================================================


class ContractViolation(MockInterviewError):
    """A caller broke an engine contract; the session was left unchanged."""


class InvalidTransition(ContractViolation):
    """Transition attempted from a state that does not allow it."""

    def __init__(self, transition: str, status: str, reason: str = ""):
        self.transition = transition
        self.status = status
        message = f"Cannot {transition} while session is {status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class QuestionMismatch(ContractViolation):
    """An answer targeted a question other than the current one."""

    def __init__(self, expected: str | None, received: str):
        self.expected = expected
        self.received = received
        super().__init__(f"Answer for {received!r} but current question is {expected!r}")


class DuplicateSubmission(ContractViolation):
    """The current question already has a recorded answer."""

    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Question {question_id!r} was already answered")


class SessionInProgress(ContractViolation):
    """Another session already occupies the current-session slot."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id!r} is still active or paused")


class ProfileIncomplete(ContractViolation):
    """Interview start requested before the profile gate was satisfied."""

    def __init__(self, candidate_id: str, missing: list[str]):
        self.candidate_id = candidate_id
        self.missing = missing
        super().__init__(
            f"Candidate {candidate_id!r} cannot start an interview; missing: {', '.join(missing)}"
        )


# =============================================================================
# Recoverable Capability Failures
# =============================================================================


class GeminiError(MockInterviewError):
    """Remote model call failed (transport, status or payload)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ScorerError(MockInterviewError):
    """Remote scoring or summary produced no usable result."""


class QuestionSourceError(MockInterviewError):
    """Question generation produced no usable question list."""


# =============================================================================
# Storage & User-Facing
# =============================================================================


class SessionStoreError(MockInterviewError):
    """Persisted state could not be written or would be corrupted."""


class SubmissionFailed(MockInterviewError):
    """User-facing failure to process an answer; nothing was committed."""

    retry_hint = "Failed to process answer. Please try again."

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"{self.retry_hint} ({cause})")
