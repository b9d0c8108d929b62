"""
Core Module - errors and logging shared by every package.
"""

from .errors import (
    ContractViolation,
    DuplicateSubmission,
    GeminiError,
    InvalidTransition,
    MockInterviewError,
    ProfileIncomplete,
    QuestionMismatch,
    QuestionSourceError,
    ScorerError,
    SessionInProgress,
    SessionStoreError,
    SubmissionFailed,
)
from .log_setup import configure_logging

__all__ = [
    "ContractViolation",
    "DuplicateSubmission",
    "GeminiError",
    "InvalidTransition",
    "MockInterviewError",
    "ProfileIncomplete",
    "QuestionMismatch",
    "QuestionSourceError",
    "ScorerError",
    "SessionInProgress",
    "SessionStoreError",
    "SubmissionFailed",
    "configure_logging",
]
