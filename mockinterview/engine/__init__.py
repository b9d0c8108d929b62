"""
Interview engine.

Components:
- models: Question, Session, Candidate, UiPreferences
- clock: injectable time source (system and manual)
- timer: per-question countdown
- state_machine: session lifecycle transitions
- scoring / questions: remote-first capabilities with deterministic fallbacks
- store: JSON persistence for resume-after-interruption
- orchestrator: the per-question control loop (import it directly)
"""

from .clock import ManualClock, SystemClock
from .models import Candidate, Difficulty, Question, Session, SessionStatus, UiPreferences, ViewTab
from .state_machine import SessionStateMachine
from .store import SessionStore
from .timer import QuestionTimer

__all__ = [
    "Candidate",
    "Difficulty",
    "ManualClock",
    "Question",
    "QuestionTimer",
    "Session",
    "SessionStateMachine",
    "SessionStatus",
    "SessionStore",
    "SystemClock",
    "UiPreferences",
    "ViewTab",
]
