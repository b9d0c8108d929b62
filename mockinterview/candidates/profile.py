"""
Candidate Profile: contact details and the interview gate.

Contact fields are pulled from already-extracted resume text; whatever is
missing is collected through ProfileForm before an interview may start.
"""

from __future__ import annotations

import re
import uuid

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from mockinterview.core.errors import MockInterviewError
from mockinterview.engine.clock import Clock, SystemClock
from mockinterview.engine.models import Candidate
from mockinterview.engine.store import SessionStore

CONTACT_FIELDS = ("name", "email", "phone")

_EMAIL_SEARCH = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
_EMAIL_FULL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_SEARCH = re.compile(r"(\+?[\d\s\-()]{10,})")
_PHONE_CHARS = re.compile(r"^[\d\s\-()+]+$")
_NON_DIGITS = re.compile(r"\D")

MIN_PHONE_DIGITS = 10


def _digit_count(text: str) -> int:
    return len(_NON_DIGITS.sub("", text))


def _is_email(text: str) -> bool:
    return bool(_EMAIL_FULL.match(text))


def _is_phone(text: str) -> bool:
    return bool(_PHONE_CHARS.match(text)) and _digit_count(text) >= MIN_PHONE_DIGITS


def extract_contact_details(resume_text: str) -> dict[str, str]:
    """
    Best-effort name, email and phone from plain resume text.

    Name: first two words of the first non-empty line, unless that line is
    an email address or phone number. Email and phone: first match anywhere.
    Missing fields come back as empty strings.
    """
    lines = [line.strip() for line in (resume_text or "").splitlines() if line.strip()]
    details = {"name": "", "email": "", "phone": ""}

    if lines and not _is_email(lines[0]) and not _is_phone(lines[0]):
        details["name"] = " ".join(lines[0].split()[:2])

    for line in lines:
        match = _EMAIL_SEARCH.search(line)
        if match:
            details["email"] = match.group(1)
            break

    for line in lines:
        match = _PHONE_SEARCH.search(line)
        if match and _digit_count(match.group(1)) >= MIN_PHONE_DIGITS:
            details["phone"] = match.group(1).strip()
            break

    return details


def missing_fields(candidate: Candidate) -> list[str]:
    """Contact fields still blank on a candidate."""
    return [name for name in CONTACT_FIELDS if not getattr(candidate, name).strip()]


def interview_blockers(candidate: Candidate) -> list[str]:
    """Everything that keeps a candidate from starting an interview."""
    blockers = missing_fields(candidate)
    if not candidate.profile_complete and not blockers:
        blockers.append("profile confirmation")
    if not candidate.resume_text.strip():
        blockers.append("resume text")
    return blockers


class ProfileForm(BaseModel):
    """Contact details entered by the candidate."""

    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    phone: str = Field(..., description="Phone number, at least 10 digits")

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Email is required")
        if not _is_email(value):
            raise ValueError("Please enter a valid email address")
        return value

    @field_validator("phone")
    @classmethod
    def _valid_phone(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Phone number is required")
        if not _is_phone(value):
            raise ValueError("Please enter a valid phone number")
        return value


class ProfileService:
    """Registers candidates and completes their profiles."""

    def __init__(self, store: SessionStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()

    def register(self, resume_text: str, **known: str) -> Candidate:
        """
        Create a candidate from resume text.

        Explicit keyword values (name, email, phone) win over extracted ones.
        The profile counts as complete when every contact field is filled.
        """
        details = extract_contact_details(resume_text)
        for name in CONTACT_FIELDS:
            if known.get(name):
                details[name] = known[name].strip()

        candidate = Candidate(
            id=f"candidate_{uuid.uuid4().hex[:12]}",
            created_at=self.clock.now(),
            resume_text=resume_text,
            **details,
        )
        candidate.profile_complete = not missing_fields(candidate)
        self.store.save_candidate(candidate)

        logger.info(
            f"Registered candidate {candidate.id}"
            + ("" if candidate.profile_complete else f" (missing: {', '.join(missing_fields(candidate))})")
        )
        return candidate

    def missing_fields(self, candidate: Candidate) -> list[str]:
        return missing_fields(candidate)

    def complete_profile(self, candidate_id: str, form: ProfileForm) -> Candidate:
        """
        Apply validated contact details and mark the profile complete.

        Raises:
            MockInterviewError: unknown candidate
        """
        candidate = self.store.get_candidate(candidate_id)
        if candidate is None:
            raise MockInterviewError(f"Unknown candidate: {candidate_id}")

        candidate.name = form.name
        candidate.email = form.email
        candidate.phone = form.phone
        candidate.profile_complete = True
        self.store.save_candidate(candidate)
        return candidate

    def can_start_interview(self, candidate: Candidate) -> bool:
        return not interview_blockers(candidate)
