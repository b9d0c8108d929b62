"""
Question sources.

The orchestrator asks for the question list exactly once, at session
creation. A remote generator is used when the model is reachable; any
failure falls back to the static reference set so a session always starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from mockinterview.core.errors import GeminiError, QuestionSourceError
from mockinterview.integrations.gemini_client import GeminiClient, GenerationConfig

from .models import Difficulty, Question

DEFAULT_TIME_LIMITS = {
    Difficulty.EASY: 20,
    Difficulty.MEDIUM: 60,
    Difficulty.HARD: 120,
}


@dataclass(frozen=True)
class QuestionSpec:
    """Question content before it is bound to a session."""

    text: str
    difficulty: Difficulty
    time_limit_seconds: int


# Reference configuration: 2 easy / 2 medium / 2 hard
STATIC_QUESTIONS: tuple[QuestionSpec, ...] = (
    QuestionSpec("What is React and what are its main features?", Difficulty.EASY, 20),
    QuestionSpec("Explain the difference between props and state in React.", Difficulty.EASY, 20),
    QuestionSpec(
        "How would you optimize a React application for better performance?",
        Difficulty.MEDIUM,
        60,
    ),
    QuestionSpec(
        "Describe the Node.js event loop and how it handles asynchronous operations.",
        Difficulty.MEDIUM,
        60,
    ),
    QuestionSpec(
        "Design a scalable microservices architecture for an e-commerce platform. "
        "What challenges would you face?",
        Difficulty.HARD,
        120,
    ),
    QuestionSpec(
        "Implement a real-time chat application using WebSockets. "
        "How would you handle connection failures and message ordering?",
        Difficulty.HARD,
        120,
    ),
)


def build_questions(specs: list[QuestionSpec] | tuple[QuestionSpec, ...]) -> list[Question]:
    """Bind specs to a session: ids ``q_1..q_n`` in order."""
    return [
        Question(
            id=f"q_{index}",
            text=spec.text,
            difficulty=spec.difficulty,
            time_limit_seconds=spec.time_limit_seconds,
        )
        for index, spec in enumerate(specs, start=1)
    ]


class StaticQuestionSource:
    """Fixed question set, optionally re-timed from configuration."""

    name = "static"

    def __init__(self, time_limits: dict[Difficulty, int] | None = None):
        self.time_limits = time_limits

    async def fetch(self) -> list[QuestionSpec]:
        if not self.time_limits:
            return list(STATIC_QUESTIONS)
        return [
            QuestionSpec(
                spec.text,
                spec.difficulty,
                self.time_limits.get(spec.difficulty, spec.time_limit_seconds),
            )
            for spec in STATIC_QUESTIONS
        ]


QUESTIONS_PROMPT = """Generate {total} interview questions for a {role}.
Format: {layout}.
Return as JSON array with text, difficulty, and timeLimit fields."""


class RemoteQuestionSource:
    """Generates a question list through the Gemini API."""

    name = "remote"

    def __init__(
        self,
        client: GeminiClient,
        role: str = "full-stack developer position (React/Node.js)",
        mix: dict[Difficulty, int] | None = None,
        time_limits: dict[Difficulty, int] | None = None,
    ):
        self.client = client
        self.role = role
        self.mix = mix or {Difficulty.EASY: 2, Difficulty.MEDIUM: 2, Difficulty.HARD: 2}
        self.time_limits = time_limits or dict(DEFAULT_TIME_LIMITS)

    def is_available(self) -> bool:
        return self.client.is_available()

    def _prompt(self) -> str:
        layout = ", ".join(
            f"{count} {difficulty.value} questions ({self.time_limits[difficulty]}s each)"
            for difficulty, count in self.mix.items()
            if count
        )
        return QUESTIONS_PROMPT.format(total=sum(self.mix.values()), role=self.role, layout=layout)

    async def fetch(self) -> list[QuestionSpec]:
        try:
            payload = await self.client.generate_json(self._prompt(), GenerationConfig(temperature=0.7))
        except GeminiError as e:
            raise QuestionSourceError(f"Question generation failed: {e}") from e
        return self._parse(payload)

    def _parse(self, payload: Any) -> list[QuestionSpec]:
        if not isinstance(payload, list) or not payload:
            raise QuestionSourceError("Expected a non-empty JSON array of questions")

        specs = []
        for item in payload:
            if not isinstance(item, dict):
                raise QuestionSourceError(f"Question entry is not an object: {item!r}")
            text = str(item.get("text") or "").strip()
            if not text:
                raise QuestionSourceError("Question entry has no text")
            try:
                difficulty = Difficulty(str(item.get("difficulty", "")).lower())
            except ValueError as e:
                raise QuestionSourceError(f"Unknown difficulty: {item.get('difficulty')!r}") from e

            limit = item.get("timeLimit")
            if isinstance(limit, bool) or not isinstance(limit, (int, float)) or limit <= 0:
                limit = self.time_limits[difficulty]
            specs.append(QuestionSpec(text, difficulty, int(limit)))

        expected = sum(self.mix.values())
        if len(specs) != expected:
            raise QuestionSourceError(f"Expected {expected} questions, got {len(specs)}")

        # Interview order: easy, then medium, then hard
        order = list(self.mix)
        return sorted(specs, key=lambda s: order.index(s.difficulty))


class QuestionProvider:
    """Remote-first question source with a static fallback."""

    def __init__(
        self,
        remote: RemoteQuestionSource | None = None,
        fallback: StaticQuestionSource | None = None,
    ):
        self.remote = remote
        self.fallback = fallback or StaticQuestionSource()

    async def fetch(self) -> list[Question]:
        """Return the session's question list. Never raises."""
        if self.remote is not None and self.remote.is_available():
            try:
                specs = await self.remote.fetch()
                logger.info(f"Generated {len(specs)} questions remotely")
                return build_questions(specs)
            except Exception as e:
                logger.warning(f"Question generation failed ({e}); using static question set")
        else:
            logger.debug("Remote question source unavailable; using static question set")

        return build_questions(await self.fallback.fetch())
