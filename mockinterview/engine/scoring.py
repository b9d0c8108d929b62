"""
Answer scoring and interview summaries.

Two variants share the Scorer interface:

- RemoteScorer: asks the generative model; may fail in many ways.
- FallbackScorer: deterministic heuristic; never fails.

ScoringGateway picks between them on every call using the remote scorer's
availability predicate, and masks any remote failure with the fallback so the
interview cycle always gets a score.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

from loguru import logger

from mockinterview.core.errors import GeminiError, ScorerError
from mockinterview.integrations.gemini_client import GeminiClient, GenerationConfig

from .models import Difficulty

SCORE_MIN = 1
SCORE_MAX = 10

DEFAULT_KEYWORDS = (
    "react",
    "node",
    "javascript",
    "api",
    "database",
    "component",
    "state",
    "props",
)


@dataclass(frozen=True)
class ScoreResult:
    """Score in [1, 10] with feedback text."""

    score: int
    feedback: str


@dataclass(frozen=True)
class SummaryItem:
    """One answered question as seen by the summary capability."""

    question_text: str
    answer_text: str
    score: int


def clamp(value: int, low: int = SCORE_MIN, high: int = SCORE_MAX) -> int:
    return max(low, min(high, value))


# =============================================================================
# Scorer Interface
# =============================================================================


class Scorer(ABC):
    """Scoring capability consumed by the orchestrator."""

    name: str = "scorer"

    def is_available(self) -> bool:
        """Whether this scorer can be used right now."""
        return True

    @abstractmethod
    async def score(self, question_text: str, answer_text: str, difficulty: Difficulty) -> ScoreResult:
        """Score one answer."""

    @abstractmethod
    async def summarize(self, items: list[SummaryItem], total_score: int) -> str:
        """Summarize a finished interview."""


# =============================================================================
# Fallback (Deterministic)
# =============================================================================


class FallbackScorer(Scorer):
    """
    Local scoring from answer length, word count and domain keywords.

    Same input always yields the same score and text.
    """

    name = "fallback"

    LONG_ANSWER_WORDS = 30
    STRONG_THRESHOLD = 7
    WEAK_THRESHOLD = 5

    def __init__(self, keywords: Iterable[str] | None = None):
        extra = [k.lower() for k in (keywords or [])]
        self.keywords = tuple(dict.fromkeys([*DEFAULT_KEYWORDS, *extra]))

    def keyword_hits(self, answer_text: str) -> int:
        lowered = answer_text.lower()
        return sum(1 for keyword in self.keywords if keyword in lowered)

    def score_sync(self, answer_text: str, difficulty: Difficulty) -> ScoreResult:
        answer = answer_text or ""
        words = len(answer.split())
        hits = self.keyword_hits(answer)
        word_bonus = 1 if words >= self.LONG_ANSWER_WORDS else 0

        score = clamp(len(answer) // 20 + hits + word_bonus)
        if difficulty == Difficulty.EASY:
            score = min(SCORE_MAX, score + 1)
        elif difficulty == Difficulty.HARD:
            score = max(SCORE_MIN, score - 1)

        if not answer.strip():
            feedback = "No answer was provided."
        else:
            feedback = (
                f"Answer scored on length ({words} words) and technical keywords ({hits} found). "
                "Consider providing more detailed technical explanations."
            )
        return ScoreResult(score=score, feedback=feedback)

    async def score(self, question_text: str, answer_text: str, difficulty: Difficulty) -> ScoreResult:
        return self.score_sync(answer_text, difficulty)

    def summarize_sync(self, items: list[SummaryItem], total_score: int) -> str:
        count = len(items)
        max_total = SCORE_MAX * count
        average = total_score / count if count else 0.0
        strong = sum(1 for item in items if item.score >= self.STRONG_THRESHOLD)
        weak = sum(1 for item in items if item.score < self.WEAK_THRESHOLD)

        summary = (
            f"Interview completed with a total score of {total_score}/{max_total} "
            f"(average: {average:.1f}/10). "
        )
        if strong > weak:
            summary += f"The candidate demonstrated strong technical knowledge with {strong} high-scoring answers. "
        elif weak > strong:
            summary += f"The candidate showed areas for improvement with {weak} low-scoring answers. "
        else:
            summary += "The candidate showed mixed performance across different questions. "
        summary += "Overall, the candidate shows potential for the role with room for growth in specific technical areas."
        return summary

    async def summarize(self, items: list[SummaryItem], total_score: int) -> str:
        return self.summarize_sync(items, total_score)


# =============================================================================
# Remote (Generative Model)
# =============================================================================


SCORE_PROMPT = """Score this interview answer on a scale of 1-10:

Question: {question}
Difficulty: {difficulty}
Answer: {answer}

Consider: technical accuracy, completeness, clarity, and relevance.
Return JSON with score (number) and feedback (string)."""

SUMMARY_PROMPT = """Generate a brief interview summary for the candidate:

Total Score: {total}/{max_total}
Questions and Answers:
{transcript}

Provide a concise summary highlighting strengths, areas for improvement, and overall assessment."""


class RemoteScorer(Scorer):
    """Scores and summarizes through the Gemini API."""

    name = "remote"

    def __init__(self, client: GeminiClient):
        self.client = client

    def is_available(self) -> bool:
        return self.client.is_available()

    async def score(self, question_text: str, answer_text: str, difficulty: Difficulty) -> ScoreResult:
        prompt = SCORE_PROMPT.format(
            question=question_text,
            difficulty=difficulty.value,
            answer=answer_text or "(no answer)",
        )
        try:
            payload = await self.client.generate_json(
                prompt, GenerationConfig(temperature=0.3, max_output_tokens=512)
            )
        except GeminiError as e:
            raise ScorerError(f"Remote scoring failed: {e}") from e
        return self._parse_score(payload)

    async def summarize(self, items: list[SummaryItem], total_score: int) -> str:
        transcript = "\n\n".join(
            f"{i}. {item.question_text}\nAnswer: {item.answer_text}\nScore: {item.score}/10"
            for i, item in enumerate(items, start=1)
        )
        prompt = SUMMARY_PROMPT.format(
            total=total_score, max_total=SCORE_MAX * len(items), transcript=transcript
        )
        try:
            text = await self.client.generate(
                prompt, GenerationConfig(temperature=0.5, max_output_tokens=512)
            )
        except GeminiError as e:
            raise ScorerError(f"Remote summary failed: {e}") from e
        if not text or not text.strip():
            raise ScorerError("Remote summary was empty")
        return text.strip()

    @staticmethod
    def _parse_score(payload: Any) -> ScoreResult:
        if not isinstance(payload, dict):
            raise ScorerError(f"Expected a JSON object, got {type(payload).__name__}")
        raw_score = payload.get("score")
        feedback = payload.get("feedback")
        if isinstance(raw_score, bool) or not isinstance(raw_score, (int, float)):
            raise ScorerError(f"Score is not numeric: {raw_score!r}")
        score = int(round(raw_score))
        if not SCORE_MIN <= score <= SCORE_MAX:
            raise ScorerError(f"Score {raw_score} outside [{SCORE_MIN}, {SCORE_MAX}]")
        if not isinstance(feedback, str):
            raise ScorerError("Feedback is missing or not a string")
        return ScoreResult(score=score, feedback=feedback.strip())


# =============================================================================
# Gateway
# =============================================================================


class ScoringGateway:
    """
    Single entry point for scoring and summaries.

    The remote scorer's availability is re-evaluated on every call; any
    remote failure or timeout falls back to the deterministic scorer. Never
    raises to the caller.
    """

    def __init__(
        self,
        remote: Scorer | None = None,
        fallback: FallbackScorer | None = None,
        timeout_seconds: float = 15.0,
    ):
        self.remote = remote
        self.fallback = fallback or FallbackScorer()
        self.timeout_seconds = timeout_seconds
        self.fallback_count = 0

    def remote_usable(self) -> bool:
        return self.remote is not None and self.remote.is_available()

    async def score(self, question_text: str, answer_text: str, difficulty: Difficulty) -> ScoreResult:
        if self.remote_usable():
            try:
                return await asyncio.wait_for(
                    self.remote.score(question_text, answer_text, difficulty),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Remote scoring timed out after {self.timeout_seconds}s; using fallback")
            except Exception as e:
                logger.warning(f"Remote scoring failed ({e}); using fallback")
        else:
            logger.debug("Remote scorer unavailable; using fallback scoring")

        self.fallback_count += 1
        return await self.fallback.score(question_text, answer_text, difficulty)

    async def summarize(self, items: list[SummaryItem], total_score: int) -> str:
        if self.remote_usable():
            try:
                return await asyncio.wait_for(
                    self.remote.summarize(items, total_score),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Remote summary timed out after {self.timeout_seconds}s; using fallback")
            except Exception as e:
                logger.warning(f"Remote summary failed ({e}); using fallback")
        else:
            logger.debug("Remote scorer unavailable; using fallback summary")

        self.fallback_count += 1
        return await self.fallback.summarize(items, total_score)
