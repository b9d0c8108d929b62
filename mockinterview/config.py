"""
Configuration settings for the mock-interview engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # AI Integration (scoring, summaries, question generation)
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Generative AI (Gemini) API key; empty disables remote scoring",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language API",
    )
    ai_model: str = Field(
        default="gemini-2.0-flash",
        description="Model used for questions, scoring and summaries",
    )
    ai_timeout_seconds: float = Field(
        default=15.0,
        description="Upper bound for a single remote scoring or summary call",
    )
    ai_retry_attempts: int = Field(
        default=2,
        description="Attempts per remote call before giving up",
    )

    # ========================================
    # Interview Layout (reference configuration: 2/2/2)
    # ========================================
    easy_questions: int = Field(default=2, description="Number of easy questions")
    medium_questions: int = Field(default=2, description="Number of medium questions")
    hard_questions: int = Field(default=2, description="Number of hard questions")
    easy_time_limit_seconds: int = Field(default=20, description="Time limit for easy questions")
    medium_time_limit_seconds: int = Field(default=60, description="Time limit for medium questions")
    hard_time_limit_seconds: int = Field(default=120, description="Time limit for hard questions")
    interview_role: str = Field(
        default="full-stack developer position (React/Node.js)",
        description="Role description used when generating questions",
    )

    # ========================================
    # Timer
    # ========================================
    timer_tick_seconds: float = Field(
        default=1.0,
        description="Countdown tick interval",
    )

    # ========================================
    # Fallback Scoring
    # ========================================
    extra_keywords: list[str] = Field(
        default_factory=list,
        description="Additional domain keywords counted by the fallback scorer",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".mockinterview",
        description="Directory holding the persisted interview state",
    )
    state_file: str = Field(
        default="state.json",
        description="File name of the persisted state document",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Helper Methods
    # ========================================
    @property
    def state_path(self) -> Path:
        """Full path of the persisted state document."""
        return Path(self.data_dir) / self.state_file

    def has_gemini_configured(self) -> bool:
        """Check if an API key for the remote model is present."""
        return bool(self.gemini_api_key and self.gemini_api_key.strip())

    def get_time_limits(self) -> dict[str, int]:
        """Per-difficulty time limits in seconds."""
        return {
            "easy": self.easy_time_limit_seconds,
            "medium": self.medium_time_limit_seconds,
            "hard": self.hard_time_limit_seconds,
        }

    def get_question_mix(self) -> dict[str, int]:
        """Per-difficulty question counts, in interview order."""
        return {
            "easy": self.easy_questions,
            "medium": self.medium_questions,
            "hard": self.hard_questions,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
