"""
Configuration settings for the srs-tracker scheduling core.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from srs_tracker.scheduling.constants import SchedulerConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///./srs_tracker.db",
        description="SQLAlchemy connection string (PostgreSQL in production)",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo emitted SQL statements",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # SRS Scheduling
    # ========================================
    srs_learning_steps_minutes: list[int] = Field(
        default=[1, 10],
        description="Step ladder for items in the learning stage (minutes)",
    )
    srs_relearning_steps_minutes: list[int] = Field(
        default=[10],
        description="Step ladder for lapsed items in the relearning stage (minutes)",
    )
    srs_graduating_interval_days: int = Field(
        default=1,
        description="First review interval after the learning ladder is completed",
    )
    srs_easy_interval_days: int = Field(
        default=4,
        description="Interval granted when a new or learning item is graded EASY",
    )
    srs_min_review_interval_days: int = Field(
        default=1,
        description="Smallest interval an item in review may have",
    )
    srs_max_interval_days: int = Field(
        default=365,
        description="Largest interval an item in review may have",
    )
    srs_fuzz_factor: float = Field(
        default=0.05,
        description="Relative width of the random interval perturbation",
    )

    # ========================================
    # Grade Derivation (seconds per content unit)
    # ========================================
    grade_easy_max_seconds_per_unit: float = Field(
        default=5.0,
        description="At or under this pace a correct answer is EASY",
    )
    grade_good_max_seconds_per_unit: float = Field(
        default=10.0,
        description="At or under this pace a correct answer is GOOD, above it HARD",
    )

    # ========================================
    # Reviews
    # ========================================
    default_timezone: str = Field(
        default="UTC",
        description="Timezone passed to the scheduler when the learner has none",
    )
    default_question_type: str = Field(
        default="meaning_to_pinyin",
        description="Question type recorded on review history rows",
    )
    review_queue_default_limit: int = Field(
        default=50,
        description="Default number of due items returned by the review queue",
    )
    review_queue_max_limit: int = Field(
        default=100,
        description="Hard cap on the review queue size",
    )

    @field_validator("srs_learning_steps_minutes", "srs_relearning_steps_minutes")
    @classmethod
    def _steps_not_empty(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("step ladders need at least one step")
        if any(step <= 0 for step in value):
            raise ValueError("step ladder entries must be positive minutes")
        return value

    # ========================================
    # Helper Methods
    # ========================================
    def get_scheduler_config(self) -> SchedulerConfig:
        """Build the immutable scheduler configuration from these settings."""
        from srs_tracker.scheduling.constants import SchedulerConfig

        return SchedulerConfig(
            learning_steps_minutes=tuple(self.srs_learning_steps_minutes),
            relearning_steps_minutes=tuple(self.srs_relearning_steps_minutes),
            graduating_interval_days=self.srs_graduating_interval_days,
            easy_interval_days=self.srs_easy_interval_days,
            min_review_interval_days=self.srs_min_review_interval_days,
            max_interval_days=self.srs_max_interval_days,
            fuzz_permille=round(self.srs_fuzz_factor * 1000),
        )

    def get_grade_thresholds(self) -> dict[str, float]:
        """Return the pace thresholds used by the grade deriver."""
        return {
            "easy_max": self.grade_easy_max_seconds_per_unit,
            "good_max": self.grade_good_max_seconds_per_unit,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
