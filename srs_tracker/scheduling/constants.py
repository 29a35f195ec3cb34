"""
SRS Constants and Parameters.

SM-2 style scheduling with learning/relearning step ladders.
Ease factors are stored as integers scaled by 1000 (2500 == 2.5) so that
repeated reviews never accumulate floating point drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from srs_tracker.errors import InvalidInputError, InvalidStateError


# =============================================================================
# STAGES & GRADES
# =============================================================================

class Stage(str, Enum):
    """Lifecycle stage of a learner's item."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"

    @classmethod
    def parse(cls, value: Stage | str) -> Stage:
        """Coerce a stored stage value, refusing anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidStateError(value) from None


class Grade(IntEnum):
    """Outcome rating for one review attempt."""
    AGAIN = 0   # Wrong or skipped
    HARD = 1    # Correct, slow
    GOOD = 2    # Correct, normal pace
    EASY = 3    # Correct, instant recall

    @classmethod
    def parse(cls, value: Grade | int) -> Grade:
        """Coerce a caller-supplied grade, rejecting out-of-range values."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInputError(f"Grade must be an integer 0-3, got {value!r}")
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(f"Grade must be between 0 and 3, got {value}") from None


# =============================================================================
# EASE FACTOR (x1000)
# =============================================================================

INITIAL_EASE_FACTOR = 2500  # 2.5
MIN_EASE_FACTOR = 1300      # 1.3
MAX_EASE_FACTOR = 3000      # 3.0

# Added to the current ease factor, then clamped
EASE_ADJUSTMENTS = {
    Grade.AGAIN: -200,
    Grade.HARD: -150,
    Grade.GOOD: 0,
    Grade.EASY: 150,
}


# =============================================================================
# STEP LADDERS & INTERVALS
# =============================================================================

LEARNING_STEPS_MINUTES = (1, 10)
RELEARNING_STEPS_MINUTES = (10,)

GRADUATING_INTERVAL_DAYS = 1
EASY_INTERVAL_DAYS = 4
MIN_REVIEW_INTERVAL_DAYS = 1
MAX_INTERVAL_DAYS = 365

# Interval multipliers, also x1000 so interval maths stays in integers
HARD_INTERVAL_FACTOR = 1200   # 1.2
EASY_BONUS_FACTOR = 1300      # 1.3
LAPSE_INTERVAL_FACTOR = 500   # 0.5, applied when relearning graduates back to review
MIN_DAYS_INCREMENT = 1

FUZZ_FACTOR_PERMILLE = 50     # +/- 5%
FUZZ_MIN_INTERVAL_DAYS = 2


# =============================================================================
# GRADE DERIVATION (seconds per content unit)
# =============================================================================

GRADE_EASY_MAX_SECONDS_PER_UNIT = 5.0
GRADE_GOOD_MAX_SECONDS_PER_UNIT = 10.0


@dataclass(frozen=True)
class SchedulerConfig:
    """Tunable scheduling parameters. Defaults mirror the module constants."""
    learning_steps_minutes: tuple[int, ...] = LEARNING_STEPS_MINUTES
    relearning_steps_minutes: tuple[int, ...] = RELEARNING_STEPS_MINUTES
    graduating_interval_days: int = GRADUATING_INTERVAL_DAYS
    easy_interval_days: int = EASY_INTERVAL_DAYS
    min_review_interval_days: int = MIN_REVIEW_INTERVAL_DAYS
    max_interval_days: int = MAX_INTERVAL_DAYS
    fuzz_permille: int = FUZZ_FACTOR_PERMILLE

    def __post_init__(self):
        if not self.learning_steps_minutes or not self.relearning_steps_minutes:
            raise ValueError("Step ladders need at least one step")
        if self.min_review_interval_days < 1:
            raise ValueError("min_review_interval_days must be at least 1")
        if self.max_interval_days < self.min_review_interval_days:
            raise ValueError("max_interval_days must not be below min_review_interval_days")
        if self.fuzz_permille < 0:
            raise ValueError("fuzz_permille must not be negative")
