"""
SRS scheduling: grade derivation and the stage/interval state machine.

Quick start:
    from srs_tracker.scheduling import SrsScheduler, derive_grade, Stage

    grade = derive_grade(is_correct=True, response_time_ms=4200, unit_count=3)
    result = SrsScheduler().next_review(
        stage=Stage.REVIEW, interval_days=10, ease_factor=2500, step=0, grade=grade
    )
"""

from srs_tracker.scheduling.constants import (
    EASE_ADJUSTMENTS,
    EASY_INTERVAL_DAYS,
    GRADUATING_INTERVAL_DAYS,
    INITIAL_EASE_FACTOR,
    LEARNING_STEPS_MINUTES,
    MAX_EASE_FACTOR,
    MAX_INTERVAL_DAYS,
    MIN_EASE_FACTOR,
    MIN_REVIEW_INTERVAL_DAYS,
    RELEARNING_STEPS_MINUTES,
    Grade,
    SchedulerConfig,
    Stage,
)
from srs_tracker.scheduling.fuzz import FixedFuzz, FuzzSource, NoFuzz, RandomFuzz
from srs_tracker.scheduling.grading import derive_grade
from srs_tracker.scheduling.scheduler import (
    SchedulingResult,
    SrsScheduler,
    calculate_next_review,
    get_days_until_review,
    is_due_for_review,
)

__all__ = [
    # Enums
    "Grade",
    "Stage",
    # Algorithm
    "SrsScheduler",
    "SchedulingResult",
    "SchedulerConfig",
    "calculate_next_review",
    "derive_grade",
    "get_days_until_review",
    "is_due_for_review",
    # Fuzz sources
    "FuzzSource",
    "RandomFuzz",
    "NoFuzz",
    "FixedFuzz",
    # Parameters
    "EASE_ADJUSTMENTS",
    "EASY_INTERVAL_DAYS",
    "GRADUATING_INTERVAL_DAYS",
    "INITIAL_EASE_FACTOR",
    "LEARNING_STEPS_MINUTES",
    "MAX_EASE_FACTOR",
    "MAX_INTERVAL_DAYS",
    "MIN_EASE_FACTOR",
    "MIN_REVIEW_INTERVAL_DAYS",
    "RELEARNING_STEPS_MINUTES",
]
