"""
Grade Deriver.

Converts correctness and response latency into a coarse review grade.
Pace is measured in seconds per content unit (e.g. characters of the
expected answer), so long answers are not penalised for being long.
"""

from __future__ import annotations

from srs_tracker.errors import InvalidInputError
from srs_tracker.scheduling.constants import (
    GRADE_EASY_MAX_SECONDS_PER_UNIT,
    GRADE_GOOD_MAX_SECONDS_PER_UNIT,
    Grade,
)


def derive_grade(
    is_correct: bool,
    response_time_ms: float,
    unit_count: int,
    easy_max: float = GRADE_EASY_MAX_SECONDS_PER_UNIT,
    good_max: float = GRADE_GOOD_MAX_SECONDS_PER_UNIT,
) -> Grade:
    """
    Convert a response to a Grade.

    Args:
        is_correct: Whether the comparison utility accepted the answer
        response_time_ms: Time taken to answer, milliseconds (>= 0)
        unit_count: Length of the content unit; values <= 0 are treated as 1
        easy_max: Seconds per unit at or under which the grade is EASY
        good_max: Seconds per unit at or under which the grade is GOOD

    Returns:
        AGAIN for wrong answers, otherwise EASY / GOOD / HARD by pace
    """
    if not is_correct:
        return Grade.AGAIN

    if response_time_ms < 0:
        raise InvalidInputError(f"response_time_ms must be >= 0, got {response_time_ms}")

    units = unit_count if unit_count and unit_count > 0 else 1
    sec_per_unit = (response_time_ms / 1000) / units

    if sec_per_unit <= easy_max:
        return Grade.EASY
    elif sec_per_unit <= good_max:
        return Grade.GOOD
    else:
        return Grade.HARD
