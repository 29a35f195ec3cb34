"""
Scheduler - SRS State Machine.

Pure scheduling logic (no database calls). Given an item's current stage,
interval, ease factor and step plus the review grade, computes the next
state and due time.

Stage flow:
    NEW -> LEARNING -> REVIEW <-> RELEARNING
    NEW/LEARNING --EASY--> REVIEW (skips the remaining ladder)

The only non-deterministic part is interval fuzz, which is delegated to an
injected FuzzSource.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone

from loguru import logger

from srs_tracker.errors import InvalidStateError
from srs_tracker.scheduling.constants import (
    EASE_ADJUSTMENTS,
    EASY_BONUS_FACTOR,
    FUZZ_MIN_INTERVAL_DAYS,
    HARD_INTERVAL_FACTOR,
    INITIAL_EASE_FACTOR,
    LAPSE_INTERVAL_FACTOR,
    MAX_EASE_FACTOR,
    MIN_DAYS_INCREMENT,
    MIN_EASE_FACTOR,
    Grade,
    SchedulerConfig,
    Stage,
)
from srs_tracker.scheduling.fuzz import FuzzSource, RandomFuzz


@dataclass(frozen=True)
class SchedulingResult:
    """Next scheduling state for an item."""
    stage: Stage
    interval_days: int
    ease_factor: int
    step: int
    next_review_date: datetime


def clamp_ease(ease_factor: int) -> int:
    """Clamp an ease factor (x1000) to [MIN_EASE_FACTOR, MAX_EASE_FACTOR]."""
    return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, ease_factor))


def adjust_ease(ease_factor: int, grade: Grade) -> int:
    """Apply the grade's ease delta, then clamp."""
    return clamp_ease(ease_factor + EASE_ADJUSTMENTS[grade])


class SrsScheduler:
    """
    SM-2 style scheduler with learning and relearning step ladders.

    Ease factors and interval multipliers are integers scaled by 1000; every
    interval is computed with integer floor division so repeated reviews
    cannot drift.
    """

    def __init__(self, config: SchedulerConfig | None = None, fuzz: FuzzSource | None = None):
        self.config = config or SchedulerConfig()
        self.fuzz = fuzz or RandomFuzz()

    def next_review(
        self,
        stage: Stage | str,
        interval_days: int,
        ease_factor: int,
        step: int,
        grade: Grade | int,
        reviewed_at: datetime | None = None,
        timezone: str = "UTC",
    ) -> SchedulingResult:
        """
        Calculate the next scheduling state.

        Args:
            stage: Current stage (stored value or Stage)
            interval_days: Current interval; for RELEARNING, the lapsed interval
            ease_factor: Current ease factor x1000
            step: Position in the current stage's step ladder
            grade: Review outcome (0-3)
            reviewed_at: Reference time (defaults to now, UTC)
            timezone: Learner timezone. Accepted for interface stability but
                offsets are plain elapsed-time additions.

        Returns:
            SchedulingResult with stage, interval, ease, step and due time

        Raises:
            InvalidInputError: grade outside AGAIN..EASY
            InvalidStateError: unknown stage or corrupt numeric state
        """
        grade = Grade.parse(grade)
        stage = Stage.parse(stage)
        if interval_days is None or interval_days < 0:
            raise InvalidStateError(stage, f"Negative interval on stored item: {interval_days!r}")
        if step is None or step < 0:
            raise InvalidStateError(stage, f"Negative step on stored item: {step!r}")
        if ease_factor is None:
            ease_factor = INITIAL_EASE_FACTOR

        if reviewed_at is None:
            reviewed_at = datetime.now(dt_timezone.utc)

        if stage is Stage.NEW:
            result = self._from_new(ease_factor, interval_days, grade, reviewed_at)
        elif stage is Stage.LEARNING:
            result = self._from_learning(ease_factor, interval_days, step, grade, reviewed_at)
        elif stage is Stage.RELEARNING:
            result = self._from_relearning(ease_factor, interval_days, step, grade, reviewed_at)
        elif stage is Stage.REVIEW:
            result = self._from_review(ease_factor, interval_days, grade, reviewed_at)
        else:  # pragma: no cover - Stage.parse already rejects unknown values
            raise InvalidStateError(stage)

        logger.debug(
            f"SRS {stage.value}/{step} --{grade.name}--> "
            f"{result.stage.value}/{result.step} interval={result.interval_days}d "
            f"ease={result.ease_factor}"
        )
        return result

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------

    def _from_new(self, ease: int, interval: int, grade: Grade, now: datetime) -> SchedulingResult:
        if grade == Grade.EASY:
            return self._to_review(self.config.easy_interval_days, ease, now)
        return self._learning_step(0, interval, ease, now)

    def _from_learning(
        self, ease: int, interval: int, step: int, grade: Grade, now: datetime
    ) -> SchedulingResult:
        if grade == Grade.AGAIN:
            return self._learning_step(0, interval, ease, now)

        if grade == Grade.EASY:
            return self._to_review(self.config.easy_interval_days, adjust_ease(ease, grade), now)

        next_step = step + 1
        if next_step >= len(self.config.learning_steps_minutes):
            return self._to_review(
                self.config.graduating_interval_days, adjust_ease(ease, grade), now
            )
        return self._learning_step(next_step, interval, ease, now)

    def _from_relearning(
        self, ease: int, interval: int, step: int, grade: Grade, now: datetime
    ) -> SchedulingResult:
        if grade == Grade.AGAIN:
            return self._relearning_step(0, interval, adjust_ease(ease, grade), now)

        if grade == Grade.EASY:
            return self._to_review(self._lapsed_interval(interval), adjust_ease(ease, grade), now)

        next_step = step + 1
        if next_step >= len(self.config.relearning_steps_minutes):
            return self._to_review(self._lapsed_interval(interval), adjust_ease(ease, grade), now)
        return self._relearning_step(next_step, interval, ease, now)

    def _from_review(self, ease: int, interval: int, grade: Grade, now: datetime) -> SchedulingResult:
        if grade == Grade.AGAIN:
            # Interval is kept so relearning can halve it on graduation
            return self._relearning_step(0, interval, adjust_ease(ease, grade), now)

        if grade == Grade.HARD:
            candidate = interval * HARD_INTERVAL_FACTOR // 1000
        elif grade == Grade.GOOD:
            candidate = interval * ease // 1000
        else:
            candidate = interval * ease * EASY_BONUS_FACTOR // 1_000_000
        candidate = max(candidate, interval + MIN_DAYS_INCREMENT)

        new_interval = self._clamp_interval(self.apply_fuzz(candidate))
        return self._to_review(new_interval, adjust_ease(ease, grade), now)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def apply_fuzz(self, interval: int) -> int:
        """Perturb an interval by up to +/- fuzz_permille/1000 of its length."""
        if interval < FUZZ_MIN_INTERVAL_DAYS:
            return interval
        spread = interval * self.config.fuzz_permille // 1000
        if spread <= 0:
            return interval
        offset = self.fuzz.offset(spread)
        return interval + max(-spread, min(spread, offset))

    def _clamp_interval(self, interval: int) -> int:
        return max(self.config.min_review_interval_days, min(self.config.max_interval_days, interval))

    def _lapsed_interval(self, interval: int) -> int:
        return self._clamp_interval(interval * LAPSE_INTERVAL_FACTOR // 1000)

    def _to_review(self, interval: int, ease: int, now: datetime) -> SchedulingResult:
        return SchedulingResult(
            stage=Stage.REVIEW,
            interval_days=interval,
            ease_factor=ease,
            step=0,
            next_review_date=now + timedelta(days=interval),
        )

    def _learning_step(self, step: int, interval: int, ease: int, now: datetime) -> SchedulingResult:
        minutes = self.config.learning_steps_minutes[step]
        return SchedulingResult(
            stage=Stage.LEARNING,
            interval_days=interval,
            ease_factor=ease,
            step=step,
            next_review_date=now + timedelta(minutes=minutes),
        )

    def _relearning_step(self, step: int, interval: int, ease: int, now: datetime) -> SchedulingResult:
        minutes = self.config.relearning_steps_minutes[step]
        return SchedulingResult(
            stage=Stage.RELEARNING,
            interval_days=interval,
            ease_factor=ease,
            step=step,
            next_review_date=now + timedelta(minutes=minutes),
        )


def calculate_next_review(
    stage: Stage | str,
    interval_days: int,
    ease_factor: int,
    step: int,
    grade: Grade | int,
    reviewed_at: datetime | None = None,
    timezone: str = "UTC",
    fuzz: FuzzSource | None = None,
    config: SchedulerConfig | None = None,
) -> SchedulingResult:
    """Functional wrapper around SrsScheduler.next_review."""
    return SrsScheduler(config=config, fuzz=fuzz).next_review(
        stage=stage,
        interval_days=interval_days,
        ease_factor=ease_factor,
        step=step,
        grade=grade,
        reviewed_at=reviewed_at,
        timezone=timezone,
    )


def get_days_until_review(next_review_date: datetime, now: datetime | None = None) -> int:
    """Whole days until an item is due, rounded up; negative when overdue."""
    if now is None:
        now = datetime.now(dt_timezone.utc)
    return math.ceil((next_review_date - now).total_seconds() / 86400)


def is_due_for_review(next_review_date: datetime, now: datetime | None = None) -> bool:
    """True when the item's due time has been reached."""
    if now is None:
        now = datetime.now(dt_timezone.utc)
    return next_review_date <= now
