"""
Snapshots handed to collaborators.

Plain frozen dataclasses, detached from the ORM session, so UI and analytics
code can hold on to them after the transaction closes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from srs_tracker.db.models import DailyStats, ReviewHistory, UserItem
from srs_tracker.db.utils import as_utc
from srs_tracker.scheduling.constants import Grade, Stage


@dataclass(frozen=True)
class ReviewSubmission:
    """One answered review, as received from the comparison utility."""
    user_id: str
    item_id: int
    item_type: str
    user_answer: str
    correct_answer: str
    is_correct: bool
    grade: Grade | int
    response_time_ms: int
    timezone: str = "UTC"
    question_type: str = "meaning_to_pinyin"


@dataclass(frozen=True)
class ItemStateSnapshot:
    """Post-review scheduling state of a learner's item."""
    user_id: str
    item_id: int
    item_type: str
    stage: Stage
    ease_factor: int
    interval_days: int
    step: int
    next_review_date: datetime
    last_reviewed_at: datetime | None
    total_reviews: int
    correct_count: int
    incorrect_count: int

    @classmethod
    def from_model(cls, item: UserItem) -> ItemStateSnapshot:
        return cls(
            user_id=item.user_id,
            item_id=item.item_id,
            item_type=item.item_type,
            stage=Stage.parse(item.srs_stage),
            ease_factor=item.ease_factor,
            interval_days=item.interval_days,
            step=item.current_step,
            next_review_date=as_utc(item.next_review_date),
            last_reviewed_at=as_utc(item.last_reviewed_at),
            total_reviews=item.total_reviews,
            correct_count=item.correct_count,
            incorrect_count=item.incorrect_count,
        )


@dataclass(frozen=True)
class ReviewEventRecord:
    """An appended review_history row."""
    id: int
    user_id: str
    item_id: int
    item_type: str
    question_type: str
    user_answer: str
    correct_answer: str
    is_correct: bool
    grade: Grade
    response_time_ms: int
    new_stage: Stage
    new_interval: int
    reviewed_at: datetime

    @classmethod
    def from_model(cls, event: ReviewHistory) -> ReviewEventRecord:
        return cls(
            id=event.id,
            user_id=event.user_id,
            item_id=event.item_id,
            item_type=event.item_type,
            question_type=event.question_type,
            user_answer=event.user_answer,
            correct_answer=event.correct_answer,
            is_correct=event.is_correct,
            grade=Grade(event.grade),
            response_time_ms=event.response_time_ms,
            new_stage=Stage.parse(event.new_srs_stage),
            new_interval=event.new_interval,
            reviewed_at=as_utc(event.reviewed_at),
        )


@dataclass(frozen=True)
class DailyRollupSnapshot:
    """A learner's rollup for one calendar day."""
    user_id: str
    stat_date: date
    reviews_completed: int
    correct_count: int
    accuracy_percentage: int
    time_spent_seconds: int
    new_items_learned: int
    streak_maintained: bool

    @classmethod
    def from_model(cls, stats: DailyStats) -> DailyRollupSnapshot:
        return cls(
            user_id=stats.user_id,
            stat_date=stats.stat_date,
            reviews_completed=stats.reviews_completed,
            correct_count=stats.correct_count,
            accuracy_percentage=stats.accuracy_percentage,
            time_spent_seconds=stats.time_spent_seconds,
            new_items_learned=stats.new_items_learned,
            streak_maintained=stats.streak_maintained,
        )

    def as_tuple(self) -> tuple[int, int, int]:
        """(reviews_completed, accuracy_percentage, time_spent_seconds)."""
        return (self.reviews_completed, self.accuracy_percentage, self.time_spent_seconds)


@dataclass(frozen=True)
class SubmissionResult:
    """Everything a single committed review produced."""
    item: ItemStateSnapshot
    event: ReviewEventRecord
    rollup: DailyRollupSnapshot
    previous_stage: Stage
    created: bool  # True when this review created the item's state
