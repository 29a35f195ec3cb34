"""
Learning progress models.

Three record kinds:
- UserItem: mutable SRS state per learner x item (never deleted)
- ReviewHistory: append-only log of review attempts
- DailyStats: per learner x calendar day rollup, updated incrementally
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserItem(Base):
    """
    SRS scheduling state for one learner and one content item.

    Ease factor is stored x1000 (2500 == 2.5). For items in relearning,
    interval_days holds the lapsed interval that is halved on graduation.
    """

    __tablename__ = "user_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_type: Mapped[str] = mapped_column(Text, nullable=False)  # 'radical', 'character', 'vocabulary'

    # SRS state
    srs_stage: Mapped[str] = mapped_column(Text, nullable=False, default="new")
    ease_factor: Mapped[int] = mapped_column(Integer, nullable=False, default=2500)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Counters (never decrease)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "item_id", "item_type", name="uq_user_item"),
        CheckConstraint(
            "srs_stage IN ('new', 'learning', 'review', 'relearning')", name="ck_user_items_stage"
        ),
        CheckConstraint("ease_factor BETWEEN 1300 AND 3000", name="ck_user_items_ease"),
        CheckConstraint("interval_days BETWEEN 0 AND 365", name="ck_user_items_interval"),
        CheckConstraint("current_step >= 0", name="ck_user_items_step"),
        Index("idx_user_items_review_queue", "user_id", "next_review_date"),
        Index("idx_user_items_user_stage", "user_id", "srs_stage"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserItem user={self.user_id} item={self.item_type}:{self.item_id} "
            f"stage={self.srs_stage} interval={self.interval_days}>"
        )


class ReviewHistory(Base):
    """
    Immutable record of one review attempt.

    Captures the raw answers, the grade used for scheduling and the state
    the item was left in when the review committed.
    """

    __tablename__ = "review_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_type: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(Text, nullable=False, default="meaning_to_pinyin")

    user_answer: Mapped[str] = mapped_column(Text, nullable=False)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=AGAIN, 1=HARD, 2=GOOD, 3=EASY
    response_time_ms: Mapped[int] = mapped_column(Integer, nullable=False)

    # State at commit time
    new_srs_stage: Mapped[str] = mapped_column(Text, nullable=False)
    new_interval: Mapped[int] = mapped_column(Integer, nullable=False)

    reviewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("grade BETWEEN 0 AND 3", name="ck_review_history_grade"),
        Index("idx_review_history_user_date", "user_id", "reviewed_at"),
        Index("idx_review_history_item", "user_id", "item_id", "item_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReviewHistory id={self.id} user={self.user_id} "
            f"item={self.item_type}:{self.item_id} grade={self.grade}>"
        )


class DailyStats(Base):
    """
    Per-day review rollup for a learner.

    correct_count is the running numerator accuracy_percentage is derived from,
    so accuracy never loses precision across increments.
    """

    __tablename__ = "daily_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    stat_date: Mapped[date] = mapped_column(Date, nullable=False)

    reviews_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_items_learned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    accuracy_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_maintained: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "stat_date", name="uq_daily_stats_user_date"),
        CheckConstraint(
            "accuracy_percentage BETWEEN 0 AND 100", name="ck_daily_stats_accuracy"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<DailyStats user={self.user_id} date={self.stat_date} "
            f"reviews={self.reviews_completed} accuracy={self.accuracy_percentage}%>"
        )
