"""
Read-only progress queries.

These read the state written by the submission coordinator and never
modify it. Every function takes an open Session so callers control the
transaction boundary.

Usage:
    from srs_tracker.db import session_scope
    from srs_tracker.db.queries import get_review_queue

    with session_scope() as session:
        due = get_review_queue(session, user_id="learner-1", limit=20)
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from config import get_settings
from srs_tracker.db.models import DailyStats, ReviewHistory, UserItem
from srs_tracker.db.utils import as_utc, utc_date, utcnow
from srs_tracker.errors import InvalidInputError
from srs_tracker.reviews.types import DailyRollupSnapshot, ItemStateSnapshot, ReviewEventRecord
from srs_tracker.scheduling.constants import Stage


# =============================================================================
# REVIEW QUEUE
# =============================================================================

def get_review_queue(
    session: Session,
    user_id: str,
    limit: int | None = None,
    now: datetime | None = None,
    max_limit: int | None = None,
) -> list[ItemStateSnapshot]:
    """
    Items due for review (next_review_date <= now), earliest first.

    Args:
        session: Open database session
        user_id: Learner identifier
        limit: Maximum number of items; capped at max_limit
            (defaults to review_queue_default_limit)
        now: Reference time (defaults to now, UTC)
        max_limit: Hard cap on limit (defaults to review_queue_max_limit)

    Returns:
        Due items ordered by due time ascending
    """
    if limit is None or max_limit is None:
        settings = get_settings()
        limit = settings.review_queue_default_limit if limit is None else limit
        max_limit = settings.review_queue_max_limit if max_limit is None else max_limit
    if limit <= 0:
        raise InvalidInputError(f"limit must be positive, got {limit}")
    now = as_utc(now) if now else utcnow()

    stmt = (
        select(UserItem)
        .where(UserItem.user_id == user_id, UserItem.next_review_date <= now)
        .order_by(UserItem.next_review_date)
        .limit(min(limit, max_limit))
    )
    return [ItemStateSnapshot.from_model(item) for item in session.scalars(stmt)]


def get_upcoming_reviews_count(
    session: Session,
    user_id: str,
    now: datetime | None = None,
    hours: int = 24,
) -> int:
    """Items that will be due within the next `hours` (already-due items included)."""
    now = as_utc(now) if now else utcnow()
    horizon = now + timedelta(hours=hours)

    stmt = select(func.count()).select_from(UserItem).where(
        UserItem.user_id == user_id, UserItem.next_review_date <= horizon
    )
    return int(session.scalar(stmt) or 0)


def get_upcoming_reviews_forecast(
    session: Session,
    user_id: str,
    now: datetime | None = None,
    hours: int = 24,
) -> list[dict]:
    """
    Hourly forecast of items becoming due after `now`.

    Returns:
        One dict per hour, [{"hour": 0, "due_at": datetime, "count": n}, ...];
        bucket h covers (now + h hours, now + h+1 hours].
    """
    now = as_utc(now) if now else utcnow()
    horizon = now + timedelta(hours=hours)

    stmt = select(UserItem.next_review_date).where(
        UserItem.user_id == user_id,
        UserItem.next_review_date > now,
        UserItem.next_review_date <= horizon,
    )
    counts = [0] * hours
    for due in session.scalars(stmt):
        offset = (as_utc(due) - now).total_seconds()
        bucket = min(hours - 1, max(0, math.ceil(offset / 3600) - 1))
        counts[bucket] += 1

    return [
        {"hour": h, "due_at": now + timedelta(hours=h + 1), "count": counts[h]}
        for h in range(hours)
    ]


# =============================================================================
# DASHBOARD
# =============================================================================

def get_stage_breakdown(session: Session, user_id: str) -> dict[Stage, int]:
    """Number of items per SRS stage; stages with no items report 0."""
    stmt = (
        select(UserItem.srs_stage, func.count())
        .where(UserItem.user_id == user_id)
        .group_by(UserItem.srs_stage)
    )
    breakdown = {stage: 0 for stage in Stage}
    for stage, count in session.execute(stmt):
        breakdown[Stage.parse(stage)] = int(count)
    return breakdown


def get_dashboard_stats(session: Session, user_id: str, now: datetime | None = None) -> dict:
    """
    Dashboard summary for a learner.

    Returns:
        Dict with reviews_due, upcoming_24h, stage_breakdown and today
        (DailyRollupSnapshot or None)
    """
    now = as_utc(now) if now else utcnow()

    reviews_due = session.scalar(
        select(func.count()).select_from(UserItem).where(
            UserItem.user_id == user_id, UserItem.next_review_date <= now
        )
    )
    today = get_daily_stats(session, user_id, utc_date(now))

    return {
        "reviews_due": int(reviews_due or 0),
        "upcoming_24h": get_upcoming_reviews_count(session, user_id, now=now),
        "stage_breakdown": get_stage_breakdown(session, user_id),
        "today": today,
    }


# =============================================================================
# HISTORY & DAILY STATS
# =============================================================================

def get_recent_reviews(session: Session, user_id: str, limit: int = 100) -> list[ReviewEventRecord]:
    """Most recent review events, newest first."""
    stmt = (
        select(ReviewHistory)
        .where(ReviewHistory.user_id == user_id)
        .order_by(ReviewHistory.reviewed_at.desc(), ReviewHistory.id.desc())
        .limit(limit)
    )
    return [ReviewEventRecord.from_model(event) for event in session.scalars(stmt)]


def get_item_history(
    session: Session, user_id: str, item_id: int, item_type: str
) -> list[ReviewEventRecord]:
    """Every review event for one item, oldest first."""
    stmt = (
        select(ReviewHistory)
        .where(
            ReviewHistory.user_id == user_id,
            ReviewHistory.item_id == item_id,
            ReviewHistory.item_type == item_type,
        )
        .order_by(ReviewHistory.reviewed_at, ReviewHistory.id)
    )
    return [ReviewEventRecord.from_model(event) for event in session.scalars(stmt)]


def get_daily_stats(session: Session, user_id: str, stat_date: date) -> DailyRollupSnapshot | None:
    """Rollup for one day, or None when the learner did not review that day."""
    stats = session.scalars(
        select(DailyStats).where(DailyStats.user_id == user_id, DailyStats.stat_date == stat_date)
    ).first()
    return DailyRollupSnapshot.from_model(stats) if stats else None


def get_daily_stats_range(
    session: Session, user_id: str, start_date: date, end_date: date
) -> list[DailyRollupSnapshot]:
    """Rollups between start_date and end_date inclusive, oldest first."""
    if end_date < start_date:
        raise InvalidInputError(f"end_date {end_date} is before start_date {start_date}")

    stmt = (
        select(DailyStats)
        .where(
            DailyStats.user_id == user_id,
            DailyStats.stat_date >= start_date,
            DailyStats.stat_date <= end_date,
        )
        .order_by(DailyStats.stat_date)
    )
    return [DailyRollupSnapshot.from_model(stats) for stats in session.scalars(stmt)]


def get_item_state(
    session: Session, user_id: str, item_id: int, item_type: str
) -> ItemStateSnapshot | None:
    """Current state of one item, or None if it was never reviewed."""
    item = session.scalars(
        select(UserItem).where(
            UserItem.user_id == user_id,
            UserItem.item_id == item_id,
            UserItem.item_type == item_type,
        )
    ).first()
    return ItemStateSnapshot.from_model(item) if item else None
