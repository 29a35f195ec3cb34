"""
Submission Coordinator - one review, one transaction.

Steps, all inside a single session_scope():
1. Lock (SELECT ... FOR UPDATE) or lazily create the learner's item state
2. Run the scheduler on the current state and grade
3. Persist the new state and bump the review counters
4. Append the review_history event
5. Upsert today's daily_stats rollup (also row-locked)

A failure at any step rolls the whole transaction back. Database errors
surface as PersistenceError; nothing is retried here.

Concurrency: the row lock on user_items serialises submissions for the same
(learner, item); the lock on the daily_stats row serialises rollup increments
for the same learner and day. Two first-ever submissions racing on the same
item both try to insert it and the loser fails on uq_user_item.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config import Settings, get_settings
from srs_tracker.db.database import create_db_engine, create_session_factory, get_session_factory, session_scope
from srs_tracker.db.models import DailyStats, ReviewHistory, UserItem
from srs_tracker.db.utils import as_utc, utc_date, utcnow
from srs_tracker.errors import InvalidInputError, InvalidStateError, PersistenceError
from srs_tracker.reviews.types import (
    DailyRollupSnapshot,
    ItemStateSnapshot,
    ReviewEventRecord,
    ReviewSubmission,
    SubmissionResult,
)
from srs_tracker.scheduling.constants import (
    GRADE_EASY_MAX_SECONDS_PER_UNIT,
    GRADE_GOOD_MAX_SECONDS_PER_UNIT,
    INITIAL_EASE_FACTOR,
    Grade,
    Stage,
)
from srs_tracker.scheduling.grading import derive_grade
from srs_tracker.scheduling.scheduler import SchedulingResult, SrsScheduler


def accuracy_percentage(correct: int, total: int) -> int:
    """round(100 * correct / total), halves rounded up, in integer arithmetic."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


class ReviewSubmitter:
    """
    Applies answered reviews to persistent SRS state.

    Args:
        session_factory: SQLAlchemy sessionmaker (defaults to the configured database)
        scheduler: SrsScheduler to use (defaults to one built from settings)
        clock: Zero-argument callable returning the current time
        grade_thresholds: {"easy_max": s, "good_max": s} for submit_answer
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        scheduler: SrsScheduler | None = None,
        clock: Callable[[], datetime] | None = None,
        grade_thresholds: dict[str, float] | None = None,
        question_type: str = "meaning_to_pinyin",
    ):
        self.session_factory = session_factory or get_session_factory()
        self.scheduler = scheduler or SrsScheduler(get_settings().get_scheduler_config())
        self.clock = clock or utcnow
        self.grade_thresholds = grade_thresholds or {
            "easy_max": GRADE_EASY_MAX_SECONDS_PER_UNIT,
            "good_max": GRADE_GOOD_MAX_SECONDS_PER_UNIT,
        }
        self.question_type = question_type

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs) -> ReviewSubmitter:
        """
        Build a submitter wired to the configured database and scheduler parameters.

        Without explicit settings the process-wide engine is reused; explicit
        settings get an engine of their own.
        """
        if "session_factory" not in kwargs:
            if settings is None:
                kwargs["session_factory"] = get_session_factory()
            else:
                engine = create_db_engine(settings.database_url, echo=settings.database_echo)
                kwargs["session_factory"] = create_session_factory(engine)
        settings = settings or get_settings()
        kwargs.setdefault("scheduler", SrsScheduler(settings.get_scheduler_config()))
        kwargs.setdefault("grade_thresholds", settings.get_grade_thresholds())
        kwargs.setdefault("question_type", settings.default_question_type)
        return cls(**kwargs)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, submission: ReviewSubmission) -> SubmissionResult:
        """
        Apply one review atomically.

        Returns:
            SubmissionResult with the new item state, the appended event and
            the updated daily rollup

        Raises:
            InvalidInputError: bad grade, ids or response time (nothing written)
            InvalidStateError: stored item has an unknown stage (rolled back)
            PersistenceError: the transaction could not be committed (rolled back)
        """
        grade = self._validate(submission)
        now = as_utc(self.clock())

        try:
            with session_scope(self.session_factory) as session:
                item, created = self._lock_or_create_item(session, submission, now)
                previous_stage = Stage.parse(item.srs_stage)

                result = self.scheduler.next_review(
                    stage=previous_stage,
                    interval_days=item.interval_days,
                    ease_factor=item.ease_factor,
                    step=item.current_step,
                    grade=grade,
                    reviewed_at=now,
                    timezone=submission.timezone,
                )

                self._apply_result(item, result, submission.is_correct, now)
                event = self._append_event(session, submission, grade, result, now)
                graduated = previous_stage in (Stage.NEW, Stage.LEARNING) and result.stage is Stage.REVIEW
                stats = self._upsert_daily_stats(session, submission, now, graduated)

                session.flush()
                outcome = SubmissionResult(
                    item=ItemStateSnapshot.from_model(item),
                    event=ReviewEventRecord.from_model(event),
                    rollup=DailyRollupSnapshot.from_model(stats),
                    previous_stage=previous_stage,
                    created=created,
                )
        except InvalidStateError as e:
            logger.error(
                f"Corrupt SRS state for {submission.user_id}/{submission.item_type}:{submission.item_id}: {e}"
            )
            raise
        except SQLAlchemyError as e:
            logger.warning(
                f"Review transaction rolled back for "
                f"{submission.user_id}/{submission.item_type}:{submission.item_id}: {e}"
            )
            raise PersistenceError(f"Failed to persist review: {e}") from e

        logger.info(
            f"Review committed: user={submission.user_id} item={submission.item_type}:{submission.item_id} "
            f"grade={grade.name} {previous_stage.value}->{outcome.item.stage.value} "
            f"interval={outcome.item.interval_days}d"
        )
        return outcome

    def submit_answer(
        self,
        user_id: str,
        item_id: int,
        item_type: str,
        user_answer: str,
        correct_answer: str,
        is_correct: bool,
        response_time_ms: int,
        timezone: str = "UTC",
    ) -> SubmissionResult:
        """Derive the grade from pace over the expected answer's length, then submit."""
        grade = derive_grade(
            is_correct,
            response_time_ms,
            len(correct_answer),
            easy_max=self.grade_thresholds["easy_max"],
            good_max=self.grade_thresholds["good_max"],
        )
        return self.submit(
            ReviewSubmission(
                user_id=user_id,
                item_id=item_id,
                item_type=item_type,
                user_answer=user_answer,
                correct_answer=correct_answer,
                is_correct=is_correct,
                grade=grade,
                response_time_ms=response_time_ms,
                timezone=timezone,
                question_type=self.question_type,
            )
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate(self, submission: ReviewSubmission) -> Grade:
        if not submission.user_id:
            raise InvalidInputError("user_id is required")
        if not submission.item_type:
            raise InvalidInputError("item_type is required")
        if submission.item_id is None:
            raise InvalidInputError("item_id is required")
        if submission.response_time_ms is None or submission.response_time_ms < 0:
            raise InvalidInputError(
                f"response_time_ms must be >= 0, got {submission.response_time_ms}"
            )
        return Grade.parse(submission.grade)

    def _lock_or_create_item(
        self, session: Session, submission: ReviewSubmission, now: datetime
    ) -> tuple[UserItem, bool]:
        stmt = (
            select(UserItem)
            .where(
                UserItem.user_id == submission.user_id,
                UserItem.item_id == submission.item_id,
                UserItem.item_type == submission.item_type,
            )
            .with_for_update()
        )
        item = session.scalars(stmt).first()
        if item is not None:
            return item, False

        item = UserItem(
            user_id=submission.user_id,
            item_id=submission.item_id,
            item_type=submission.item_type,
            srs_stage=Stage.NEW.value,
            ease_factor=INITIAL_EASE_FACTOR,
            interval_days=0,
            current_step=0,
            next_review_date=now,
            total_reviews=0,
            correct_count=0,
            incorrect_count=0,
        )
        session.add(item)
        session.flush()
        return item, True

    def _apply_result(
        self, item: UserItem, result: SchedulingResult, is_correct: bool, now: datetime
    ) -> None:
        item.srs_stage = result.stage.value
        item.ease_factor = result.ease_factor
        item.interval_days = result.interval_days
        item.current_step = result.step
        item.next_review_date = result.next_review_date
        item.last_reviewed_at = now
        item.total_reviews += 1
        if is_correct:
            item.correct_count += 1
        else:
            item.incorrect_count += 1
        item.updated_at = now

    def _append_event(
        self,
        session: Session,
        submission: ReviewSubmission,
        grade: Grade,
        result: SchedulingResult,
        now: datetime,
    ) -> ReviewHistory:
        event = ReviewHistory(
            user_id=submission.user_id,
            item_id=submission.item_id,
            item_type=submission.item_type,
            question_type=submission.question_type,
            user_answer=submission.user_answer,
            correct_answer=submission.correct_answer,
            is_correct=submission.is_correct,
            grade=int(grade),
            response_time_ms=int(submission.response_time_ms),
            new_srs_stage=result.stage.value,
            new_interval=result.interval_days,
            reviewed_at=now,
        )
        session.add(event)
        return event

    def _upsert_daily_stats(
        self, session: Session, submission: ReviewSubmission, now: datetime, graduated: bool
    ) -> DailyStats:
        stat_date = utc_date(now)
        stmt = (
            select(DailyStats)
            .where(DailyStats.user_id == submission.user_id, DailyStats.stat_date == stat_date)
            .with_for_update()
        )
        stats = session.scalars(stmt).first()
        if stats is None:
            stats = DailyStats(
                user_id=submission.user_id,
                stat_date=stat_date,
                reviews_completed=0,
                correct_count=0,
                new_items_learned=0,
                accuracy_percentage=0,
                time_spent_seconds=0,
                streak_maintained=True,
            )
            session.add(stats)

        stats.reviews_completed += 1
        if submission.is_correct:
            stats.correct_count += 1
        if graduated:
            stats.new_items_learned += 1
        stats.accuracy_percentage = accuracy_percentage(stats.correct_count, stats.reviews_completed)
        stats.time_spent_seconds += int(submission.response_time_ms) // 1000
        stats.streak_maintained = True
        stats.updated_at = now
        return stats
