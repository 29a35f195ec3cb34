"""
Unit tests for the SRS scheduler state machine.

Covers every stage x grade transition, ease clamping, integer interval
maths, fuzz bounds and the rejection of unknown stages and grades.
Fuzz is pinned with NoFuzz / FixedFuzz unless a test is about fuzz itself.

Run: pytest tests/unit/test_scheduler.py -v
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from srs_tracker.errors import InvalidInputError, InvalidStateError
from srs_tracker.scheduling import (
    FixedFuzz,
    Grade,
    NoFuzz,
    RandomFuzz,
    SchedulerConfig,
    SrsScheduler,
    Stage,
    calculate_next_review,
    get_days_until_review,
    is_due_for_review,
)
from srs_tracker.scheduling.scheduler import adjust_ease, clamp_ease

T = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sched():
    return SrsScheduler(fuzz=NoFuzz())


def review(sched, stage, grade, interval=0, ease=2500, step=0, now=T):
    return sched.next_review(
        stage=stage, interval_days=interval, ease_factor=ease, step=step, grade=grade, reviewed_at=now
    )


class TestEaseHelpers:
    """Test ease clamping and adjustment."""

    def test_clamp_low(self):
        assert clamp_ease(1000) == 1300

    def test_clamp_high(self):
        assert clamp_ease(3500) == 3000

    def test_clamp_passthrough(self):
        assert clamp_ease(2100) == 2100

    @pytest.mark.parametrize(
        "grade,expected",
        [(Grade.AGAIN, 2300), (Grade.HARD, 2350), (Grade.GOOD, 2500), (Grade.EASY, 2650)],
    )
    def test_adjust_ease_deltas(self, grade, expected):
        assert adjust_ease(2500, grade) == expected

    def test_adjust_ease_clamps(self):
        assert adjust_ease(1400, Grade.AGAIN) == 1300
        assert adjust_ease(2950, Grade.EASY) == 3000


class TestFromNew:
    """NEW stage transitions."""

    @pytest.mark.parametrize("grade", [Grade.AGAIN, Grade.HARD, Grade.GOOD])
    def test_non_easy_enters_learning(self, sched, grade):
        """AGAIN/HARD/GOOD start the learning ladder at step 0."""
        result = review(sched, Stage.NEW, grade)
        assert result.stage == Stage.LEARNING
        assert result.step == 0
        assert result.next_review_date == T + timedelta(minutes=1)
        assert result.ease_factor == 2500

    def test_good_scenario(self, sched):
        """NEW + GOOD at T is due at T + first learning step."""
        result = review(sched, Stage.NEW, Grade.GOOD)
        assert (result.stage, result.step) == (Stage.LEARNING, 0)
        assert result.next_review_date - T == timedelta(minutes=1)

    def test_easy_skips_learning(self, sched):
        """EASY goes straight to REVIEW with a 4 day interval."""
        result = review(sched, Stage.NEW, Grade.EASY)
        assert result.stage == Stage.REVIEW
        assert result.interval_days == 4
        assert result.step == 0
        assert result.ease_factor == 2500
        assert result.next_review_date == T + timedelta(days=4)

    def test_easy_from_new_ignores_fuzz(self):
        """The fixed easy interval is not fuzzed."""
        fuzzy = SrsScheduler(fuzz=FixedFuzz(10))
        assert review(fuzzy, Stage.NEW, Grade.EASY).interval_days == 4


class TestFromLearning:
    """LEARNING stage transitions."""

    def test_again_restarts_ladder(self, sched):
        result = review(sched, Stage.LEARNING, Grade.AGAIN, step=1)
        assert result.stage == Stage.LEARNING
        assert result.step == 0
        assert result.next_review_date == T + timedelta(minutes=1)
        assert result.ease_factor == 2500

    def test_good_advances_step(self, sched):
        """GOOD on step 0 moves to step 1, due after the second step."""
        result = review(sched, Stage.LEARNING, Grade.GOOD, step=0)
        assert result.stage == Stage.LEARNING
        assert result.step == 1
        assert result.next_review_date == T + timedelta(minutes=10)
        assert result.ease_factor == 2500

    def test_hard_advances_step_without_ease_change(self, sched):
        result = review(sched, Stage.LEARNING, Grade.HARD, step=0)
        assert result.step == 1
        assert result.ease_factor == 2500

    def test_good_on_final_step_graduates(self, sched):
        """GOOD on the last step graduates with the 1 day interval."""
        result = review(sched, Stage.LEARNING, Grade.GOOD, step=1)
        assert result.stage == Stage.REVIEW
        assert result.interval_days == 1
        assert result.step == 0
        assert result.ease_factor == 2500
        assert result.next_review_date == T + timedelta(days=1)

    def test_hard_on_final_step_lowers_ease(self, sched):
        result = review(sched, Stage.LEARNING, Grade.HARD, step=1)
        assert result.stage == Stage.REVIEW
        assert result.interval_days == 1
        assert result.ease_factor == 2350

    def test_easy_graduates_early(self, sched):
        result = review(sched, Stage.LEARNING, Grade.EASY, step=0)
        assert result.stage == Stage.REVIEW
        assert result.interval_days == 4
        assert result.ease_factor == 2650

    def test_custom_ladder(self):
        """Longer ladders are walked step by step."""
        config = SchedulerConfig(learning_steps_minutes=(1, 10, 60))
        sched = SrsScheduler(config=config, fuzz=NoFuzz())
        result = review(sched, Stage.LEARNING, Grade.GOOD, step=1)
        assert result.stage == Stage.LEARNING
        assert result.step == 2
        assert result.next_review_date == T + timedelta(minutes=60)


class TestFromReview:
    """REVIEW stage transitions."""

    def test_good_scenario(self, sched):
        """interval 10, ease 2.5, GOOD -> 25 days, ease unchanged."""
        result = review(sched, Stage.REVIEW, Grade.GOOD, interval=10)
        assert result.stage == Stage.REVIEW
        assert result.interval_days == 25
        assert result.ease_factor == 2500
        assert result.next_review_date == T + timedelta(days=25)

    def test_good_scenario_within_fuzz(self):
        """With real fuzz the same review lands within +/-5% of 25."""
        sched = SrsScheduler(fuzz=RandomFuzz(seed=7))
        for _ in range(50):
            result = review(sched, Stage.REVIEW, Grade.GOOD, interval=10)
            assert 24 <= result.interval_days <= 26
            assert result.ease_factor == 2500

    def test_hard(self, sched):
        result = review(sched, Stage.REVIEW, Grade.HARD, interval=10)
        assert result.interval_days == 12
        assert result.ease_factor == 2350

    def test_easy(self, sched):
        """10 x 2.5 x 1.3 = 32.5, floored."""
        result = review(sched, Stage.REVIEW, Grade.EASY, interval=10)
        assert result.interval_days == 32
        assert result.ease_factor == 2650

    def test_minimum_growth_of_one_day(self, sched):
        """floor(1 x 1.2) = 1 is bumped to interval + 1."""
        result = review(sched, Stage.REVIEW, Grade.HARD, interval=1)
        assert result.interval_days == 2

    def test_low_ease_still_grows(self, sched):
        """At minimum ease GOOD still adds at least a day."""
        result = review(sched, Stage.REVIEW, Grade.GOOD, interval=3, ease=1300)
        assert result.interval_days == 4

    def test_max_interval_cap(self, sched):
        result = review(sched, Stage.REVIEW, Grade.EASY, interval=300, ease=3000)
        assert result.interval_days == 365
        assert result.ease_factor == 3000

    def test_again_lapses(self, sched):
        """AGAIN keeps the interval for later halving and drops ease by 200."""
        result = review(sched, Stage.REVIEW, Grade.AGAIN, interval=10)
        assert result.stage == Stage.RELEARNING
        assert result.step == 0
        assert result.interval_days == 10
        assert result.ease_factor == 2300
        assert result.next_review_date == T + timedelta(minutes=10)

    def test_again_at_min_ease(self, sched):
        result = review(sched, Stage.REVIEW, Grade.AGAIN, interval=10, ease=1300)
        assert result.ease_factor == 1300

    def test_timezone_does_not_shift_due_time(self, sched):
        """Offsets are plain elapsed time whatever timezone is passed."""
        utc = review(sched, Stage.REVIEW, Grade.GOOD, interval=10)
        other = sched.next_review(
            stage=Stage.REVIEW, interval_days=10, ease_factor=2500, step=0,
            grade=Grade.GOOD, reviewed_at=T, timezone="Asia/Shanghai",
        )
        assert other == utc


class TestFromRelearning:
    """RELEARNING stage transitions."""

    def test_good_graduates_with_half_interval(self, sched):
        result = review(sched, Stage.RELEARNING, Grade.GOOD, interval=10, ease=2300)
        assert result.stage == Stage.REVIEW
        assert result.interval_days == 5
        assert result.ease_factor == 2300
        assert result.next_review_date == T + timedelta(days=5)

    def test_hard_graduates_and_lowers_ease(self, sched):
        result = review(sched, Stage.RELEARNING, Grade.HARD, interval=10, ease=2300)
        assert result.interval_days == 5
        assert result.ease_factor == 2150

    def test_easy_graduates(self, sched):
        result = review(sched, Stage.RELEARNING, Grade.EASY, interval=9, ease=2300)
        assert result.stage == Stage.REVIEW
        assert result.interval_days == 4
        assert result.ease_factor == 2450

    def test_halved_interval_floor_is_one(self, sched):
        result = review(sched, Stage.RELEARNING, Grade.GOOD, interval=1)
        assert result.interval_days == 1

    def test_again_stays_relearning(self, sched):
        result = review(sched, Stage.RELEARNING, Grade.AGAIN, interval=10, ease=2300)
        assert result.stage == Stage.RELEARNING
        assert result.step == 0
        assert result.interval_days == 10
        assert result.ease_factor == 2100
        assert result.next_review_date == T + timedelta(minutes=10)

    def test_multi_step_relearning(self):
        config = SchedulerConfig(relearning_steps_minutes=(10, 30))
        sched = SrsScheduler(config=config, fuzz=NoFuzz())
        result = review(sched, Stage.RELEARNING, Grade.GOOD, interval=10, step=0)
        assert result.stage == Stage.RELEARNING
        assert result.step == 1
        assert result.interval_days == 10
        assert result.ease_factor == 2500
        assert result.next_review_date == T + timedelta(minutes=30)


class TestFuzz:
    """Interval perturbation."""

    def test_fixed_fuzz_up(self):
        sched = SrsScheduler(fuzz=FixedFuzz(100))
        assert review(sched, Stage.REVIEW, Grade.GOOD, interval=10).interval_days == 26

    def test_fixed_fuzz_down(self):
        sched = SrsScheduler(fuzz=FixedFuzz(-100))
        assert review(sched, Stage.REVIEW, Grade.GOOD, interval=10).interval_days == 24

    def test_small_intervals_not_fuzzed(self):
        sched = SrsScheduler(fuzz=FixedFuzz(5))
        assert sched.apply_fuzz(1) == 1

    def test_zero_spread_not_fuzzed(self):
        """floor(19 x 0.05) = 0, so nothing moves."""
        sched = SrsScheduler(fuzz=FixedFuzz(5))
        assert sched.apply_fuzz(19) == 19

    def test_fuzz_cannot_exceed_cap(self):
        sched = SrsScheduler(fuzz=FixedFuzz(100))
        assert review(sched, Stage.REVIEW, Grade.GOOD, interval=200).interval_days == 365

    def test_seeded_random_fuzz_is_repeatable(self):
        a = SrsScheduler(fuzz=RandomFuzz(seed=42))
        b = SrsScheduler(fuzz=RandomFuzz(seed=42))
        for interval in (20, 40, 80, 120):
            assert (
                review(a, Stage.REVIEW, Grade.GOOD, interval=interval)
                == review(b, Stage.REVIEW, Grade.GOOD, interval=interval)
            )

    def test_random_fuzz_zero_spread(self):
        assert RandomFuzz(seed=1).offset(0) == 0


class TestProperties:
    """Invariants over many transitions."""

    @pytest.mark.parametrize("stage", list(Stage))
    @pytest.mark.parametrize("grade", list(Grade))
    @pytest.mark.parametrize("ease", [1300, 1450, 2500, 2900, 3000])
    def test_ease_always_in_bounds(self, sched, stage, grade, ease):
        result = review(sched, stage, grade, interval=10, ease=ease, step=0)
        assert 1300 <= result.ease_factor <= 3000

    @pytest.mark.parametrize("grade", [Grade.HARD, Grade.GOOD, Grade.EASY])
    def test_review_growth_and_fuzz_bounds(self, sched, grade):
        """Pre-fuzz growth >= 1 day; post-fuzz within +/-5% and <= 365."""
        fuzzy = SrsScheduler(fuzz=RandomFuzz(seed=2026))
        for interval in range(1, 366, 7):
            for ease in (1300, 2500, 3000):
                unfuzzed = review(sched, Stage.REVIEW, grade, interval=interval, ease=ease)
                assert unfuzzed.interval_days >= min(interval + 1, 365)

                candidate = SrsScheduler(config=SchedulerConfig(max_interval_days=10_000), fuzz=NoFuzz())
                raw = review(candidate, Stage.REVIEW, grade, interval=interval, ease=ease).interval_days
                spread = raw * 50 // 1000

                fuzzed = review(fuzzy, Stage.REVIEW, grade, interval=interval, ease=ease)
                assert fuzzed.interval_days <= 365
                assert abs(fuzzed.interval_days - unfuzzed.interval_days) <= spread

    def test_again_from_review_always_relearning(self, sched):
        for interval in (1, 5, 30, 365):
            for ease in (1300, 2500, 3000):
                result = review(sched, Stage.REVIEW, Grade.AGAIN, interval=interval, ease=ease)
                assert (result.stage, result.step, result.interval_days) == (
                    Stage.RELEARNING, 0, interval
                )

    def test_random_walk_stays_valid(self):
        """A long random sequence of grades never leaves the valid state space."""
        rng = random.Random(99)
        sched = SrsScheduler(fuzz=RandomFuzz(seed=99))
        stage, interval, ease, step, now = Stage.NEW, 0, 2500, 0, T

        for _ in range(500):
            result = sched.next_review(
                stage=stage, interval_days=interval, ease_factor=ease, step=step,
                grade=Grade(rng.randint(0, 3)), reviewed_at=now,
            )
            assert 1300 <= result.ease_factor <= 3000
            assert 0 <= result.interval_days <= 365
            assert result.next_review_date > now
            if result.stage == Stage.REVIEW:
                assert result.interval_days >= 1
                assert result.step == 0
            stage, interval, ease, step = (
                result.stage, result.interval_days, result.ease_factor, result.step
            )
            now = result.next_review_date


class TestValidation:
    """Rejected inputs."""

    @pytest.mark.parametrize("grade", [-1, 4, 10])
    def test_out_of_range_grade(self, sched, grade):
        with pytest.raises(InvalidInputError):
            review(sched, Stage.REVIEW, grade, interval=10)

    @pytest.mark.parametrize("grade", ["2", 2.0, True, None])
    def test_non_integer_grade(self, sched, grade):
        with pytest.raises(InvalidInputError):
            review(sched, Stage.REVIEW, grade, interval=10)

    def test_integer_grade_accepted(self, sched):
        assert review(sched, Stage.REVIEW, 2, interval=10).interval_days == 25

    def test_unknown_stage(self, sched):
        with pytest.raises(InvalidStateError) as exc_info:
            review(sched, "mastered", Grade.GOOD)
        assert exc_info.value.stage == "mastered"

    def test_stored_stage_string_accepted(self, sched):
        result = review(sched, "review", Grade.GOOD, interval=10)
        assert result.interval_days == 25

    def test_negative_interval_is_corrupt_state(self, sched):
        with pytest.raises(InvalidStateError):
            review(sched, Stage.REVIEW, Grade.GOOD, interval=-1)

    def test_grade_checked_before_stage(self, sched):
        """Bad input is reported even when the stored stage is also bad."""
        with pytest.raises(InvalidInputError):
            review(sched, "mastered", 7)

    def test_missing_ease_defaults(self, sched):
        result = review(sched, Stage.REVIEW, Grade.GOOD, interval=10, ease=None)
        assert result.ease_factor == 2500

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"learning_steps_minutes": ()},
            {"relearning_steps_minutes": ()},
            {"min_review_interval_days": 0},
            {"max_interval_days": 0},
            {"fuzz_permille": -1},
        ],
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            SchedulerConfig(**kwargs)


class TestHelpers:
    """Module-level helper functions."""

    def test_calculate_next_review(self):
        result = calculate_next_review(
            Stage.REVIEW, 10, 2500, 0, Grade.GOOD, reviewed_at=T, fuzz=NoFuzz()
        )
        assert result.interval_days == 25

    def test_days_until_review_rounds_up(self):
        assert get_days_until_review(T + timedelta(hours=36), now=T) == 2

    def test_days_until_review_overdue(self):
        assert get_days_until_review(T - timedelta(days=1), now=T) == -1

    def test_is_due_inclusive(self):
        assert is_due_for_review(T, now=T)
        assert is_due_for_review(T - timedelta(seconds=1), now=T)
        assert not is_due_for_review(T + timedelta(seconds=1), now=T)
