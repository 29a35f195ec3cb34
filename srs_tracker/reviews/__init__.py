"""Review submission: applies graded answers to stored SRS state."""

from srs_tracker.reviews.submission import ReviewSubmitter, accuracy_percentage
from srs_tracker.reviews.types import (
    DailyRollupSnapshot,
    ItemStateSnapshot,
    ReviewEventRecord,
    ReviewSubmission,
    SubmissionResult,
)

__all__ = [
    "ReviewSubmitter",
    "accuracy_percentage",
    "ReviewSubmission",
    "SubmissionResult",
    "ItemStateSnapshot",
    "ReviewEventRecord",
    "DailyRollupSnapshot",
]
