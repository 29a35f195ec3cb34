"""
Error taxonomy for the scheduling core.

InvalidInputError is raised before any mutation, InvalidStateError is fatal
for the record it was raised on, and PersistenceError is surfaced to the
caller unchanged apart from the wrapping (the original is kept as __cause__).
"""

from __future__ import annotations


class SrsError(Exception):
    """Base class for every error raised by srs_tracker."""
    pass


class InvalidInputError(SrsError, ValueError):
    """Raised when a caller passes a grade, time or identifier we cannot accept."""
    pass


class InvalidStateError(SrsError):
    """Raised when a stored record carries a stage the scheduler does not know."""

    def __init__(self, stage: object, message: str | None = None):
        self.stage = stage
        super().__init__(message or f"Unrecognized SRS stage: {stage!r}")


class PersistenceError(SrsError):
    """Raised when the review transaction could not be committed."""
    pass
