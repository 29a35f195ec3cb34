"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from srs_tracker.db.database import create_db_engine, create_session_factory, init_db
from srs_tracker.reviews.submission import ReviewSubmitter
from srs_tracker.reviews.types import ReviewSubmission
from srs_tracker.scheduling import NoFuzz, SrsScheduler


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Controllable clock; call it to read, advance() to move forward."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fixed_now():
    """A fixed review time, mid-day UTC."""
    return datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    """Clock starting at fixed_now."""
    return FakeClock(fixed_now)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables created."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the in-memory database."""
    return create_session_factory(engine)


@pytest.fixture
def scheduler():
    """Scheduler with fuzz disabled."""
    return SrsScheduler(fuzz=NoFuzz())


@pytest.fixture
def submitter(session_factory, scheduler, clock):
    """ReviewSubmitter wired to the in-memory database and fake clock."""
    return ReviewSubmitter(session_factory=session_factory, scheduler=scheduler, clock=clock)


@pytest.fixture
def make_submission():
    """Factory for ReviewSubmission with sensible defaults."""

    def _make(**overrides) -> ReviewSubmission:
        fields = {
            "user_id": "learner-1",
            "item_id": 101,
            "item_type": "vocabulary",
            "user_answer": "ni3 hao3",
            "correct_answer": "ni3 hao3",
            "is_correct": True,
            "grade": 2,
            "response_time_ms": 4200,
        }
        fields.update(overrides)
        return ReviewSubmission(**fields)

    return _make
