"""Persistence: SQLAlchemy models, sessions and read-only progress queries."""

from srs_tracker.db.database import (
    create_db_engine,
    create_session_factory,
    dispose_engine,
    get_engine,
    get_session_factory,
    init_db,
    run_migration,
    session_scope,
)
from srs_tracker.db.models import Base, DailyStats, ReviewHistory, UserItem

__all__ = [
    "Base",
    "DailyStats",
    "ReviewHistory",
    "UserItem",
    "create_db_engine",
    "create_session_factory",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "init_db",
    "run_migration",
    "session_scope",
]
