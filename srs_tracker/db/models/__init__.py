# SQLAlchemy models
from .base import Base
from .progress import DailyStats, ReviewHistory, UserItem

__all__ = [
    # Base
    "Base",
    # Progress tracking
    "UserItem",
    "ReviewHistory",
    "DailyStats",
]
