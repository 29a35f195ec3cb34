"""
srs-tracker: spaced-repetition scheduling core for a learning-progress tracker.

Three layers:
- scheduling: grade derivation and the stage/interval state machine (pure)
- reviews: the submission coordinator (one transaction per review)
- db: SQLAlchemy models, sessions and read-only queries
"""

__version__ = "1.0.0"
