from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_settings
from srs_tracker.db.models.base import Base

_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for PostgreSQL or SQLite (file or in-memory)."""
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url:
            # One shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        _begin_immediate(engine)
        return engine
    return create_engine(url, echo=echo, pool_pre_ping=True)


def _begin_immediate(engine: Engine) -> None:
    """
    Make every SQLite transaction take the write lock on its first statement.

    SQLite ignores FOR UPDATE and pysqlite only opens a transaction before DML,
    so two writers could otherwise read the same row state and both commit.
    With BEGIN IMMEDIATE a second writer blocks (up to the driver's busy
    timeout) until the first commits, then reads the committed state.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to an engine."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_engine() -> Engine:
    """Get the database engine (created on first use from settings)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the default session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = create_session_factory(get_engine())
    return _SessionLocal


def dispose_engine() -> None:
    """Drop the cached engine so the next call rebuilds it from settings."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def init_db(engine: Engine | None = None) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("Database tables initialized")


def split_sql_statements(sql: str) -> list[str]:
    """Split a SQL script on semicolons, keeping DO $$ ... $$; blocks whole."""
    statements = []
    current: list[str] = []
    in_block = False

    for line in sql.split("\n"):
        stripped = line.strip()
        if not current and (not stripped or stripped.startswith("--")):
            continue

        if stripped.startswith("DO $$"):
            in_block = True
        if in_block and stripped.endswith("$$;"):
            in_block = False

        current.append(line)

        if stripped.endswith(";") and not in_block:
            statements.append("\n".join(current).strip())
            current = []

    if current and "\n".join(current).strip():
        statements.append("\n".join(current).strip())
    return statements


def run_migration(migration_file: Path, engine: Engine | None = None) -> dict[str, int]:
    """
    Run a SQL migration file statement by statement.

    Statements failing because their object already exists are skipped, so
    re-running a migration is harmless. Any other failure is raised.

    Returns:
        {"executed": n, "skipped": n}
    """
    if not migration_file.exists():
        raise FileNotFoundError(f"Migration file not found: {migration_file}")

    statements = split_sql_statements(migration_file.read_text(encoding="utf-8"))
    executed = 0
    skipped = 0

    with (engine or get_engine()).connect() as conn:
        for i, stmt in enumerate(statements, 1):
            try:
                conn.execute(text(stmt))
                conn.commit()
                executed += 1
            except SQLAlchemyError as e:
                conn.rollback()
                if "already exists" in str(e) or "duplicate" in str(e).lower():
                    skipped += 1
                    logger.debug(f"Statement {i}: already exists (skipped)")
                else:
                    logger.error(f"Statement {i} of {migration_file.name} failed: {e}")
                    raise

    logger.info(f"Migration applied: {migration_file.name} ({executed} executed, {skipped} skipped)")
    return {"executed": executed, "skipped": skipped}


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()
