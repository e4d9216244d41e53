"""
Database Module

SQLAlchemy 2.0 setup for the Book Review API.

Database Handle
===============
All connection state lives in one explicitly constructed ``Database``
object: the engine (and its connection pool) plus a session factory.
``create_app()`` builds it once and stores it on ``app.state.database``;
``get_db`` checks a session out of it for every request. Nothing else
reaches for a module-level engine, so tests can hand the app an
in-memory SQLite handle.

Session Management Pattern
==========================
We use the "session per request" pattern:
1. Request arrives -> create a new session
2. Use session for all database operations in that request
3. Commit on success, rollback on failure
4. Close session when request ends

Multi-statement writes (cascading deletes) go through ``atomic()``,
which commits on success and rolls back on any exception.
"""

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookreviews.config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Base Model Class
# =============================================================================
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Alembic uses ``Base.metadata`` to discover tables for migrations.
    """
    pass


# =============================================================================
# Database Handle
# =============================================================================
class Database:
    """
    Pooled connection handle: an engine plus a session factory.

    Created once per process and shared read-only by every request.
    Only ``dispose()`` changes it, on intentional shutdown.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        # autoflush=False: don't auto-flush before queries (more predictable)
        # expire_on_commit=False: returned objects stay readable after commit
        self.session_factory = sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: float = 10.0,
        statement_timeout_ms: int = 0,
        echo: bool = False,
    ) -> "Database":
        """
        Build a handle for ``url``.

        SQLite (used by tests and local experiments) gets a single shared
        connection so in-memory databases survive across sessions. Server
        databases get a bounded pool with pre-ping, a checkout timeout and,
        on PostgreSQL, a server-side statement timeout.
        """
        backend = make_url(url).get_backend_name()

        if backend == "sqlite":
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo,
            )
        else:
            connect_args = {}
            if backend == "postgresql" and statement_timeout_ms > 0:
                connect_args["options"] = f"-c statement_timeout={statement_timeout_ms}"
            engine = create_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_pre_ping=True,  # Verify connections are alive before using
                connect_args=connect_args,
                echo=echo,
            )

        logger.info(f"Database handle created for {backend} backend")
        return cls(engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build a handle from application settings."""
        return cls.from_url(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            statement_timeout_ms=settings.db_statement_timeout_ms,
            echo=settings.debug,
        )

    def session(self) -> Session:
        """Open a new session bound to this handle's engine."""
        return self.session_factory()

    def ping(self) -> bool:
        """Run a trivial query; used by the health endpoint."""
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True

    def create_tables(self) -> None:
        """
        Create all tables.

        WARNING: In production, use Alembic migrations instead.
        """
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        """Drop all tables. Development and tests only."""
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
        logger.info("Database connection pool disposed")


# =============================================================================
# Transactions
# =============================================================================
@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Run a block of writes as one transaction.

    Commits when the block finishes; rolls back and re-raises on any
    exception, so a failure midway leaves the previously committed state
    untouched.

    Usage:
        with atomic(db):
            db.execute(delete(Review).where(Review.book_id == book_id))
            db.execute(delete(Book).where(Book.id == book_id))
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise


# =============================================================================
# Dependency Injection
# =============================================================================
def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI.

    Checks a session out of the ``Database`` stored on ``app.state`` and
    closes it when the request ends, even if the handler raised.

    Yields:
        SQLAlchemy Session instance
    """
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
