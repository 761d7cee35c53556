"""
Database session management for the library circulation package.

This module provides connection management and the unit of work used by the
services. Every borrow or return runs inside one ``session_scope()``: the copy
counter update and the borrowing write either commit together or roll back
together.

Key considerations:
- Sessions are short-lived (one per service operation)
- Repositories flush but never commit; the scope owns the transaction
- Driver failures surface as ``StorageUnavailable``, never as business errors
"""

import logging
import threading
from collections.abc import Callable, Generator
from contextlib import contextmanager, nullcontext
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import ConstraintViolation, DuplicateError, StorageUnavailable
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseManager:
    """
    Manages database connections and sessions.

    This class provides:
    - Lazy engine creation with SQLite foreign keys switched on
    - Session factory with explicit transactions
    - The ``session_scope`` unit of work
    - Schema creation for development and tests
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, uses configuration.
        """
        if database_url is None:
            database_url = get_config().get_database_url()
            logger.info("Using database at: %s", database_url)

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        # Held for the whole unit of work when every session shares one connection
        self._connection_lock = threading.RLock()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def shares_connection(self) -> bool:
        """True for in-memory SQLite, where every session uses the same connection."""
        return self.is_sqlite and (
            self.database_url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:")
            or ":memory:" in self.database_url
            or "mode=memory" in self.database_url
        )

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        An in-memory SQLite database lives as long as its connection, so those
        engines keep a single connection (StaticPool) and ``session_scope``
        runs their units of work one at a time. SQLite files get a connection
        per session. Foreign keys are enforced on every SQLite connection.
        """
        if self._engine is None:
            if self.shares_connection:
                self._engine = create_engine(
                    self.database_url,
                    # Use StaticPool to maintain a single connection
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    echo=False,
                )
            elif self.is_sqlite:
                self._engine = create_engine(
                    self.database_url,
                    connect_args={"check_same_thread": False, "timeout": 30},
                    echo=False,
                )
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,  # Verify connections before use
                    echo=False,
                )

            if self.is_sqlite:
                # Enable foreign key constraints for SQLite
                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                # Keep returned objects readable after commit
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """
        Create a new database session.

        Note:
            Prefer ``session_scope()``; a bare session must be closed by the caller.
        """
        try:
            return self.session_factory()
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Could not open a database session: {e!s}") from e

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            book = BookRepository(session).get_by_id(book_id)
            ...
        # Committed if the block finished, rolled back if it raised
        ```

        Yields:
            Database session

        Raises:
            StorageUnavailable: If the commit itself fails
        """
        guard = self._connection_lock if self.shares_connection else nullcontext()
        with guard:
            session = self.create_session()
            try:
                yield session
                try:
                    session.commit()
                except IntegrityError as e:
                    raise _integrity_error(e, "commit") from e
                except SQLAlchemyError as e:
                    raise StorageUnavailable(f"Commit failed: {e!s}") from e
                logger.debug("Database transaction committed successfully")
            except Exception:
                logger.debug("Rolling back database transaction")
                session.rollback()
                raise
            finally:
                session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Initialize the database schema.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        try:
            if drop_existing:
                logger.warning("Dropping all existing tables...")
                Base.metadata.drop_all(bind=engine)

            logger.info("Creating database tables...")
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Schema creation failed: {e!s}") from e
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """
        Verify the database connection is working.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Close the database connection and cleanup resources."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose of the global manager (useful for testing)."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def _integrity_error(error: IntegrityError, operation: str) -> Exception:
    message = str(error.orig)
    if "UNIQUE" in message.upper() or "DUPLICATE" in message.upper():
        return DuplicateError("unique key", message, entity=operation)
    return ConstraintViolation(f"Database rejected '{operation}': {message}")


def safe_flush(session: Session, operation: str) -> None:
    """
    Flush pending changes, translating driver errors.

    Args:
        session: The database session
        operation: Description of the operation (for error messages)

    Raises:
        DuplicateError: If a unique constraint rejected the write
        ConstraintViolation: If another constraint rejected the write
        StorageUnavailable: If the database could not be reached
    """
    try:
        session.flush()
    except IntegrityError as e:
        raise _integrity_error(e, operation) from e
    except SQLAlchemyError as e:
        logger.exception("Flush failed during %s", operation)
        raise StorageUnavailable(f"Database operation '{operation}' failed: {e!s}") from e


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, translating driver errors into ``StorageUnavailable``.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Context for the error message

    Returns:
        Query result
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise StorageUnavailable(f"{error_msg}: database query failed") from e
