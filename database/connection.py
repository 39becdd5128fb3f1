"""
Database connection and session management.
"""
import time
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from database.models import Base
from database.views import VIEW_DEFINITIONS, create_view_statement
from core.logger import logger


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores REFERENCES clauses unless the pragma is set per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str, pool_size: int = 10, max_overflow: int = 20):
        """
        Initialize database connection.

        Args:
            database_url: PostgreSQL (or SQLite, for tests) connection URL
            pool_size: Number of connections to maintain
            max_overflow: Maximum overflow connections
        """
        self.database_url = database_url
        if database_url.startswith("sqlite"):
            self.engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                echo=False
            )
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_engine(
                database_url,
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,  # Verify connections before using
                echo=False  # Set to True for SQL query logging
            )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        logger.info(f"Database engine initialized: {database_url.split('@')[1] if '@' in database_url else 'local'}")

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created")

    def create_views(self):
        """Create the display views joining names onto reference ids."""
        dialect_name = self.engine.dialect.name
        with self.engine.begin() as conn:
            for name in VIEW_DEFINITIONS:
                conn.execute(text(create_view_statement(name, dialect_name)))
        logger.info(f"Database views created: {', '.join(VIEW_DEFINITIONS)}")

    def bootstrap(self, attempts: int = 3, delay_seconds: float = 2.0):
        """
        Create tables and views, retrying transient connection failures.

        Args:
            attempts: Total number of attempts
            delay_seconds: Fixed wait between attempts
        """
        for attempt in range(1, attempts + 1):
            try:
                self.create_tables()
                self.create_views()
                return
            except OperationalError as e:
                if attempt == attempts:
                    logger.error(f"Database bootstrap failed after {attempts} attempts: {e}")
                    raise
                logger.warning(
                    f"Database bootstrap attempt {attempt}/{attempts} failed: {e}; "
                    f"retrying in {delay_seconds}s"
                )
                time.sleep(delay_seconds)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get database session context manager.

        Usage:
            with db.get_session() as session:
                # Use session
                pass
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
