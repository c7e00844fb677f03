"""Database connection and session management."""

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///codescope.db"


class DatabaseManager:
    """Owns the engine and hands out transactional sessions.

    SQLite databases are opened with ``check_same_thread=False`` so job
    worker threads can share the engine; in-memory SQLite additionally uses
    a StaticPool so every session sees the same database.
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        self.database_url = database_url or DEFAULT_DATABASE_URL

        if self.database_url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in self.database_url or self.database_url in ("sqlite://", "sqlite:///"):
                kwargs["poolclass"] = StaticPool
            self.engine = create_engine(self.database_url, echo=echo, **kwargs)
        else:
            self.engine = create_engine(
                self.database_url,
                echo=echo,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
            )

        self._session_factory = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    def init_db(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema initialized")

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on any exception."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except OperationalError as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()


def wait_for_db(db_manager: DatabaseManager, retries: int = 10, delay: float = 2.0) -> bool:
    """Poll the database until it answers or retries run out."""
    for attempt in range(1, retries + 1):
        if db_manager.ping():
            return True
        logger.info(f"Database not ready (attempt {attempt}/{retries}), retrying in {delay}s")
        time.sleep(delay)
    logger.error("Database did not become available")
    return False
