"""Database engine and session setup.

Production Pattern:
- One engine per process, created on first use
- pool_pre_ping so stale connections from the hosted database are recycled
- Table creation retried at startup while the database wakes up
"""
import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)

from clinic_booking.config import get_settings
from clinic_booking.models import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for database_url.

    In-memory SQLite shares one connection so every session sees the same data.
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True, pool_size=5, max_overflow=10)


def get_engine() -> Engine:
    """
    Get or create the process-wide engine.

    Returns:
        Engine bound to DATABASE_URL
    """
    global _engine

    if _engine is None:
        _engine = create_db_engine(get_settings().database_url)

    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)

    return _session_factory


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type(OperationalError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True
)
def init_database(engine: Optional[Engine] = None):
    """
    Create the appointments table and indexes.

    Safe to call multiple times (idempotent).

    Usage:
        @asynccontextmanager
        async def lifespan(app):
            init_database()
            yield
    """
    Base.metadata.create_all(engine or get_engine())
    logger.info("Database initialized")


def close_database():
    """Dispose the engine during application shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
