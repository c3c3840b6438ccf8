"""
Database Configuration.

SQLAlchemy async engine and session management for the durable event store.
Uses lazy initialization so a missing database configuration never fails at
import time; it surfaces as BackendUnavailableError on first use instead.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from event_mesh.core.exceptions import BackendUnavailableError
from event_mesh.core.logging import get_logger

logger = get_logger(__name__)

# Module-level state for lazy initialization
_engine: Any = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _create_engine() -> Any:
    """Create async SQLAlchemy engine."""
    from event_mesh.core.config import get_app_config, get_database_url

    db_config = get_app_config().database
    url = get_database_url()

    options: dict[str, Any] = {"echo": db_config.echo}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=db_config.pool_size,
            max_overflow=db_config.max_overflow,
            pool_timeout=db_config.pool_timeout,
            pool_recycle=db_config.pool_recycle,
            pool_pre_ping=True,
        )

    try:
        engine = create_async_engine(url, **options)
    except ImportError as e:
        logger.error("Database driver not installed", extra={"error": str(e)})
        raise BackendUnavailableError("Database driver not installed") from e

    logger.debug("Database engine created", extra={"host": db_config.host})
    return engine


def get_engine() -> Any:
    """
    Get the database engine, creating it on first use.

    Raises:
        BackendUnavailableError: If the database is not configured
    """
    global _engine
    if _engine is None:
        _engine = _create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory, creating it on first use."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_factory


async def create_tables() -> None:
    """Create the event_history and narrative_context tables if missing."""
    from event_mesh.models.base import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose of the engine and forget the cached session factory."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_factory = None
