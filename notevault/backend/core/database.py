"""
Database Configuration.

Async SQLAlchemy engine and sessions for the note store. The engine is
built on first use, not at import, so modules importing this one stay
importable without DB_PASSWORD set.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from notevault.backend.core.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _create_engine() -> AsyncEngine:
    from notevault.backend.core.config import get_app_config, get_database_url

    db = get_app_config().database
    engine = create_async_engine(
        get_database_url(),
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        pool_pre_ping=True,
        echo=db.echo,
        echo_pool=db.echo_pool,
    )
    logger.debug("Database engine created", extra={"host": db.host, "database": db.name})
    return engine


def get_engine() -> AsyncEngine:
    """Shared engine, created on first call."""
    global _engine
    if _engine is None:
        _engine = _create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Shared session factory.

    expire_on_commit is off: services hand ORM rows to response schemas
    after the request transaction has committed.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Session committed on clean exit and rolled back on any exception."""
    factory = session_factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session dependency; see core.dependencies.DbSession."""
    async with transaction() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None
