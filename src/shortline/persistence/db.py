"""Async database engine and session factory.

Provides PostgreSQL async connectivity using SQLAlchemy 2.0 asyncio
extension with asyncpg driver.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shortline.config import settings

# Module-level engine (initialized lazily)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async database engine.

    The pool is shared by every concurrent operation; pool and command
    timeouts bound how long a store call can block.
    """
    global _engine
    if _engine is None:
        connect_args: dict[str, Any] = {}
        if settings.database_url.startswith("postgresql+asyncpg"):
            connect_args["command_timeout"] = settings.db_command_timeout
        _engine = create_async_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,  # Verify connection health
            connect_args=connect_args,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


@asynccontextmanager
async def session_context(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Provide a transactional scope around a series of operations.

    Commits when the block exits normally, rolls back on any exception.

    Usage:
        async with session_context(factory) as session:
            await session.execute(...)
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Initialize database (create tables if not exists)."""
    from shortline.persistence.tables import Base

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def health_check(factory: async_sessionmaker[AsyncSession] | None = None) -> bool:
    """Check database connectivity."""
    try:
        async with session_context(factory) as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
