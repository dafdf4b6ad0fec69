"""
Database Infrastructure
=======================

Async engine and transactional sessions for the help-desk tables.

PostgreSQL is reached through asyncpg in production; tests run against an
in-memory SQLite database through aiosqlite. A session opened by
``get_session_context`` is one unit of work: it commits when the block
exits normally and rolls back every write when anything inside raises.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from sistec.config import settings


class Base(DeclarativeBase):
    """Declarative base shared by every ORM model of the service."""


_engine: Optional[AsyncEngine] = None
_sessions: Optional[async_sessionmaker[AsyncSession]] = None


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # One shared connection, so an in-memory database outlives each session
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the engine and the session factory.

    Args:
        database_url: Used instead of ``settings.database_url`` when given
            (tests pass ``sqlite+aiosqlite:///:memory:``)
    """
    global _engine, _sessions

    url = database_url or settings.database_url
    # asyncpg takes "ssl", not libpq's "sslmode"
    url = url.replace("sslmode=", "ssl=")

    _engine = create_async_engine(url, echo=settings.debug, **_engine_options(url))
    _sessions = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("init_database() has not been called")
    return _engine


async def close_database() -> None:
    """Release pooled connections on shutdown."""
    global _engine, _sessions

    if _engine is None:
        return
    await _engine.dispose()
    _engine, _sessions = None, None


@asynccontextmanager
async def get_session_context() -> AsyncIterator[AsyncSession]:
    """
    Open one transactional unit.

    Usage:
        async with get_session_context() as session:
            session.add(ticket)
    """
    if _sessions is None:
        raise RuntimeError("init_database() has not been called")

    async with _sessions() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def create_tables() -> None:
    """Create missing tables. Development and tests only; production uses migrations."""
    # Importing the models registers them on Base.metadata
    import sistec.tickets.infrastructure.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    """Drop every table. Used by test teardown."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
