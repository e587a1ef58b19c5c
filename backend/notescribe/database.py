"""
NoteScribe Backend — Database Session Management
==================================================

What:  Async SQLAlchemy engine factory, declarative base, schema bootstrap,
       and the per-request session dependency.
How:   `create_engine()` builds one engine per application; `create_app()`
       keeps it and its session factory on `app.state`. `get_db_session`
       hands each request its own AsyncSession from that factory.
Who:   Used by route handlers via FastAPI's dependency injection system and
       by tests that need a real (SQLite) database.

Driver selection comes from the URL:
    sqlite+aiosqlite:///./notes.db          (default, single file)
    postgresql+asyncpg://user:pw@host/db    (optional `postgres` extra)
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shares one metadata object)."""
    pass


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    SQLite connections are shared across the event loop's tasks, so
    `check_same_thread` is disabled for that dialect. Server databases get
    pre-ping so stale pooled connections are replaced transparently.
    """
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_recycle"] = 3600
    return create_async_engine(database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: returned Note objects stay readable after the
    # store commits each mutation
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """
    Ensure the `notes` table and its secondary indexes exist.

    Idempotent: `create_all` checks for each table/index before creating it,
    so this runs on every startup.
    """
    # Imported for its side effect of registering Note with Base.metadata
    from notescribe.models import note  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the application's factory
        2. Yields it to the route handler
        3. On error: rolls back anything the store has not committed
        4. Always: closes the session (returns connection to pool)

    The note store commits each mutation itself, so nothing is left pending
    when the handler returns normally.
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine(engine: AsyncEngine) -> None:
    """Close all pooled connections (application shutdown)."""
    await engine.dispose()
