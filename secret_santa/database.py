"""
Database configuration and session management using SQLAlchemy with async support.
"""
import logging
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import get_settings
from .errors import TransientStoreError

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.endswith("://"))


def build_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """
    Create an async engine for the given URL (defaults to DATABASE_URL).
    In-memory SQLite shares one connection so every session sees the same tables.
    """
    settings = get_settings()
    url = database_url or settings.database_url
    kwargs = {"echo": settings.sql_echo if echo is None else echo, "future": True}
    if _is_memory_sqlite(url):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_async_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database tables."""
    # Import models to register them with Base.metadata
    from . import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for getting database sessions."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def commit(session: AsyncSession, action: str) -> None:
    """
    Commit the current unit of work; on failure roll it back completely and
    surface a TransientStoreError so callers never see half-applied state.
    """
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("[STORE] %s failed", action)
        raise TransientStoreError(f"Could not {action}") from exc
