"""
Database connection and session management.
"""

from typing import Optional
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import settings

# Base class for all ORM entities
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite leaves foreign key enforcement off unless asked per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """Create an async engine, enabling foreign keys on SQLite."""
    url = database_url or settings.database_url
    kwargs.setdefault("echo", settings.database_echo)
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_pre_ping", True)

    engine = create_async_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory used by request handlers and the tagging worker."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    # Register entity tables on Base.metadata
    from . import entities  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

