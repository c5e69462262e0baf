"""
Database configuration and session management.

Provides the async engine (connection pool) shared by all requests and the
session factory used by the Account Store.

DATABASE_URL is read from careerbridge.core.config (single resolution path).
"""
import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from careerbridge.core.config import Settings

logger = logging.getLogger(__name__)


def to_async_url(database_url: str) -> str:
    """Convert a plain driver URL to its async equivalent."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite:///"):
        return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return database_url


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    In-memory SQLite needs a StaticPool so every session sees the same
    connection; other backends get a pre-pinged pool.
    """
    url = to_async_url(settings.database_url)

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=False, **kwargs)

    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=10,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the async session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_database(engine: AsyncEngine) -> None:
    """
    Create tables if they don't exist.

    Note: In production, use migrations instead.
    This is mainly for development/testing.
    """
    from careerbridge.auth.db_models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables initialized")
