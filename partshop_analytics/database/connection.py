"""
Database Connection Management

Async SQLAlchemy 2.0 engine and session factory for the storefront database.
The engine is created explicitly by the application lifespan and handed to
request handlers through ``app.state``; nothing is created at import time.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from partshop_analytics.config import Settings, get_settings

logger = structlog.get_logger(__name__)


def create_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    Behind Supabase's transaction pooler the engine opens a fresh asyncpg
    connection per checkout (NullPool); against a direct connection it keeps
    its own pool sized by ``pool_size``, ``max_overflow`` and ``pool_timeout``.
    """
    settings = settings or get_settings()
    db = settings.database

    if db.use_external_pooler:
        pool_options: Dict[str, Any] = {"poolclass": NullPool}
    else:
        pool_options = {
            "pool_size": db.pool_size,
            "max_overflow": db.max_overflow,
            "pool_timeout": db.pool_timeout,
        }

    return create_async_engine(
        db.async_url,
        echo=db.echo,
        pool_pre_ping=True,
        **pool_options,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Create the engine and verify it can reach the database.

    Returns:
        AsyncEngine: The initialized database engine

    Raises:
        Exception: Whatever the driver raised while connecting
    """
    settings = settings or get_settings()
    engine = create_engine(settings)

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info(
            "Database connection established",
            host=settings.database.host if not settings.database.url else "from-url",
        )
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        await engine.dispose()
        raise

    return engine


async def close_database(engine: Optional[AsyncEngine]) -> None:
    """Dispose of the engine's connections."""
    if engine is not None:
        await engine.dispose()
        logger.info("Database connection pool closed")


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session that is rolled back on error and always closed.

    Example:
        async with session_scope(factory) as db:
            result = await db.execute(query)
    """
    session = session_factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.debug("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()


async def check_database_health(session_factory: async_sessionmaker[AsyncSession]) -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    try:
        start = time.perf_counter()
        async with session_scope(session_factory) as db:
            await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
