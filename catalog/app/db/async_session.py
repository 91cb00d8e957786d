"""Async database session management for SQLAlchemy 2.0+.

The engine and session maker are created once per application by
``create_app`` and kept on ``app.state``; request handlers receive sessions
through the ``get_db`` dependency.
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from catalog.app.core.config import Settings
from catalog.app.core.logging import get_logger

logger = get_logger(__name__)


def create_engine_for(config: Settings) -> AsyncEngine:
    """Create the async database engine for the configured URL.

    SQLite URLs (tests, local development) share a single connection so
    in-memory databases survive across sessions; every other URL gets a
    sized connection pool.

    Returns:
        AsyncEngine instance
    """
    url = config.database_url

    if url.lower().startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        logger.info("Created SQLite async engine")
        return engine

    engine = create_async_engine(
        url,
        echo=False,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_timeout=config.db_pool_timeout,
        pool_recycle=config.db_pool_recycle,
        pool_pre_ping=config.db_pool_pre_ping,
    )
    logger.info(
        f"Created async engine (pool_size={config.db_pool_size}, "
        f"max_overflow={config.db_max_overflow}, "
        f"pool_timeout={config.db_pool_timeout}s)"
    )
    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session maker bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from the application's session maker."""
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        yield session


async def close_engine(engine: AsyncEngine) -> None:
    """Dispose the engine and release its connections.

    Call this on application shutdown.
    """
    try:
        await engine.dispose()
        logger.debug("Async engine disposed successfully")
    except RuntimeError:
        # Event loop mismatch - connection already closed by a different loop
        logger.debug("Engine dispose encountered RuntimeError (event loop mismatch)")
