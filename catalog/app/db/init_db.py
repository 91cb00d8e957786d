"""Schema bootstrap and connectivity check.

Tables are created from the ORM metadata; there are no migrations.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from catalog.app.core.logging import get_logger
from catalog.app.db import models  # noqa: F401 - registers the tables on Base.metadata
from catalog.app.db.base import Base

logger = get_logger(__name__)


async def drop_all_tables(engine: AsyncEngine) -> None:
    """Drop every catalog table. Development and tests only."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def create_all_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database(engine: AsyncEngine, drop_first: bool = False) -> None:
    """Create missing tables, optionally dropping the existing ones first."""
    if drop_first:
        logger.warning("Dropping all tables before initialization")
        await drop_all_tables(engine)
    await create_all_tables(engine)


async def verify_connection(engine: AsyncEngine) -> bool:
    """Return ``True`` when ``SELECT 1`` succeeds on ``engine``.

    Failures are logged and reported as ``False`` so startup can refuse to
    serve with a clear message.
    """
    try:
        async with engine.connect() as conn:
            return (await conn.execute(text("SELECT 1"))).scalar() == 1
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
