"""Async engine and per-request sessions for the track store."""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.config import get_settings
from backend.app.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_async_engine(
    str(settings.database_url),
    echo=settings.debug,
    poolclass=NullPool,
)

# Objects stay readable after commit; services build responses from them
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Check that the track store is reachable at startup."""
    logger.info(f"Connecting to track store ({engine.url.render_as_string(hide_password=True)})")
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except OperationalError as e:
        logger.error(f"Track store unreachable: {e.orig}")
        raise
    logger.info("Track store connection established")


async def close_db() -> None:
    """Release pooled connections."""
    await engine.dispose()
    logger.info("Track store connections closed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session for one request.

    Services own their transaction boundaries and commit themselves; this
    only rolls back whatever is left open on failure. Connection-level
    failures surface as DatabaseError so clients get a retryable 503.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except OperationalError as e:
            await session.rollback()
            logger.error(f"Track store unavailable: {e.orig}")
            raise DatabaseError("Database unavailable") from e
        except Exception:
            await session.rollback()
            raise
