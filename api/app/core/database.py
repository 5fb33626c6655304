"""Async database engine and session management.

Creating the engine does not open a connection; the pool connects on first use.
Tests swap `get_db` out through FastAPI's dependency overrides and point it at
their own engine.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=20,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request: committed when the handler returns, rolled back if it raises."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            logger.debug("Rolling back session after %s", type(exc).__name__)
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Close pooled connections (app shutdown)."""
    await engine.dispose()
