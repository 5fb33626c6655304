"""Shared test fixtures.

API tests run against a fresh in-memory SQLite database per test. The app's
own `get_db` dependency is overridden to hand out sessions bound to it, and the
clock dependency is pinned so "past" and "overdue" are deterministic.
"""

from datetime import UTC, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.dependencies import get_now
from app.main import app
from app.models import Base

# Monday 16 March 2026, 08:00 in Madrid (UTC+1 until the end of March)
NOW = datetime(2026, 3, 16, 7, 0, tzinfo=UTC)


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def client(session_factory):
    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_now] = lambda: NOW

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
