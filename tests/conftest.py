"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from backend.app.db.models import Base
from tests.factories import build_reporting_rows, make_store_spy


@pytest.fixture
def store_spy() -> MagicMock:
    """ReportingStore double recording every fetch."""
    return make_store_spy()


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed sqlite engine with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_engine(sqlite_engine: AsyncEngine) -> AsyncEngine:
    """Engine whose database holds the two-organization fixture data."""
    async with AsyncSession(sqlite_engine) as session:
        for row in build_reporting_rows():
            session.add(row)
            await session.flush()
        await session.commit()
    return sqlite_engine


@pytest_asyncio.fixture
async def db_session(seeded_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Session over the seeded database."""
    async with AsyncSession(seeded_engine) as session:
        yield session
