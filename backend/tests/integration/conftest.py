"""Fixtures for database-backed tests (in-memory SQLite via aiosqlite)."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from database import build_session_factory, create_all


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Session rolled back after each test."""
    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()
