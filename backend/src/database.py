"""Database engine and session factory.

Provides async database connectivity and session management for the
matching engine. Production uses asyncpg; tests use aiosqlite.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config import get_settings
from models.base import Base

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for database_url.

    Pool settings only apply to PostgreSQL (not SQLite).
    """
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": echo,
    }
    if not database_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10
    return create_async_engine(database_url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine() -> AsyncEngine:
    """Lazily create the process-wide engine from settings."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    return _engine


def get_session_factory() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database sessions.

    Usage:
        async with get_db_session() as session:
            await session.execute(select(ProfileModel))

    Automatically commits on success, rolls back on exception.
    """
    session = get_session_factory()()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @router.post("/rank")
        async def rank(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_db_session() as session:
        yield session


async def create_all(engine: Optional[AsyncEngine] = None) -> None:
    """Create all tables (development and tests)."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
