"""Database connection management for AdvanceWeekly."""

from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncGenerator, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from advanceweekly.config import settings

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _engine_options(url: str) -> dict:
    # SQLite pools reject sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=False,
    **_engine_options(settings.database_url),
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def get_engine():
    """Get the database engine."""
    return engine


def session_scope(factory: async_sessionmaker[AsyncSession]) -> SessionFactory:
    """Build a commit-on-success session context manager over ``factory``."""

    @asynccontextmanager
    async def _scope() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return _scope


# Default session context manager used by services
get_session: SessionFactory = session_scope(async_session_factory)


async def init_db() -> None:
    """Initialize database tables."""
    # Import models to register them with SQLModel.metadata
    import advanceweekly.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
