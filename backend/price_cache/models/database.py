"""Database configuration for the hot cache tier."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./price_cache.db"

Base = declarative_base()


def create_engine(database_url: str = DEFAULT_DATABASE_URL) -> AsyncEngine:
    """Create the async engine backing the hot cache."""
    if database_url.endswith(":memory:"):
        # Every pooled connection would otherwise see its own empty database
        return create_async_engine(database_url, echo=False, poolclass=StaticPool)
    return create_async_engine(database_url, echo=False)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Build a session factory bound to the given engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Initialize the database, creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
