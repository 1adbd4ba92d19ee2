"""Async database engine and session management for the SQL document store."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""
    pass


def create_engine(database_url: str, debug: bool = False) -> AsyncEngine:
    """Build the async engine. Pool sizing only applies to server databases."""
    options: dict = {"echo": debug, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return create_async_engine(database_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine):
    """Create all tables. In production, use Alembic migrations instead."""
    from filmhub.models import tables  # noqa: F401  (registers tables on Base)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
