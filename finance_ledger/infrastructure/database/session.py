"""Async database engine and unit-of-work management"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from finance_ledger.config import settings
from finance_ledger.domain.exceptions import PersistenceUnavailableError


def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create an async engine; SQLite URLs skip the pool sizing options"""
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.db_echo)

    # Connection pool: recycle after an hour to avoid stale connections
    return create_async_engine(
        url,
        echo=settings.db_echo,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@lru_cache
def get_engine() -> AsyncEngine:
    return build_engine()


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency injection for the shared session factory"""
    return build_session_factory(get_engine())


@asynccontextmanager
async def unit_of_work(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """
    Run a block in a single database transaction.

    Commits on success and rolls back on any exception. Driver and SQL errors
    surface as PersistenceUnavailableError; ledger errors pass through.
    """
    try:
        async with session_factory() as session:
            async with session.begin():
                yield session
    except SQLAlchemyError as e:
        raise PersistenceUnavailableError(f"Database operation failed: {e}") from e
