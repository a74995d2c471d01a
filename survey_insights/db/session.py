"""
Database session management.

WHY: Async database sessions are required for FastAPI's async/await pattern.
Using a context manager ensures proper connection cleanup and transaction management.
"""

from typing import Any, AsyncGenerator, Dict
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from survey_insights.core.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    """
    Pool settings for the configured database.

    WHY: SQLite (local runs, tests) does not take pool sizing arguments.
    """
    options: Dict[str, Any] = {"echo": settings.DEBUG, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return options


engine = create_async_engine(
    settings.async_database_url,
    **_engine_options(settings.async_database_url),
)

# expire_on_commit=False prevents lazy-loading issues after commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    WHY: FastAPI dependency injection ensures each request gets its own
    database session, with automatic cleanup via context manager.
    Analytics and export requests only read, so the commit is a no-op
    in practice.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
