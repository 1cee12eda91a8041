"""
Database configuration.

Async SQLAlchemy engine and session factory.
"""

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from compensation.config.settings import settings


def create_engine(database_url: str | None = None, **kwargs: Any) -> AsyncEngine:
    """
    Create async engine.

    Args:
        database_url: Database URL (defaults to settings.database_url)
        **kwargs: Extra create_async_engine arguments

    Returns:
        AsyncEngine
    """
    url = database_url or settings.database_url
    options: dict[str, Any] = {"echo": settings.database_echo}
    if url.startswith("postgresql") and "poolclass" not in kwargs:
        options["pool_size"] = settings.database_pool_size
        options["pool_pre_ping"] = True
    options.update(kwargs)
    return create_async_engine(url, **options)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create session factory bound to engine.

    Args:
        engine: Async engine

    Returns:
        Session factory producing AsyncSession objects
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async_engine = create_engine()
async_session_maker = create_session_maker(async_engine)
