"""Async database engine and session factory.

Provides a single engine per process with lazy initialization.
Repositories receive the session factory rather than reaching for globals.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from exemptlot.config import settings
from exemptlot.storage.models import Base

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        kwargs: dict = {"echo": False}
        if settings.database_url.startswith("postgresql+asyncpg://"):
            connect_args: dict = {"timeout": 10}  # 10s connection timeout for asyncpg
            if settings.database_require_ssl:
                import ssl

                connect_args["ssl"] = ssl.create_default_context()
            kwargs["connect_args"] = connect_args
            kwargs["pool_pre_ping"] = True
            kwargs["pool_recycle"] = 300
        _engine = create_async_engine(settings.database_url, **kwargs)
    return _engine


async def init_db() -> None:
    """Create all tables if they don't exist."""
    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-wide session factory bound to the configured engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(_get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncSession:
    """Get an async database session."""
    return get_session_factory()()


async def dispose_db() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
