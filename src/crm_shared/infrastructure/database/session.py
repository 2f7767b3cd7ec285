from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from crm_shared.config import Settings, get_settings
from crm_shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


def create_engine(settings: Optional[Settings] = None, *, echo: bool = False) -> AsyncEngine:
    """Create the AsyncEngine for the source-of-truth database."""
    settings = settings or get_settings()
    kwargs: dict = {"echo": echo, "pool_pre_ping": True}
    # SQLite (dev/tests) uses a static pool; sizing only applies to real servers
    if not settings.database_url.startswith("sqlite"):
        kwargs.update(pool_size=10, max_overflow=10, pool_recycle=1800)
    logger.info("Creating database engine", environment=settings.environment)
    return create_async_engine(settings.database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
