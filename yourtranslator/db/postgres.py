"""Async SQLAlchemy engine and session factory for PostgreSQL.

All database operations use the SQLAlchemy 2.0 async session pattern.
The profile store opens its own short-lived session per operation from
``async_session_factory`` because webhook events are processed concurrently.
"""

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from yourtranslator.core.config import settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


engine: AsyncEngine = create_async_engine(
    settings.postgres_url,
    echo=False,
    pool_size=10,
    max_overflow=10,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def close_postgres() -> None:
    """Gracefully dispose of the async engine connection pool."""
    logger.info("postgres_shutdown")
    await engine.dispose()
