"""
Database engine and request sessions.

One request maps to one session. Mutations that hold an aggregate lock commit
before releasing it; get_db commits whatever remains once the route returns,
under the same store timeout as every other store call, and rolls back when
the route raises.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ticketdesk.core.config import settings
from ticketdesk.db.guard import guarded

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create the async engine. Server databases get a bounded pool whose
    checkout wait matches the store timeout; SQLite keeps its default pool.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return create_async_engine(database_url, echo=settings.DEBUG)
    return create_async_engine(
        database_url,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        pool_timeout=settings.STORE_TIMEOUT_SECONDS,
    )


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding the request's session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await guarded(session.commit())
        except Exception as exc:
            logger.debug("Rolling back request session after %s", exc.__class__.__name__)
            await session.rollback()
            raise
