"""
Database configuration.
Implements connection pooling and async session lifecycle management.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import PendingRollbackError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from .config import settings

# Create async engine with pool settings
engine = create_async_engine(
    str(settings.database.url),
    echo=bool(settings.database.echo),
    future=True,
    pool_pre_ping=True,
    pool_size=settings.database.pool_size,
    max_overflow=settings.database.max_overflow,
    pool_timeout=settings.database.pool_timeout,
    pool_recycle=settings.database.pool_recycle,
    poolclass=AsyncAdaptedQueuePool,
    connect_args={
        "server_settings": {
            "application_name": settings.api.app_name,
        },
        "command_timeout": 60,
        "timeout": 30,
    },
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Prevent additional queries after commit
    autoflush=False,
    autocommit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.
    Implements proper session lifecycle management.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            # Only commit if session is in a valid state
            if session.in_transaction():
                try:
                    await session.commit()
                except PendingRollbackError:
                    await session.rollback()
                    raise
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a new isolated session outside request scope.

    Used by long-lived WebSocket handlers, where each poll must run in its
    own short transaction instead of holding one session open.

    Example:
        async with session_scope() as db:
            await NotificationRepository.find_unread(db, officer_id)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_database_connections():
    """Dispose of the engine connection pool (call during shutdown)."""
    await engine.dispose()
