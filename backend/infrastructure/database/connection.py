"""Database connection and session management."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import Settings
from .models.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine and session factory for one process.

    Created once at startup, handed to the store and services by
    reference, and closed at shutdown.
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Unit of work: commit on success, rollback on error."""
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def init_models(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_models(self) -> None:
        """Drop all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        """Close database connections."""
        await self.engine.dispose()


def create_database(settings: Settings, url: Optional[str] = None) -> Database:
    """Build the Database for the configured backend."""
    url = url or settings.database_url
    engine_kwargs: dict = {"pool_pre_ping": True}

    if url.startswith("sqlite"):
        # Concurrent SERP pipelines wait on the SQLite write lock instead of failing
        engine_kwargs["connect_args"] = {"timeout": 30}
    else:
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=10,
            pool_recycle=3600,
        )
        # Enforce SSL for database connections in production
        if settings.environment == "production":
            engine_kwargs["connect_args"] = {"ssl": "require"}

    logger.info("Creating database engine (%s)", url.split("://", 1)[0])
    return Database(url, echo=settings.database_echo, **engine_kwargs)


def get_database(request: Request) -> Database:
    """Dependency returning the process-wide Database."""
    return request.app.state.database


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database sessions."""
    async with get_database(request).session() as session:
        yield session
