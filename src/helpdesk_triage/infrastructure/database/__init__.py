"""
Database Infrastructure
=======================

Manages the database engine, session lifecycle and table creation.

Uses SQLAlchemy 2.0 with asyncpg for async PostgreSQL operations
(aiosqlite works too, which the test suite relies on).
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    SQLAlchemy 2.0 style using DeclarativeBase.
    All models inherit from this class.
    """
    pass


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from drivers that drop it."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Database:
    """
    Owns one async engine and its session factory.

    Constructed once at process start and handed to the repositories.
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ):
        # asyncpg expects ssl= rather than sslmode=
        url = url.replace("sslmode=", "ssl=")

        options = {"echo": echo, "pool_pre_ping": True}
        if not url.startswith("sqlite"):
            options.update(pool_size=pool_size, max_overflow=max_overflow)

        self._engine: AsyncEngine = create_async_engine(url, **options)
        self._session_maker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Prevent lazy loading after commit
            autoflush=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        return self._session_maker

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Async context manager for a unit of work.

        Commits on success and rolls back on any exception.

        Usage:
            async with database.session() as session:
                result = await session.execute(select(TicketModel))
        """
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """
        Create all database tables.

        This should only be used for development/testing.
        Production should use migrations.
        """
        # register every model on Base.metadata
        from helpdesk_triage.infrastructure.database import models  # noqa: F401
        from helpdesk_triage.assignment.infrastructure import models as assignment_models  # noqa: F401
        from helpdesk_triage.sla.infrastructure import models as sla_models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close the engine and dispose of pooled connections."""
        await self._engine.dispose()
