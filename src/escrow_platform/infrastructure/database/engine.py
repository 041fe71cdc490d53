"""Async database engine and session management.

Provides:
    - Database: owns the SQLAlchemy async engine and session factory for one
      process. Opened in FastAPI's lifespan, stored on ``app.state`` and
      disposed at shutdown. Tests and scripts build their own instance.
    - Database.session(): context manager yielding a session that commits on
      success and rolls back on any error, so a failed service call leaves no
      partial mutation behind.

Usage:
    database = Database.from_settings(get_settings())
    await database.open(create_tables=True)
    async with database.session() as session:
        deal = await DealService(session).get_deal(1)
    await database.close()
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from escrow_platform.infrastructure.database.orm_models import Base
from escrow_platform.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from escrow_platform.config import Settings

logger = get_logger(__name__)


class Database:
    """Engine and session factory with an explicit open/close lifecycle."""

    def __init__(self, url: str, *, echo: bool = False, **engine_options: Any) -> None:
        self._url = url
        self._echo = echo
        self._engine_options = engine_options
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        if settings.is_sqlite:
            return cls(settings.database_url, echo=settings.db_echo_sql)
        return cls(
            settings.database_url,
            echo=settings.db_echo_sql,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=True,
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not opened. Call open() first.")
        return self._engine

    async def open(self, create_tables: bool = False) -> None:
        """Create the engine and, if asked, the schema.

        In production, manage the schema with migrations instead of create_all.
        """
        if self._engine is not None:
            return

        options = dict(self._engine_options)
        if ":memory:" in self._url:
            # One shared connection, otherwise every checkout sees an empty database.
            options.setdefault("poolclass", StaticPool)
        self._engine = create_async_engine(self._url, echo=self._echo, **options)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("database.engine_created", dialect=self._engine.dialect.name)

        if create_tables:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("database.tables_created")

    async def close(self) -> None:
        """Dispose of the engine. Safe to call more than once."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("database.engine_disposed")
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session committed on success or rolled back on error."""
        if self._session_factory is None:
            raise RuntimeError("Database not opened. Call open() first.")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
