"""Async SQLAlchemy engine and session management.

A single ``Database`` is constructed at process start (in the FastAPI
lifespan), shared by reference with everything that touches storage, and
disposed at shutdown:
- Connection pooling (configurable pool_size/max_overflow)
- Transaction-per-operation via ``Database.session()``
- PostgreSQL via asyncpg in production, SQLite via aiosqlite in tests
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

log = structlog.get_logger(__name__)


class Database:
    """Owns the engine and session factory for one process.

    Usage::

        database = Database(settings.database_url)
        async with database.session() as session:
            session.add(task)
        await database.dispose()
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 20,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self.url = url
        self.engine: AsyncEngine = _create_engine(url, pool_size, max_overflow, echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that commits on success and rolls back on error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create tables from the registered models (dev/test only)."""
        from core.models.base import Base
        import taskboard.models.db_models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close the connection pool on shutdown."""
        await self.engine.dispose()
        log.info("database_disposed")


def _create_engine(url: str, pool_size: int, max_overflow: int, echo: bool) -> AsyncEngine:
    if not url.startswith("sqlite"):
        return create_async_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            echo=echo,
            pool_pre_ping=True,
        )

    engine = create_async_engine(url, echo=echo, connect_args={"timeout": 30})

    # SQLite has no row locks: take the write lock at BEGIN so that two
    # transactions touching the same task run one after the other.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine
