"""Async SQLAlchemy engine and session management.

``Database`` is the store handle: it is constructed explicitly at startup,
passed to everything that touches the store and disposed on shutdown.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy import event, text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from coinledger.config import Settings
from coinledger.db.base import Base
from coinledger.errors import TransientStoreFailure

logger = structlog.get_logger()

_TRANSIENT_ERRORS = (TimeoutError, PoolTimeoutError, OperationalError, InterfaceError)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_sqlite_locking(engine: AsyncEngine) -> None:
    """Turn on foreign keys and make every SQLite transaction take the write lock up front.

    With deferred transactions two writers that both read first deadlock on the
    lock upgrade and one fails immediately; BEGIN IMMEDIATE makes them queue
    on the busy timeout instead.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Connection pool plus session factory for one store."""

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        pool_timeout: float = 30.0,
        store_timeout: float = 10.0,
        echo: bool = False,
    ) -> None:
        self.url = url
        self.store_timeout = store_timeout

        engine_kwargs: dict[str, Any] = {
            "pool_size": pool_size,
            "max_overflow": 0,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
            "echo": echo,
        }
        if _is_sqlite(url):
            engine_kwargs["connect_args"] = {"timeout": store_timeout}
        else:
            engine_kwargs["connect_args"] = {"statement_cache_size": 0, "command_timeout": store_timeout}

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        if _is_sqlite(url):
            _enable_sqlite_locking(self.engine)

        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("database_initialized", dialect=self.engine.dialect.name, pool_size=pool_size)

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            pool_timeout=settings.db_pool_timeout_seconds,
            store_timeout=settings.store_timeout_seconds,
            echo=settings.db_echo,
        )

    async def create_schema(self) -> None:
        """Create all tables (development and tests; production runs Alembic)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("tables_created")

    async def close(self) -> None:
        """Dispose of the connection pool."""
        await self.engine.dispose()
        logger.info("database_closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Short-lived session for reads; commits on exit, rolls back on error."""
        async with self.transaction() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Provide one atomic, time-bounded unit of work.

        Everything done on the yielded session commits together or not at
        all. Timeouts and connection failures surface as TransientStoreFailure.
        """
        try:
            async with asyncio.timeout(self.store_timeout):
                async with self._session_factory() as session, session.begin():
                    yield session
        except _TRANSIENT_ERRORS as exc:
            logger.warning("store_transient_failure", error=str(exc))
            raise TransientStoreFailure() from exc

    async def ping(self) -> None:
        async with self.session() as session:
            await session.execute(text("SELECT 1"))
