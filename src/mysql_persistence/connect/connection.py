"""
mysql_persistence.connect.connection

Shareable MySQL connection (async SQLAlchemy engine + pool).

Responsibilities:
- Resolve the driver URL from settings and create the async engine.
- Verify connectivity on open, retrying with quadratic backoff.
- Dispose the pool on close.
"""

from __future__ import annotations

import asyncio

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from mysql_persistence.connect.resolver import MysqlConnectionResolver
from mysql_persistence.errors import MysqlConnectionError
from mysql_persistence.observability.logging import get_logger, log_context
from mysql_persistence.settings import ConnectionOptions, MysqlSettings

log = get_logger(__name__)


class MysqlConnection:
    """
    By defining a connection and sharing it through multiple persistence components
    you reduce the number of database connections in use.
    """

    def __init__(self) -> None:
        self.resolver = MysqlConnectionResolver()
        self.options = ConnectionOptions()
        self._engine: AsyncEngine | None = None
        self._configured_database: str | None = None
        self._database_name: str | None = None

    def configure(self, settings: MysqlSettings) -> None:
        self.resolver.configure(settings)
        self.options = settings.options
        self._configured_database = settings.connection.database

    def is_open(self) -> bool:
        return self._engine is not None

    def get_engine(self) -> AsyncEngine | None:
        return self._engine

    def get_database_name(self) -> str | None:
        return self._database_name

    def _create_engine(self, url: URL) -> AsyncEngine:
        opts = self.options
        return create_async_engine(
            url,
            pool_size=opts.max_pool_size,
            max_overflow=0,
            pool_recycle=max(opts.idle_timeout // 1000, 1),
            pool_timeout=max(opts.connect_timeout / 1000, 0.001),
            pool_pre_ping=True,
            connect_args={"connect_timeout": max(opts.connect_timeout // 1000, 1)},
        )

    async def _ping(self, engine: AsyncEngine) -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def open(self, *, correlation_id: str | None = None) -> None:
        if self._engine is not None:
            return

        url = self.resolver.resolve(correlation_id=correlation_id)
        log.debug("mysql_connecting", host=url.host, **log_context(correlation_id))

        attempts = max(self.options.retries, 1)
        for attempt in range(1, attempts + 1):
            engine = self._create_engine(url)
            try:
                await self._ping(engine)
            except (SQLAlchemyError, OSError) as exc:
                await engine.dispose()
                if attempt >= attempts:
                    raise MysqlConnectionError(
                        "CONNECT_FAILED",
                        "Connection to mysql failed",
                        correlation_id=correlation_id,
                    ) from exc
                log.debug(
                    "mysql_connect_retry",
                    attempt=attempt,
                    error=str(exc),
                    **log_context(correlation_id),
                )
                await self._wait_for_retry(attempt)
                continue

            self._engine = engine
            self._database_name = url.database or self._configured_database
            log.debug(
                "mysql_connected", database=self._database_name, **log_context(correlation_id)
            )
            return

    async def _wait_for_retry(self, attempt: int) -> None:
        # Cancellation of the caller's task interrupts the wait.
        await asyncio.sleep(self.options.connect_timeout * attempt**2 / 1000)

    async def close(self, *, correlation_id: str | None = None) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        log.debug("mysql_disconnected", database=self._database_name, **log_context(correlation_id))
        self._engine = None
        self._database_name = None


# --- Module Notes -----------------------------------------------------------
# Persistences that receive this connection via `set_references` never close it;
# the owner of the connection is responsible for `close`.
