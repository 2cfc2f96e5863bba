"""Database connection pool manager."""

from __future__ import annotations

import asyncio
from typing import Any

import asyncpg
from structlog import get_logger

logger = get_logger()


class Database:
    """
    Owned handle around an asyncpg connection pool.

    Constructed explicitly at startup and passed to the stores that need it.
    The pool is created by connect() and closed by disconnect(); every query
    helper runs a single statement on a pooled connection (one implicit
    transaction per statement).
    """

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 0,
        max_size: int = 20,
        timeout: float = 10.0,
        idle_timeout: float = 30.0,
        ssl: str | None = None,
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.idle_timeout = idle_timeout
        self.ssl = ssl
        self.pool: asyncpg.Pool | None = None

    async def connect(self, max_retries: int = 3) -> None:
        """
        Create the connection pool.

        Retries pool creation with exponential backoff (2s, 4s, ...).

        Raises:
            Exception: The last error once max_retries attempts have failed
        """
        for attempt in range(1, max_retries + 1):
            try:
                self.pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    timeout=self.timeout,
                    max_inactive_connection_lifetime=self.idle_timeout,
                    ssl=self.ssl,
                )
                logger.info(
                    "database_pool_created",
                    max_size=self.max_size,
                    attempt=attempt,
                )
                return
            except Exception as e:
                logger.warning(
                    "database_pool_create_failed",
                    attempt=attempt,
                    max_retries=max_retries,
                    error=str(e),
                )
                if attempt == max_retries:
                    raise
                await asyncio.sleep(2**attempt)

    async def disconnect(self) -> None:
        """Close the pool if it was created."""
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None
        logger.info("database_pool_closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise RuntimeError("Database pool not initialized")
        return self.pool

    async def ping(self) -> None:
        """Acquire a connection and run a trivial query."""
        async with self._require_pool().acquire() as conn:
            await conn.fetchval("SELECT 1")

    async def execute(self, query: str, *args: Any) -> str:
        async with self._require_pool().acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self._require_pool().acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self._require_pool().acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self._require_pool().acquire() as conn:
            return await conn.fetchval(query, *args)


def rows_affected(status: str | None) -> int:
    """Parse the row count from an asyncpg command status like 'DELETE 1'."""
    return int(status.split()[-1]) if status else 0
