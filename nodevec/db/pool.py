"""PostgreSQL connection pool management.

Provides the connection handle shared by every PgVector instance built from
the same configuration.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum

import asyncpg

from nodevec.db.errors import ConnectionError
from nodevec.observability.logging import get_logger

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    """Last known state of the pool, for diagnostics only."""

    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    FAILED = "failed"


class PostgresPool:
    """Manages an asyncpg connection pool with health checks.

    Usage:
        pool = PostgresPool(dsn="postgresql://...")
        await pool.connect()
        try:
            async with pool.acquire() as conn:
                result = await conn.fetch("SELECT * FROM ...")
        finally:
            await pool.close()
    """

    def __init__(
        self,
        dsn: str | None = None,
        min_size: int = 1,
        max_size: int = 10,
        max_inactive_connection_lifetime: float = 300.0,
        command_timeout: float = 60.0,
    ) -> None:
        """Initialize pool configuration.

        Args:
            dsn: Database connection string. Falls back to environment variables.
            min_size: Minimum number of connections to keep open.
            max_size: Maximum number of connections in the pool.
            max_inactive_connection_lifetime: Close connections idle longer than this (seconds).
            command_timeout: Default timeout for queries (seconds).
        """
        self._dsn = dsn or self._get_dsn_from_env()
        self._min_size = min(min_size, max_size)
        self._max_size = max_size
        self._max_inactive_connection_lifetime = max_inactive_connection_lifetime
        self._command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None
        self._state = ConnectionState.UNINITIALIZED

    @staticmethod
    def _get_dsn_from_env() -> str:
        """Get database DSN from environment variables."""
        dsn = os.environ.get("NODEVEC_DATABASE_URL")
        if dsn:
            return dsn

        dsn = os.environ.get("DATABASE_URL")
        if dsn:
            return dsn

        # Build from individual components
        host = os.environ.get("POSTGRES_HOST", "localhost")
        port = os.environ.get("POSTGRES_PORT", "5432")
        user = os.environ.get("POSTGRES_USER", "postgres")
        password = os.environ.get("POSTGRES_PASSWORD", "postgres")
        database = os.environ.get("POSTGRES_DB", "postgres")

        return f"postgresql://{user}:{password}@{host}:{port}/{database}"

    async def connect(self) -> None:
        """Initialize the connection pool."""
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                max_inactive_connection_lifetime=self._max_inactive_connection_lifetime,
                command_timeout=self._command_timeout,
            )
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            self._state = ConnectionState.FAILED
            logger.error("postgres_pool_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to PostgreSQL: {e}", cause=e) from e

        self._state = ConnectionState.CONNECTED
        logger.info(
            "postgres_pool_connected",
            min_size=self._min_size,
            max_size=self._max_size,
        )

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._state = ConnectionState.UNINITIALIZED
            logger.info("postgres_pool_closed")

    def get_handle(self) -> asyncpg.Pool:
        """Return the live asyncpg pool.

        Raises:
            ConnectionError: If connect() has not completed successfully.
        """
        if self._pool is None:
            raise ConnectionError("pool not initialized")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                await conn.fetch("SELECT ...")

        The connection goes back to the pool when the block exits, including
        when the enclosing task is cancelled.
        """
        handle = self.get_handle()
        try:
            connection = await handle.acquire()
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error("postgres_acquire_failed", error=str(e))
            raise ConnectionError(f"Failed to acquire a PostgreSQL connection: {e}", cause=e) from e

        try:
            yield connection
        finally:
            await handle.release(connection)

    async def health_check(self) -> bool:
        """Check if the pool is healthy.

        Returns:
            True if pool is connected and responsive.
        """
        if self._pool is None:
            return False

        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.warning("postgres_health_check_failed", error=str(e))
            return False

    @property
    def connection_status(self) -> ConnectionState:
        """Last known connection state. Performs no I/O."""
        return self._state

