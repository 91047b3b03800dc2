"""
MySQL connection pool for tablesmith.

mysql-connector-python is a blocking driver; every call is pushed onto a
worker thread so the pool exposes the same async interface as the asyncpg
pool (execute/fetch/fetchrow/fetchval).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import mysql.connector
from mysql.connector import Error as MySQLError
from mysql.connector import pooling

from ..exceptions import DatabaseConnectionError
from .connection import ConnectionConfig


logger = logging.getLogger(__name__)

# mysql-connector refuses pools larger than this
MAX_POOL_SIZE = 32


class MySQLConnectionPool:
    """Async facade over mysql.connector.pooling.MySQLConnectionPool."""

    def __init__(self, config: ConnectionConfig, pool_name: str = "tablesmith"):
        self.config = config
        self.pool_name = pool_name
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._pool is not None:
                return

            size = max(1, min(self.config.max_size, MAX_POOL_SIZE))
            try:
                logger.info(f"Initializing MySQL pool to {self.config.display_name} (size={size})")
                self._pool = await asyncio.to_thread(
                    pooling.MySQLConnectionPool,
                    pool_name=self.pool_name,
                    pool_size=size,
                    **self.config.to_mysql_kwargs(),
                )
                logger.info("MySQL pool initialized successfully")

            except MySQLError as e:
                logger.error(f"Failed to initialize MySQL pool: {e}")
                raise DatabaseConnectionError(f"Failed to initialize MySQL pool: {e}") from e

    async def close(self) -> None:
        """Close idle pooled connections and release the pool."""
        async with self._lock:
            if self._pool is not None:
                logger.info("Closing MySQL pool")
                # Connections still checked out close when they are returned
                closed = await asyncio.to_thread(self._pool._remove_connections)
                logger.debug(f"Closed {closed} idle MySQL connection(s)")
                self._pool = None

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Any]:
        """Acquire a pooled connection (returned to the pool on exit)."""
        if self._pool is None:
            raise DatabaseConnectionError("Pool is not connected")

        connection = await asyncio.to_thread(self._pool.get_connection)
        try:
            yield connection
        finally:
            await asyncio.to_thread(connection.close)

    async def execute(self, query: str, *args) -> int:
        """Execute a statement and return the affected row count."""
        async with self.acquire() as conn:
            return await asyncio.to_thread(_execute, conn, query, args)

    async def fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        """Fetch all rows as dictionaries."""
        async with self.acquire() as conn:
            return await asyncio.to_thread(_fetch, conn, query, args)

    async def fetchrow(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """Fetch a single row."""
        rows = await self.fetch(query, *args)
        return rows[0] if rows else None

    async def fetchval(self, query: str, *args, column: int = 0) -> Any:
        """Fetch a single value from the first row."""
        row = await self.fetchrow(query, *args)
        if row is None:
            return None
        return list(row.values())[column]

    async def server_info(self) -> Dict[str, Any]:
        """Version, database and user of the current connection."""
        row = await self.fetchrow(
            "SELECT VERSION() AS version, DATABASE() AS db, CURRENT_USER() AS user"
        )
        return {"version": row["version"], "database": row["db"], "user": row["user"]}

    def get_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        if self._pool is None:
            return {"size": 0, "initialized": False}
        return {"size": self._pool.pool_size, "initialized": True}

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None


def _execute(connection: Any, query: str, params: Sequence[Any]) -> int:
    cursor = connection.cursor()
    try:
        cursor.execute(query, tuple(params) or None)
        return cursor.rowcount
    finally:
        cursor.close()


def _fetch(connection: Any, query: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
    cursor = connection.cursor(dictionary=True)
    try:
        cursor.execute(query, tuple(params) or None)
        return cursor.fetchall()
    finally:
        cursor.close()


def _create_database(config: ConnectionConfig) -> None:
    connection = mysql.connector.connect(**config.to_mysql_kwargs(include_database=False))
    try:
        cursor = connection.cursor()
        try:
            name = "`" + config.database.replace("`", "``") + "`"
            cursor.execute(
                f"CREATE DATABASE IF NOT EXISTS {name} "
                f"CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
            )
        finally:
            cursor.close()
    finally:
        connection.close()


async def ensure_mysql_database(config: ConnectionConfig) -> None:
    """CREATE DATABASE IF NOT EXISTS for the configured database."""
    try:
        await asyncio.to_thread(_create_database, config)
        logger.info(f"Database {config.database} is ready")
    except MySQLError as e:
        logger.error(f"Failed to create database {config.database}: {e}")
        raise DatabaseConnectionError(f"Failed to create database {config.database}: {e}") from e
