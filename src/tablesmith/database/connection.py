"""
Database connection management for tablesmith.

Provides connection configuration for both supported engines and the async
PostgreSQL connection pool (asyncpg).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Literal, Optional
from urllib.parse import parse_qs, unquote, urlparse

import asyncpg
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from ..exceptions import DatabaseConfigurationError, DatabaseConnectionError


logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"postgresql": 5432, "mysql": 3306}

_SCHEMES = {
    "postgresql": "postgresql",
    "postgres": "postgresql",
    "mysql": "mysql",
    "mariadb": "mysql",
}


class ConnectionConfig(BaseModel):
    """Database connection configuration."""

    dialect: Literal["postgresql", "mysql"] = Field("postgresql", description="Database engine")
    host: str = Field("localhost", description="Database host")
    port: Optional[int] = Field(
        None, validate_default=True, description="Database port (engine default if unset)"
    )
    database: str = Field(..., description="Database name")
    user: str = Field(..., description="Database user")
    password: str = Field("", description="Database password")
    schema_name: str = Field("public", description="PostgreSQL schema holding the tables")
    charset: str = Field("utf8mb4", description="MySQL connection character set")

    # Connection pool settings
    min_size: int = Field(1, description="Minimum connections in pool")
    max_size: int = Field(5, description="Maximum connections in pool")

    # Connection settings
    connect_timeout: int = Field(30, description="Connection timeout in seconds")
    command_timeout: float = Field(60.0, description="Command timeout in seconds")
    server_settings: Dict[str, str] = Field(
        default_factory=lambda: {"application_name": "tablesmith"},
        description="PostgreSQL server settings",
    )
    ssl_mode: Optional[str] = Field(None, description="SSL mode")

    @field_validator("database")
    @classmethod
    def validate_database(cls, v):
        if not v or not v.strip():
            raise ValueError("Database name is required")
        return v

    @field_validator("port")
    @classmethod
    def default_port(cls, v, info: ValidationInfo):
        if v is None:
            return DEFAULT_PORTS[info.data.get("dialect", "postgresql")]
        return v

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> "ConnectionConfig":
        """Create configuration from a database URL.

        Accepts ``postgresql://`` / ``postgres://`` and ``mysql://`` URLs.
        """
        parsed = urlparse(url)
        scheme = parsed.scheme.split("+", 1)[0]

        if scheme not in _SCHEMES:
            raise DatabaseConfigurationError(f"Invalid database URL scheme: {parsed.scheme}")

        if not parsed.path or parsed.path == "/":
            raise DatabaseConfigurationError("Database name is required")

        query_params = parse_qs(parsed.query) if parsed.query else {}

        config_data: Dict[str, Any] = {
            "dialect": _SCHEMES[scheme],
            "host": parsed.hostname or "localhost",
            "port": parsed.port,
            "database": parsed.path.lstrip("/"),
            "user": unquote(parsed.username or ""),
            "password": unquote(parsed.password or ""),
        }

        if "sslmode" in query_params:
            config_data["ssl_mode"] = query_params["sslmode"][0]
        if "schema" in query_params:
            config_data["schema_name"] = query_params["schema"][0]

        config_data.update(overrides)
        return cls(**config_data)

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """Convert to asyncpg connection kwargs."""
        kwargs = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
            "timeout": self.connect_timeout,
            "command_timeout": self.command_timeout,
            "server_settings": self.server_settings,
        }
        if self.ssl_mode:
            kwargs["ssl"] = self.ssl_mode
        return kwargs

    def to_mysql_kwargs(self, include_database: bool = True) -> Dict[str, Any]:
        """Convert to mysql-connector connection kwargs."""
        kwargs = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "charset": self.charset,
            "connection_timeout": self.connect_timeout,
            "autocommit": True,
        }
        if include_database:
            kwargs["database"] = self.database
        return kwargs

    @property
    def display_name(self) -> str:
        """host:port/database, safe to log."""
        return f"{self.host}:{self.port}/{self.database}"


class ConnectionPool:
    """Async PostgreSQL connection pool wrapper."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._pool is not None:
                return

            try:
                logger.info(
                    f"Initializing connection pool to {self.config.display_name} "
                    f"(min={self.config.min_size}, max={self.config.max_size})"
                )

                self._pool = await asyncpg.create_pool(
                    **self.config.to_connection_kwargs(),
                    min_size=self.config.min_size,
                    max_size=self.config.max_size,
                )

                logger.info("Connection pool initialized successfully")

            except Exception as e:
                logger.error(f"Failed to initialize connection pool: {e}")
                raise DatabaseConnectionError(f"Failed to initialize connection pool: {e}") from e

    async def close(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._pool is not None:
                logger.info("Closing connection pool")
                await self._pool.close()
                self._pool = None

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection from the pool."""
        if self._pool is None:
            raise DatabaseConnectionError("Pool is not connected")

        async with self._pool.acquire() as connection:
            yield connection

    async def execute(self, query: str, *args) -> str:
        """Execute a query and return status."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> List[asyncpg.Record]:
        """Fetch all results from a query."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        """Fetch a single row from a query."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args, column: int = 0) -> Any:
        """Fetch a single value from a query."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, column=column)

    async def server_info(self) -> Dict[str, Any]:
        """Version, database and user of the current connection."""
        row = await self.fetchrow("SELECT version(), current_database(), current_user")
        return {
            "version": row["version"],
            "database": row["current_database"],
            "user": row["current_user"],
        }

    def get_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        if self._pool is None:
            return {"size": 0, "free": 0, "acquired": 0, "initialized": False}

        return {
            "size": self._pool.get_size(),
            "free": self._pool.get_idle_size(),
            "acquired": self._pool.get_size() - self._pool.get_idle_size(),
            "initialized": True,
        }

    @property
    def is_initialized(self) -> bool:
        """Check if pool is initialized."""
        return self._pool is not None


async def ensure_postgres_database(config: ConnectionConfig) -> bool:
    """Create the configured PostgreSQL database if it does not exist.

    Connects to the ``postgres`` maintenance database to do so.

    Returns:
        True if the database was created.
    """
    kwargs = config.to_connection_kwargs()
    kwargs["database"] = "postgres"
    kwargs.pop("command_timeout", None)

    try:
        conn = await asyncpg.connect(**kwargs)
    except Exception as e:
        raise DatabaseConnectionError(f"Failed to connect to {config.host}:{config.port}: {e}") from e

    try:
        exists = await conn.fetchval(
            "SELECT 1 FROM pg_database WHERE datname = $1", config.database
        )
        if exists:
            return False

        name = '"' + config.database.replace('"', '""') + '"'
        await conn.execute(f"CREATE DATABASE {name}")
        logger.info(f"Created database {config.database}")
        return True
    finally:
        await conn.close()
