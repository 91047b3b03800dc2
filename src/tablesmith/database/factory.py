"""
Pool factory: picks the driver that matches the configured engine.
"""

import logging
from typing import Any, Union

from .connection import ConnectionConfig, ConnectionPool, ensure_postgres_database
from .mysql import MySQLConnectionPool, ensure_mysql_database


logger = logging.getLogger(__name__)

Pool = Union[ConnectionPool, MySQLConnectionPool]

_POOLS = {
    "postgresql": ConnectionPool,
    "mysql": MySQLConnectionPool,
}


def create_pool(config: ConnectionConfig) -> Pool:
    """
    Create an (uninitialized) connection pool for the configured engine.

    Args:
        config: Connection configuration

    Returns:
        ConnectionPool for PostgreSQL, MySQLConnectionPool for MySQL
    """
    pool_class: Any = _POOLS[config.dialect]
    return pool_class(config)


async def ensure_database(config: ConnectionConfig) -> None:
    """Create the configured database when it does not exist yet."""
    logger.info(f"Ensuring database {config.database} exists")
    if config.dialect == "mysql":
        await ensure_mysql_database(config)
    else:
        await ensure_postgres_database(config)
