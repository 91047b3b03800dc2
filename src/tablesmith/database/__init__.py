"""
Database integration package for tablesmith.

This package provides:
- Async PostgreSQL (asyncpg) and MySQL (mysql-connector) connection pools
- Catalog-only introspection of live tables
"""

from .connection import ConnectionConfig, ConnectionPool
from .factory import create_pool, ensure_database
from .introspection import LiveColumn, LiveIndexRow, LiveStructure, SchemaIntrospector
from .mysql import MySQLConnectionPool

__all__ = [
    "ConnectionConfig",
    "ConnectionPool",
    "MySQLConnectionPool",
    "create_pool",
    "ensure_database",
    "SchemaIntrospector",
    "LiveColumn",
    "LiveIndexRow",
    "LiveStructure",
]
