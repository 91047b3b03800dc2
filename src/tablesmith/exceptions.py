"""
Exception classes for tablesmith.
"""

from typing import Any, Dict, Optional


class TablesmithError(Exception):
    """Base exception for all tablesmith errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(TablesmithError):
    """Raised when there's an error in configuration."""

    pass


class DatabaseError(TablesmithError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when there's an error establishing or maintaining database connections."""

    pass


class DatabaseConfigurationError(DatabaseError):
    """Raised when there's an error in database configuration."""

    pass


class SchemaError(DatabaseError):
    """Raised when there's an error with database schema operations."""

    pass


class DeclarationError(SchemaError):
    """Raised when a schema declaration is malformed or misordered."""

    def __init__(
        self,
        table_name: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(f"Invalid declaration for table '{table_name}': {reason}", details)
        self.table_name = table_name
        self.reason = reason


class TableCreationError(SchemaError):
    """Raised when the initial CREATE TABLE for an entity fails.

    This is the only reconciliation failure that aborts start-up.
    """

    def __init__(
        self,
        table_name: str,
        sql: str,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            f"Failed to create table '{table_name}'",
            {"sql": sql},
            cause,
        )
        self.table_name = table_name
        self.sql = sql
