"""
tablesmith: declarative schema reconciliation.

Each entity declares the table shape it wants; at start-up tablesmith
introspects the live database, diffs it against every declaration and issues
the DDL that converges the schema. Tables and columns are never dropped.
"""

__version__ = "0.1.0"

from .config import TablesmithConfig
from .exceptions import (
    ConfigurationError,
    DatabaseError,
    SchemaError,
    TableCreationError,
    TablesmithError,
)

__all__ = [
    "__version__",
    "TablesmithConfig",
    "TablesmithError",
    "ConfigurationError",
    "DatabaseError",
    "SchemaError",
    "TableCreationError",
]
