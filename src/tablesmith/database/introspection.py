"""
Live schema introspection for tablesmith.

Reads the shape of a table (columns and index/constraint rows) from the
database catalog. The queries come from the dialect; this module only turns
rows into plain structures.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..exceptions import SchemaError

if TYPE_CHECKING:
    from ..schema.dialects import Dialect


logger = logging.getLogger(__name__)


@dataclass
class LiveColumn:
    """A column as reported by the catalog."""

    name: str
    type: str
    nullable: str  # "YES" / "NO"
    default: Optional[str] = None
    key: str = ""
    extra: str = ""

    @property
    def is_nullable(self) -> bool:
        return self.nullable == "YES"


@dataclass
class LiveIndexRow:
    """One (index, column) row. Multi-column indexes produce several rows."""

    index_name: str
    column_name: str
    non_unique: bool = True
    seq_in_index: int = 1
    kind: str = "INDEX"

    @property
    def is_primary(self) -> bool:
        return self.kind == "PRIMARY"


@dataclass
class LiveStructure:
    """Columns and index rows of one live table."""

    table_name: str
    columns: List[LiveColumn] = field(default_factory=list)
    indexes: List[LiveIndexRow] = field(default_factory=list)

    @property
    def exists(self) -> bool:
        """A table with no columns is treated as absent."""
        return bool(self.columns)

    def column_map(self) -> Dict[str, LiveColumn]:
        return {column.name: column for column in self.columns}

    def index_groups(self) -> Dict[str, List[str]]:
        """Column lists grouped by index name, in index order."""
        groups: Dict[str, List[str]] = {}
        for row in sorted(self.indexes, key=lambda r: (r.index_name, r.seq_in_index)):
            columns = groups.setdefault(row.index_name, [])
            # An FK backed by a same-named index shows up twice
            if row.column_name not in columns:
                columns.append(row.column_name)
        return groups


class SchemaIntrospector:
    """Catalog-only introspection of live tables."""

    def __init__(self, pool: Any, dialect: "Dialect"):
        self.pool = pool
        self.dialect = dialect

    async def introspect(self, table_name: str) -> LiveStructure:
        """Read the live structure of a table.

        A table that does not exist yields an empty structure; that is the
        signal to create it rather than reconcile it.

        Raises:
            SchemaError: If the catalog cannot be read.
        """
        try:
            query, params = self.dialect.columns_query(table_name)
            column_rows = await self.pool.fetch(query, *params)
            if not column_rows:
                return LiveStructure(table_name=table_name)

            query, params = self.dialect.indexes_query(table_name)
            index_rows = await self.pool.fetch(query, *params)

        except Exception as e:
            if self.dialect.is_missing_table_error(e):
                return LiveStructure(table_name=table_name)
            logger.error(f"Error introspecting table {table_name}: {e}")
            raise SchemaError(
                f"Failed to introspect table '{table_name}'",
                {"table": table_name},
                e,
            ) from e

        return LiveStructure(
            table_name=table_name,
            columns=[self._column_from_row(row) for row in column_rows],
            indexes=[self._index_from_row(table_name, row) for row in index_rows],
        )

    async def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query, params = self.dialect.table_exists_query(table_name)
        try:
            result = await self.pool.fetchval(query, *params)
            return bool(result)
        except Exception as e:
            logger.error(f"Error checking table existence for {table_name}: {e}")
            raise SchemaError(f"Failed to check table existence: {e}", cause=e) from e

    async def list_tables(self) -> List[str]:
        """List base tables in the current database/schema."""
        query, params = self.dialect.list_tables_query()
        try:
            rows = await self.pool.fetch(query, *params)
            return [row["table_name"] for row in rows]
        except Exception as e:
            logger.error(f"Error listing tables: {e}")
            raise SchemaError(f"Failed to list tables: {e}", cause=e) from e

    @staticmethod
    def _column_from_row(row: Any) -> LiveColumn:
        default = row["column_default"]
        return LiveColumn(
            name=row["column_name"],
            type=_text(row["column_type"]),
            nullable=_text(row["is_nullable"]).upper(),
            default=None if default is None else _text(default),
            key=_text(row["column_key"] or ""),
            extra=_text(row["extra"] or ""),
        )

    def _index_from_row(self, table_name: str, row: Any) -> LiveIndexRow:
        kind = _text(row["index_kind"])
        name = _text(row["index_name"])
        if kind in ("INDEX", "UNIQUE"):
            name = self.dialect.declared_index_name(table_name, name)
        return LiveIndexRow(
            index_name=name,
            column_name=row["column_name"],
            non_unique=bool(int(row["non_unique"])),
            seq_in_index=int(row["seq_in_index"] or 0),
            kind=kind,
        )


def _text(value: Any) -> str:
    # mysql-connector may hand back bytearray for some catalog columns
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return str(value)
