"""
Pytest configuration and shared fixtures for tablesmith tests.
"""

import os
import re
import tempfile
from typing import Any, Dict, List, Optional, Sequence, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from tablesmith.database.introspection import LiveColumn, LiveIndexRow, LiveStructure
from tablesmith.schema.declaration import ColumnSpec, IndexSpec, SchemaDeclaration
from tablesmith.schema.dialects import Dialect, MySQLDialect, PostgresDialect, format_default
from tablesmith.schema.normalizer import normalize_type


# ============================================================================
# Driver error doubles
# ============================================================================

class FakeMySQLError(Exception):
    """Exception carrying a MySQL errno, like mysql.connector.Error."""

    def __init__(self, errno: int, msg: str = "mysql error"):
        super().__init__(f"{errno}: {msg}")
        self.errno = errno


class FakePostgresError(Exception):
    """Exception carrying a SQLSTATE, like asyncpg.PostgresError."""

    def __init__(self, sqlstate: str, msg: str = "postgres error"):
        super().__init__(msg)
        self.sqlstate = sqlstate


# ============================================================================
# Dialect and pool fixtures
# ============================================================================

@pytest.fixture
def mysql_dialect() -> MySQLDialect:
    return MySQLDialect()


@pytest.fixture
def postgres_dialect() -> PostgresDialect:
    return PostgresDialect()


@pytest.fixture
def mock_pool():
    """Pool double exposing the execute/fetch interface."""
    pool = MagicMock()
    pool.execute = AsyncMock()
    pool.fetch = AsyncMock(return_value=[])
    pool.fetchrow = AsyncMock()
    pool.fetchval = AsyncMock()
    pool.initialize = AsyncMock()
    pool.close = AsyncMock()
    return pool


# ============================================================================
# The widget table
# ============================================================================

@pytest.fixture
def widget_declaration() -> SchemaDeclaration:
    """id PK, name VARCHAR(50) NOT NULL, qty INT DEFAULT 0, idx_name(name)."""
    return SchemaDeclaration(
        table_name="widget",
        columns=[
            ColumnSpec("id", "INT AUTO_INCREMENT PRIMARY KEY", nullable=False),
            ColumnSpec("name", "VARCHAR(50)", nullable=False),
            ColumnSpec("qty", "INT", default=0),
        ],
        indexes=[IndexSpec("idx_name", ["name"])],
    )


@pytest.fixture
def widget_live() -> LiveStructure:
    """Live widget table: only id and name, no secondary index."""
    return LiveStructure(
        table_name="widget",
        columns=[
            LiveColumn("id", "int(11)", "NO", None, "PRI", "auto_increment"),
            LiveColumn("name", "varchar(50)", "NO", None),
        ],
        indexes=[LiveIndexRow("PRIMARY", "id", False, 1, "PRIMARY")],
    )


# ============================================================================
# Live structures as MySQL reports them
# ============================================================================

_MYSQL_REPORTED_TYPES = {
    "boolean": "tinyint(1)",
    "int": "int(11)",
    "bigint": "bigint(20)",
}


def _mysql_default(column: ColumnSpec):
    if not column.has_default or column.default is None:
        return None
    if isinstance(column.default, bool):
        return "1" if column.default else "0"
    if "decimal" in column.type.lower():
        return f"{column.default:.2f}"
    return str(column.default)


def mysql_live_structure(declaration: SchemaDeclaration) -> LiveStructure:
    """What information_schema reports for a table created from ``declaration``."""
    columns: List[LiveColumn] = []
    indexes: List[LiveIndexRow] = []

    for column in declaration.columns:
        reported = normalize_type(column.type)
        reported = _MYSQL_REPORTED_TYPES.get(reported, reported)
        primary = column.is_primary_key
        columns.append(
            LiveColumn(
                name=column.name,
                type=reported,
                nullable="NO" if primary or not column.nullable else "YES",
                default=_mysql_default(column),
                key="PRI" if primary else "",
                extra="auto_increment" if "AUTO_INCREMENT" in column.type.upper() else "",
            )
        )
        if primary:
            indexes.append(LiveIndexRow("PRIMARY", column.name, False, 1, "PRIMARY"))

    for index in declaration.indexes:
        kind = "FOREIGN KEY" if index.is_foreign_key else ("UNIQUE" if index.is_unique else "INDEX")
        for seq, name in enumerate(index.columns, start=1):
            indexes.append(LiveIndexRow(index.name, name, not index.is_unique, seq, kind))

    return LiveStructure(declaration.table_name, columns, indexes)


@pytest.fixture
def mysql_live():
    """Factory fixture: declaration -> converged MySQL live structure."""
    return mysql_live_structure


# ============================================================================
# Stateful database double
# ============================================================================

class FakeDatabase:
    """In-memory database that applies generated DDL and answers catalog queries.

    Added and modified columns take their definition from the declaration
    named in the statement. Index names are scoped to their table on MySQL
    and to the whole schema on PostgreSQL, as the real servers do.
    """

    def __init__(self, dialect: Dialect, declarations: Sequence[SchemaDeclaration]):
        self.dialect = dialect
        self.declarations = {d.table_name: d for d in declarations}
        self.columns: Dict[str, Dict[str, ColumnSpec]] = {}
        # (scope, stored name) -> (table, columns, unique)
        self.indexes: Dict[Tuple[str, str], Tuple[str, Tuple[str, ...], bool]] = {}
        # (table, constraint name) -> columns
        self.foreign_keys: Dict[Tuple[str, str], Tuple[str, ...]] = {}
        self.executed: List[str] = []

        quote = re.escape(dialect.quote("x")[0])
        self._quote = dialect.quote("x")[0]
        self._ident = f"{quote}((?:[^{quote}]|{quote}{quote})+){quote}"
        self._schema_prefix = (
            dialect.quote(dialect.schema) + "." if isinstance(dialect, PostgresDialect) else ""
        )

    @property
    def is_mysql(self) -> bool:
        return isinstance(self.dialect, MySQLDialect)

    def seed(self, table_name: str, column_names: Sequence[str]) -> None:
        """Create a table holding only some of its declared columns."""
        declaration = self.declarations[table_name]
        self.columns[table_name] = {
            name: declaration.get_column(name) for name in column_names
        }

    def index_names(self, table_name: str) -> List[str]:
        return sorted(name for (_, name), (table, _, _) in self.indexes.items() if table == table_name)

    # Pool interface

    async def execute(self, sql: str, *args) -> None:
        self._apply(sql.replace(self._schema_prefix, "") if self._schema_prefix else sql)
        self.executed.append(sql)

    async def fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        if query == self.dialect.columns_query("")[0]:
            return self._column_rows(args[-1])
        if query == self.dialect.indexes_query("")[0]:
            return self._index_rows(args[-1])
        if query == self.dialect.list_tables_query()[0]:
            return [{"table_name": name} for name in sorted(self.columns)]
        raise ValueError(f"unexpected query: {query}")

    async def fetchval(self, query: str, *args) -> Any:
        if query == self.dialect.table_exists_query("")[0]:
            return int(args[-1] in self.columns)
        raise ValueError(f"unexpected query: {query}")

    # DDL

    def _apply(self, sql: str) -> None:
        ident = self._ident
        match = re.match(rf"CREATE TABLE IF NOT EXISTS {ident} \(\n  (.*)\n\)", sql, re.S)
        if match:
            return self._create_table(self._name(match.group(1)), match.group(2).split(",\n  "))

        match = re.match(rf"DROP INDEX {ident}$", sql)
        if match:
            return self._drop_index(self._scope(None), self._name(match.group(1)))

        match = re.match(rf"CREATE (UNIQUE )?INDEX {ident} ON {ident} \((.*)\)$", sql)
        if match:
            table = self._name(match.group(3))
            return self._add_index(table, self._name(match.group(2)), match.group(4), bool(match.group(1)))

        match = re.match(rf"ALTER TABLE {ident} (.*)$", sql, re.S)
        if not match:
            raise ValueError(f"unexpected statement: {sql}")
        table, action = self._name(match.group(1)), match.group(2)
        if table not in self.columns:
            raise self._error(1146, "42P01", f"table {table} does not exist")

        match = re.match(rf"ADD COLUMN {ident} ", action)
        if match:
            name = self._name(match.group(1))
            if name in self.columns[table]:
                raise self._error(1060, "42701", f"duplicate column {name}")
            self.columns[table][name] = self.declarations[table].get_column(name)
            return None

        match = re.match(rf"(?:MODIFY COLUMN|ALTER COLUMN) {ident} ", action)
        if match:
            name = self._name(match.group(1))
            if name not in self.columns[table]:
                raise self._error(1054, "42703", f"unknown column {name}")
            self.columns[table][name] = self.declarations[table].get_column(name)
            return None

        match = re.match(rf"DROP INDEX {ident}$", action)
        if match:
            name = self._name(match.group(1))
            if (table, name) in self.foreign_keys:
                raise self._error(1553, "2BP01", f"index {name} is needed by a foreign key")
            return self._drop_index(self._scope(table), name)

        match = re.match(rf"ADD (UNIQUE )?INDEX {ident} \((.*)\)$", action)
        if match:
            return self._add_index(table, self._name(match.group(2)), match.group(3), bool(match.group(1)))

        match = re.match(rf"(?:DROP FOREIGN KEY|DROP CONSTRAINT) {ident}$", action)
        if match:
            name = self._name(match.group(1))
            if self.foreign_keys.pop((table, name), None) is None:
                raise self._error(1091, "42704", f"constraint {name} does not exist")
            return None

        match = re.match(rf"ADD (CONSTRAINT {ident} FOREIGN KEY .*)$", action)
        if match:
            return self._add_foreign_key(table, match.group(1))

        raise ValueError(f"unexpected statement: {sql}")

    def _create_table(self, table: str, lines: List[str]) -> None:
        if table in self.columns:
            return
        declaration = self.declarations[table]
        self.columns[table] = {}
        for line in lines:
            match = re.match(rf"(UNIQUE )?INDEX {self._ident} \((.*)\)$", line)
            if match:
                self._add_index(table, self._name(match.group(2)), match.group(3), bool(match.group(1)))
            elif line.startswith("CONSTRAINT "):
                self._add_foreign_key(table, line)
            else:
                name = self._name(re.match(self._ident, line).group(1))
                self.columns[table][name] = declaration.get_column(name)

    def _add_index(self, table: str, name: str, column_list: str, unique: bool) -> None:
        key = (self._scope(table), name)
        if key in self.indexes:
            raise self._error(1061, "42P07", f"relation {name} already exists")
        self.indexes[key] = (table, self._names(column_list), unique)

    def _drop_index(self, scope: str, name: str) -> None:
        if self.indexes.pop((scope, name), None) is None:
            raise self._error(1091, "42704", f"index {name} does not exist")

    def _add_foreign_key(self, table: str, clause: str) -> None:
        match = re.match(rf"CONSTRAINT {self._ident} FOREIGN KEY \((.*?)\)", clause)
        name, columns = self._name(match.group(1)), self._names(match.group(2))
        if (table, name) in self.foreign_keys:
            raise self._error(1826, "42710", f"duplicate foreign key {name}")
        self.foreign_keys[(table, name)] = columns
        # InnoDB adds a same-named index when none starts with the key columns
        if self.is_mysql and not any(
            owner == table and cols[: len(columns)] == columns
            for owner, cols, _ in self.indexes.values()
        ):
            self.indexes[(table, name)] = (table, columns, False)

    # Catalog rows

    def _column_rows(self, table: str) -> List[Dict[str, Any]]:
        rows = []
        for column in self.columns.get(table, {}).values():
            reported = normalize_type(column.type)
            if self.is_mysql:
                reported = _MYSQL_REPORTED_TYPES.get(reported, reported)
                default = _mysql_default(column)
            elif column.has_default and column.default is not None:
                default = format_default(column.default, column.type)
            else:
                default = None
            rows.append({
                "column_name": column.name,
                "column_type": reported,
                "is_nullable": "NO" if column.is_primary_key or not column.nullable else "YES",
                "column_default": default,
                "column_key": "PRI" if column.is_primary_key else "",
                "extra": "",
            })
        return rows

    def _index_rows(self, table: str) -> List[Dict[str, Any]]:
        rows = []
        for column in self.columns.get(table, {}).values():
            if column.is_primary_key:
                name = "PRIMARY" if self.is_mysql else f"{table}_pkey"
                rows.append(_catalog_index_row(name, column.name, False, 1, "PRIMARY"))
        for (_, name), (owner, columns, unique) in self.indexes.items():
            if owner == table:
                kind = "UNIQUE" if unique else "INDEX"
                for seq, column in enumerate(columns, start=1):
                    rows.append(_catalog_index_row(name, column, not unique, seq, kind))
        for (owner, name), columns in self.foreign_keys.items():
            if owner == table:
                for seq, column in enumerate(columns, start=1):
                    rows.append(_catalog_index_row(name, column, True, seq, "FOREIGN KEY"))
        return rows

    # Helpers

    def _scope(self, table: Optional[str]) -> str:
        return table if self.is_mysql else self.dialect.schema

    def _name(self, quoted_body: str) -> str:
        return quoted_body.replace(self._quote * 2, self._quote)

    def _names(self, column_list: str) -> Tuple[str, ...]:
        return tuple(self._name(name) for name in re.findall(self._ident, column_list))

    def _error(self, errno: int, sqlstate: str, message: str) -> Exception:
        if self.is_mysql:
            return FakeMySQLError(errno, message)
        return FakePostgresError(sqlstate, message)


def _catalog_index_row(name, column, non_unique, seq, kind) -> Dict[str, Any]:
    return {
        "index_name": name,
        "column_name": column,
        "non_unique": int(non_unique),
        "seq_in_index": seq,
        "index_kind": kind,
    }


# ============================================================================
# Configuration fixtures
# ============================================================================

@pytest.fixture
def sample_config_data() -> Dict[str, Any]:
    return {
        "service_name": "tablesmith-test",
        "database": {
            "dialect": "mysql",
            "host": "localhost",
            "port": 3306,
            "database": "portal_test",
            "user": "portal",
            "password": "secret",
            "create_database": False,
        },
        "reconciliation": {"mode": "apply"},
        "logging": {"level": "DEBUG", "rich": False},
    }


@pytest.fixture
def temp_config_file(sample_config_data):
    """Temporary configuration file for testing."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(sample_config_data, f)
        path = f.name
    yield path
    os.unlink(path)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Keep TABLESMITH_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("TABLESMITH_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("DB_HOST", "localhost")
    monkeypatch.setenv("DB_NAME", "portal_test")
    monkeypatch.setenv("DB_USER", "portal")
    monkeypatch.setenv("DB_PASSWORD", "secret")
