"""
SQL dialects for tablesmith.

A dialect owns everything that differs between database engines: identifier
quoting, type aliases used by the normalizer, DDL rendering, the catalog
queries used by the introspector and classification of driver errors. The
differ and the generator stay engine-agnostic.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from .declaration import ColumnSpec, IndexKind, IndexSpec, SchemaDeclaration
from .normalizer import normalize_type

Query = Tuple[str, Tuple[Any, ...]]

_RAW_DEFAULTS = ("CURRENT_TIMESTAMP", "NULL")
_NUMERIC_TYPE_MARKERS = ("int", "decimal", "numeric", "float", "double", "real", "bool")


def format_default(value: Any, column_type: str) -> str:
    """Render a declared default as a SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"

    text = str(value)
    if text.upper() in _RAW_DEFAULTS:
        return text.upper()

    base_type = column_type.lower().split("(", 1)[0].strip()
    if isinstance(value, (int, float)) or any(m in base_type for m in _NUMERIC_TYPE_MARKERS):
        return text

    return "'" + text.replace("'", "''") + "'"


def error_code(error: BaseException) -> Optional[Any]:
    """Driver error code: MySQL errno or PostgreSQL SQLSTATE."""
    for attribute in ("errno", "sqlstate"):
        code = getattr(error, attribute, None)
        if code is not None:
            return code
    return None


class Dialect(ABC):
    """Engine-specific SQL rendering and catalog access."""

    name: str = "generic"
    type_aliases: Dict[str, str] = {}
    missing_object_errors: frozenset = frozenset()
    missing_table_errors: frozenset = frozenset()
    duplicate_table_errors: frozenset = frozenset()

    # Identifiers and types

    @abstractmethod
    def quote(self, identifier: str) -> str:
        """Quote an identifier."""

    def table(self, table_name: str) -> str:
        """Render a (possibly schema-qualified) table reference."""
        return self.quote(table_name)

    def normalize_type(self, type_string: str) -> str:
        return normalize_type(type_string, self.type_aliases)

    def index_name(self, table_name: str, index_name: str) -> str:
        """Name a declared index is stored under."""
        return index_name

    def declared_index_name(self, table_name: str, stored_name: str) -> str:
        """Inverse of index_name, applied to names read from the catalog."""
        return stored_name

    def column_list(self, columns) -> str:
        return ", ".join(self.quote(column) for column in columns)

    def column_definition(self, column: ColumnSpec) -> str:
        sql = f"{self.quote(column.name)} {column.type}"
        if not column.nullable:
            sql += " NOT NULL"
        if column.has_default:
            sql += f" DEFAULT {format_default(column.default, column.type)}"
        if column.extra:
            sql += f" {column.extra}"
        return sql

    def foreign_key_clause(self, index: IndexSpec) -> str:
        sql = (
            f"CONSTRAINT {self.quote(index.name)} FOREIGN KEY ({self.column_list(index.columns)}) "
            f"REFERENCES {self.table(index.references.table)}({self.quote(index.references.column)})"
        )
        if index.on_delete:
            sql += f" ON DELETE {index.on_delete}"
        if index.on_update:
            sql += f" ON UPDATE {index.on_update}"
        return sql

    # DDL

    @abstractmethod
    def create_table(self, declaration: SchemaDeclaration) -> str:
        """CREATE TABLE IF NOT EXISTS with the primary key and inline constraints."""

    def add_column(self, table_name: str, column: ColumnSpec) -> str:
        return f"ALTER TABLE {self.table(table_name)} ADD COLUMN {self.column_definition(column)}"

    @abstractmethod
    def modify_column(self, table_name: str, column: ColumnSpec) -> str:
        """Change type, nullability and default of an existing column."""

    @abstractmethod
    def drop_index(self, table_name: str, index_name: str) -> str:
        """Drop an index by name (may fail when absent)."""

    @abstractmethod
    def add_index(self, table_name: str, index: IndexSpec) -> str:
        """Create a plain or unique index."""

    @abstractmethod
    def drop_foreign_key(self, table_name: str, constraint_name: str) -> str:
        """Drop a foreign key constraint by name (may fail when absent)."""

    def add_foreign_key(self, table_name: str, index: IndexSpec) -> str:
        return f"ALTER TABLE {self.table(table_name)} ADD {self.foreign_key_clause(index)}"

    # Catalog

    @abstractmethod
    def columns_query(self, table_name: str) -> Query:
        """Query returning column_name, column_type, is_nullable, column_default, column_key, extra."""

    @abstractmethod
    def indexes_query(self, table_name: str) -> Query:
        """Query returning index_name, column_name, non_unique, seq_in_index, index_kind."""

    @abstractmethod
    def table_exists_query(self, table_name: str) -> Query:
        """Query returning a single count of matching tables."""

    @abstractmethod
    def list_tables_query(self) -> Query:
        """Query returning table_name for every base table."""

    # Errors

    def is_missing_object_error(self, error: BaseException) -> bool:
        """True when a DROP failed only because the object does not exist."""
        return error_code(error) in self.missing_object_errors

    def is_missing_table_error(self, error: BaseException) -> bool:
        return error_code(error) in self.missing_table_errors

    def is_duplicate_table_error(self, error: BaseException) -> bool:
        return error_code(error) in self.duplicate_table_errors

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MySQLDialect(Dialect):
    """MySQL / MariaDB (InnoDB)."""

    name = "mysql"
    type_aliases = {
        "boolean": "tinyint",
        "bool": "tinyint",
        "integer": "int",
        "numeric": "decimal",
        "double precision": "double",
    }
    # ER_CANT_DROP_FIELD_OR_KEY, ER_BAD_FIELD_ERROR
    missing_object_errors = frozenset({1091, 1054})
    # ER_NO_SUCH_TABLE
    missing_table_errors = frozenset({1146})
    # ER_TABLE_EXISTS_ERROR
    duplicate_table_errors = frozenset({1050})

    DEFAULT_TABLE_OPTIONS = "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"

    def __init__(self, table_options: Optional[str] = DEFAULT_TABLE_OPTIONS):
        self.table_options = table_options

    def quote(self, identifier: str) -> str:
        return "`" + identifier.replace("`", "``") + "`"

    def column_definition(self, column: ColumnSpec) -> str:
        sql = super().column_definition(column)
        if column.after:
            sql += f" AFTER {self.quote(column.after)}"
        return sql

    def create_table(self, declaration: SchemaDeclaration) -> str:
        lines = []
        for column in declaration.columns:
            definition = super().column_definition(column)
            lines.append(definition)
        for index in declaration.indexes:
            if index.is_foreign_key:
                lines.append(self.foreign_key_clause(index))
            elif index.is_unique:
                lines.append(f"UNIQUE INDEX {self.quote(index.name)} ({self.column_list(index.columns)})")
            else:
                lines.append(f"INDEX {self.quote(index.name)} ({self.column_list(index.columns)})")

        body = ",\n  ".join(lines)
        sql = f"CREATE TABLE IF NOT EXISTS {self.table(declaration.table_name)} (\n  {body}\n)"
        if self.table_options:
            sql += f" {self.table_options}"
        return sql

    def modify_column(self, table_name: str, column: ColumnSpec) -> str:
        definition = super().column_definition(column)
        return f"ALTER TABLE {self.table(table_name)} MODIFY COLUMN {definition}"

    def drop_index(self, table_name: str, index_name: str) -> str:
        return f"ALTER TABLE {self.table(table_name)} DROP INDEX {self.quote(index_name)}"

    def add_index(self, table_name: str, index: IndexSpec) -> str:
        keyword = "UNIQUE INDEX" if index.is_unique else "INDEX"
        return (
            f"ALTER TABLE {self.table(table_name)} ADD {keyword} "
            f"{self.quote(index.name)} ({self.column_list(index.columns)})"
        )

    def drop_foreign_key(self, table_name: str, constraint_name: str) -> str:
        return f"ALTER TABLE {self.table(table_name)} DROP FOREIGN KEY {self.quote(constraint_name)}"

    def columns_query(self, table_name: str) -> Query:
        return (
            """
            SELECT
                COLUMN_NAME AS column_name,
                COLUMN_TYPE AS column_type,
                IS_NULLABLE AS is_nullable,
                COLUMN_DEFAULT AS column_default,
                COLUMN_KEY AS column_key,
                EXTRA AS extra
            FROM INFORMATION_SCHEMA.COLUMNS
            WHERE TABLE_SCHEMA = DATABASE()
            AND TABLE_NAME = %s
            ORDER BY ORDINAL_POSITION
            """,
            (table_name,),
        )

    def indexes_query(self, table_name: str) -> Query:
        return (
            """
            SELECT
                INDEX_NAME AS index_name,
                COLUMN_NAME AS column_name,
                NON_UNIQUE AS non_unique,
                SEQ_IN_INDEX AS seq_in_index,
                CASE
                    WHEN INDEX_NAME = 'PRIMARY' THEN 'PRIMARY'
                    WHEN NON_UNIQUE = 0 THEN 'UNIQUE'
                    ELSE 'INDEX'
                END AS index_kind
            FROM INFORMATION_SCHEMA.STATISTICS
            WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s
            UNION ALL
            SELECT
                CONSTRAINT_NAME,
                COLUMN_NAME,
                1,
                ORDINAL_POSITION,
                'FOREIGN KEY'
            FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE
            WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s
            AND REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY index_name, seq_in_index
            """,
            (table_name, table_name),
        )

    def table_exists_query(self, table_name: str) -> Query:
        return (
            """
            SELECT COUNT(*)
            FROM INFORMATION_SCHEMA.TABLES
            WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s
            """,
            (table_name,),
        )

    def list_tables_query(self) -> Query:
        return (
            """
            SELECT TABLE_NAME AS table_name
            FROM INFORMATION_SCHEMA.TABLES
            WHERE TABLE_SCHEMA = DATABASE() AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
            """,
            (),
        )


class PostgresDialect(Dialect):
    """PostgreSQL, accessed through asyncpg."""

    name = "postgresql"
    type_aliases = {
        "character varying": "varchar",
        "character": "char",
        "integer": "int",
        "int4": "int",
        "serial": "int",
        "int8": "bigint",
        "bigserial": "bigint",
        "int2": "smallint",
        "smallserial": "smallint",
        "numeric": "decimal",
        "bool": "boolean",
        "timestamp without time zone": "timestamp",
        "timestamp with time zone": "timestamptz",
        "time without time zone": "time",
        "time with time zone": "timetz",
        "double precision": "double",
        "float8": "double",
        "float4": "real",
    }
    # undefined_object, undefined_column
    missing_object_errors = frozenset({"42704", "42703"})
    # undefined_table
    missing_table_errors = frozenset({"42P01"})
    # duplicate_table; unique_violation is raised by a concurrent CREATE
    # TABLE IF NOT EXISTS racing on pg_type
    duplicate_table_errors = frozenset({"42P07", "23505"})

    def __init__(self, schema: str = "public"):
        self.schema = schema

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def table(self, table_name: str) -> str:
        return f"{self.quote(self.schema)}.{self.quote(table_name)}"

    # Index names share one namespace per schema, so they carry the table name
    def index_name(self, table_name: str, index_name: str) -> str:
        return f"{table_name}_{index_name}"

    def declared_index_name(self, table_name: str, stored_name: str) -> str:
        prefix = f"{table_name}_"
        if stored_name.startswith(prefix):
            return stored_name[len(prefix):]
        return stored_name

    def create_table(self, declaration: SchemaDeclaration) -> str:
        # Plain and unique indexes are added afterwards with CREATE INDEX so
        # that DROP INDEX can rebuild any of them
        lines = [self.column_definition(column) for column in declaration.columns]
        lines.extend(self.foreign_key_clause(index) for index in declaration.foreign_keys)
        body = ",\n  ".join(lines)
        return f"CREATE TABLE IF NOT EXISTS {self.table(declaration.table_name)} (\n  {body}\n)"

    def modify_column(self, table_name: str, column: ColumnSpec) -> str:
        name = self.quote(column.name)
        clauses = [
            f"ALTER COLUMN {name} TYPE {column.type}",
            f"ALTER COLUMN {name} {'DROP' if column.nullable else 'SET'} NOT NULL",
        ]
        if column.has_default:
            if column.default is None:
                clauses.append(f"ALTER COLUMN {name} DROP DEFAULT")
            else:
                clauses.append(
                    f"ALTER COLUMN {name} SET DEFAULT {format_default(column.default, column.type)}"
                )
        return f"ALTER TABLE {self.table(table_name)} " + ", ".join(clauses)

    def drop_index(self, table_name: str, index_name: str) -> str:
        stored = self.index_name(table_name, index_name)
        return f"DROP INDEX {self.quote(self.schema)}.{self.quote(stored)}"

    def add_index(self, table_name: str, index: IndexSpec) -> str:
        keyword = "UNIQUE INDEX" if index.is_unique else "INDEX"
        return (
            f"CREATE {keyword} {self.quote(self.index_name(table_name, index.name))} "
            f"ON {self.table(table_name)} ({self.column_list(index.columns)})"
        )

    def drop_foreign_key(self, table_name: str, constraint_name: str) -> str:
        return f"ALTER TABLE {self.table(table_name)} DROP CONSTRAINT {self.quote(constraint_name)}"

    def columns_query(self, table_name: str) -> Query:
        return (
            """
            SELECT
                a.attname AS column_name,
                format_type(a.atttypid, a.atttypmod) AS column_type,
                CASE WHEN a.attnotnull THEN 'NO' ELSE 'YES' END AS is_nullable,
                pg_get_expr(d.adbin, d.adrelid) AS column_default,
                CASE WHEN EXISTS (
                    SELECT 1 FROM pg_index i
                    WHERE i.indrelid = c.oid AND i.indisprimary
                    AND a.attnum = ANY(i.indkey)
                ) THEN 'PRI' ELSE '' END AS column_key,
                '' AS extra
            FROM pg_attribute a
            JOIN pg_class c ON c.oid = a.attrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE n.nspname = $1 AND c.relname = $2
            AND c.relkind = 'r'
            AND a.attnum > 0 AND NOT a.attisdropped
            ORDER BY a.attnum
            """,
            (self.schema, table_name),
        )

    def indexes_query(self, table_name: str) -> Query:
        return (
            """
            SELECT
                ic.relname AS index_name,
                a.attname AS column_name,
                NOT ix.indisunique AS non_unique,
                array_position(ix.indkey::int2[], a.attnum) AS seq_in_index,
                CASE
                    WHEN ix.indisprimary THEN 'PRIMARY'
                    WHEN ix.indisunique THEN 'UNIQUE'
                    ELSE 'INDEX'
                END AS index_kind
            FROM pg_index ix
            JOIN pg_class tc ON tc.oid = ix.indrelid
            JOIN pg_class ic ON ic.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = tc.relnamespace
            JOIN pg_attribute a ON a.attrelid = tc.oid AND a.attnum = ANY(ix.indkey)
            WHERE n.nspname = $1 AND tc.relname = $2
            UNION ALL
            SELECT
                con.conname,
                a.attname,
                TRUE,
                array_position(con.conkey, a.attnum),
                'FOREIGN KEY'
            FROM pg_constraint con
            JOIN pg_class tc ON tc.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = tc.relnamespace
            JOIN pg_attribute a ON a.attrelid = tc.oid AND a.attnum = ANY(con.conkey)
            WHERE con.contype = 'f' AND n.nspname = $1 AND tc.relname = $2
            ORDER BY 1, 4
            """,
            (self.schema, table_name),
        )

    def table_exists_query(self, table_name: str) -> Query:
        return (
            """
            SELECT COUNT(*)
            FROM information_schema.tables
            WHERE table_schema = $1 AND table_name = $2
            """,
            (self.schema, table_name),
        )

    def list_tables_query(self) -> Query:
        return (
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1 AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """,
            (self.schema,),
        )

    def __repr__(self) -> str:
        return f"PostgresDialect(schema={self.schema!r})"


def get_dialect(name: str, **options: Any) -> Dialect:
    """Build a dialect by name ("mysql" or "postgresql")."""
    lowered = name.lower()
    if lowered in ("mysql", "mariadb"):
        return MySQLDialect(**options)
    if lowered in ("postgresql", "postgres"):
        return PostgresDialect(**options)
    raise ValueError(f"Unsupported SQL dialect: {name}")
