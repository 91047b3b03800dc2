"""
Tests for tablesmith.schema.dialects module.
"""

import pytest

from tablesmith.schema.declaration import (
    ColumnSpec,
    ForeignKeyReference,
    IndexKind,
    IndexSpec,
    SchemaDeclaration,
)
from tablesmith.schema.dialects import (
    MySQLDialect,
    PostgresDialect,
    error_code,
    format_default,
    get_dialect,
)
from tests.conftest import FakeMySQLError, FakePostgresError


@pytest.fixture
def lesson_fk():
    return IndexSpec(
        "fk_lesson_playlist",
        ["playlist_id"],
        IndexKind.FOREIGN_KEY,
        references=ForeignKeyReference("lesson_playlists", "id"),
        on_delete="CASCADE",
        on_update="CASCADE",
    )


@pytest.fixture
def pg_declaration():
    return SchemaDeclaration(
        table_name="widget",
        columns=[
            ColumnSpec("id", "SERIAL PRIMARY KEY", nullable=False),
            ColumnSpec("name", "VARCHAR(50)", nullable=False),
            ColumnSpec("email", "VARCHAR(255)"),
        ],
        indexes=[
            IndexSpec("idx_name", ["name"]),
            IndexSpec("uq_email", ["email"], IndexKind.UNIQUE),
        ],
    )


class TestFormatDefault:
    """Test rendering of declared defaults."""

    @pytest.mark.parametrize(
        "value, column_type, expected",
        [
            (None, "VARCHAR(500)", "NULL"),
            (True, "BOOLEAN", "TRUE"),
            (False, "BOOLEAN", "FALSE"),
            (0, "INT", "0"),
            (1.5, "FLOAT", "1.5"),
            ("0.00", "DECIMAL(15, 2)", "0.00"),
            ("CURRENT_TIMESTAMP", "TIMESTAMP", "CURRENT_TIMESTAMP"),
            ("current_timestamp", "TIMESTAMP", "CURRENT_TIMESTAMP"),
            ("active", "ENUM('active', 'paused')", "'active'"),
            ("printed", "ENUM('printed', 'digital')", "'printed'"),
            ("5", "VARCHAR(5)", "'5'"),
            ("it's", "VARCHAR(10)", "'it''s'"),
        ],
    )
    def test_format_default(self, value, column_type, expected):
        """Literals are quoted unless the column is numeric or the value is a keyword."""
        assert format_default(value, column_type) == expected


class TestErrorCode:
    """Test driver error code extraction."""

    def test_mysql_errno(self):
        assert error_code(FakeMySQLError(1091)) == 1091

    def test_postgres_sqlstate(self):
        assert error_code(FakePostgresError("42P01")) == "42P01"

    def test_plain_exception(self):
        assert error_code(RuntimeError("boom")) is None


class TestMySQLDialect:
    """Test MySQL DDL rendering."""

    def test_quote(self, mysql_dialect):
        """Identifiers use backticks, doubled when embedded."""
        assert mysql_dialect.quote("name") == "`name`"
        assert mysql_dialect.quote("we`ird") == "`we``ird`"
        assert mysql_dialect.table("widget") == "`widget`"

    def test_index_names_unchanged(self, mysql_dialect):
        """MySQL index names are scoped to their table and stored as declared."""
        assert mysql_dialect.index_name("widget", "idx_name") == "idx_name"
        assert mysql_dialect.declared_index_name("widget", "idx_name") == "idx_name"

    def test_create_table(self, mysql_dialect, widget_declaration):
        """CREATE TABLE carries columns, indexes and table options."""
        assert mysql_dialect.create_table(widget_declaration) == (
            "CREATE TABLE IF NOT EXISTS `widget` (\n"
            "  `id` INT AUTO_INCREMENT PRIMARY KEY NOT NULL,\n"
            "  `name` VARCHAR(50) NOT NULL,\n"
            "  `qty` INT DEFAULT 0,\n"
            "  INDEX `idx_name` (`name`)\n"
            ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"
        )

    def test_create_table_with_constraints(self, lesson_fk):
        """Unique indexes and foreign keys are inlined; options may be omitted."""
        dialect = MySQLDialect(table_options=None)
        declaration = SchemaDeclaration(
            "lessons",
            [
                ColumnSpec("id", "INT AUTO_INCREMENT PRIMARY KEY", nullable=False),
                ColumnSpec("slug", "VARCHAR(100)", nullable=False),
                ColumnSpec("playlist_id", "INT", nullable=False),
            ],
            [IndexSpec("slug", ["slug"], IndexKind.UNIQUE), lesson_fk],
        )
        sql = dialect.create_table(declaration)

        assert "  UNIQUE INDEX `slug` (`slug`)" in sql
        assert (
            "  CONSTRAINT `fk_lesson_playlist` FOREIGN KEY (`playlist_id`) "
            "REFERENCES `lesson_playlists`(`id`) ON DELETE CASCADE ON UPDATE CASCADE"
        ) in sql
        assert sql.endswith("\n)")

    def test_add_column(self, mysql_dialect, widget_declaration):
        assert mysql_dialect.add_column("widget", widget_declaration.get_column("qty")) == (
            "ALTER TABLE `widget` ADD COLUMN `qty` INT DEFAULT 0"
        )

    def test_add_column_after(self, mysql_dialect):
        """Positioning only applies to ADD COLUMN."""
        column = ColumnSpec("qty", "INT", default=0, after="name")
        assert mysql_dialect.add_column("widget", column) == (
            "ALTER TABLE `widget` ADD COLUMN `qty` INT DEFAULT 0 AFTER `name`"
        )
        assert "AFTER" not in mysql_dialect.modify_column("widget", column)

    def test_add_column_with_extra(self, mysql_dialect):
        """Extra clauses follow the default."""
        column = ColumnSpec(
            "updatedAt",
            "TIMESTAMP",
            nullable=False,
            default="CURRENT_TIMESTAMP",
            extra="ON UPDATE CURRENT_TIMESTAMP",
        )
        assert mysql_dialect.add_column("users", column) == (
            "ALTER TABLE `users` ADD COLUMN `updatedAt` TIMESTAMP NOT NULL "
            "DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP"
        )

    def test_modify_column(self, mysql_dialect, widget_declaration):
        assert mysql_dialect.modify_column("widget", widget_declaration.get_column("name")) == (
            "ALTER TABLE `widget` MODIFY COLUMN `name` VARCHAR(50) NOT NULL"
        )

    def test_index_statements(self, mysql_dialect, widget_declaration):
        index = widget_declaration.indexes[0]
        assert mysql_dialect.drop_index("widget", "idx_name") == (
            "ALTER TABLE `widget` DROP INDEX `idx_name`"
        )
        assert mysql_dialect.add_index("widget", index) == (
            "ALTER TABLE `widget` ADD INDEX `idx_name` (`name`)"
        )

    def test_unique_index(self, mysql_dialect):
        index = IndexSpec("email", ["email"], IndexKind.UNIQUE)
        assert mysql_dialect.add_index("users", index) == (
            "ALTER TABLE `users` ADD UNIQUE INDEX `email` (`email`)"
        )

    def test_multi_column_index(self, mysql_dialect):
        index = IndexSpec("idx_pair", ["a", "b"])
        assert mysql_dialect.add_index("t", index) == "ALTER TABLE `t` ADD INDEX `idx_pair` (`a`, `b`)"

    def test_foreign_key_statements(self, mysql_dialect, lesson_fk):
        assert mysql_dialect.drop_foreign_key("lessons", "fk_lesson_playlist") == (
            "ALTER TABLE `lessons` DROP FOREIGN KEY `fk_lesson_playlist`"
        )
        assert mysql_dialect.add_foreign_key("lessons", lesson_fk) == (
            "ALTER TABLE `lessons` ADD CONSTRAINT `fk_lesson_playlist` "
            "FOREIGN KEY (`playlist_id`) REFERENCES `lesson_playlists`(`id`) "
            "ON DELETE CASCADE ON UPDATE CASCADE"
        )

    def test_catalog_queries(self, mysql_dialect):
        """Catalog queries are scoped to the current database."""
        query, params = mysql_dialect.columns_query("widget")
        assert "INFORMATION_SCHEMA.COLUMNS" in query
        assert "DATABASE()" in query
        assert params == ("widget",)

        query, params = mysql_dialect.indexes_query("widget")
        assert "INFORMATION_SCHEMA.STATISTICS" in query
        assert "KEY_COLUMN_USAGE" in query
        assert params == ("widget", "widget")

        assert mysql_dialect.table_exists_query("widget")[1] == ("widget",)
        assert mysql_dialect.list_tables_query()[1] == ()

    def test_error_classification(self, mysql_dialect):
        """errno decides which failures are expected."""
        assert mysql_dialect.is_missing_object_error(FakeMySQLError(1091))
        assert mysql_dialect.is_missing_object_error(FakeMySQLError(1054))
        assert not mysql_dialect.is_missing_object_error(FakeMySQLError(1064))
        assert not mysql_dialect.is_missing_object_error(RuntimeError("boom"))
        assert mysql_dialect.is_missing_table_error(FakeMySQLError(1146))
        assert mysql_dialect.is_duplicate_table_error(FakeMySQLError(1050))


class TestPostgresDialect:
    """Test PostgreSQL DDL rendering."""

    def test_quote_and_table(self):
        dialect = PostgresDialect(schema="app")
        assert dialect.quote('we"ird') == '"we""ird"'
        assert dialect.table("widget") == '"app"."widget"'
        assert repr(dialect) == "PostgresDialect(schema='app')"

    def test_create_table(self, postgres_dialect, pg_declaration):
        """Only foreign keys are inlined; indexes are added by the pass that follows."""
        sql = postgres_dialect.create_table(pg_declaration)

        assert sql.startswith('CREATE TABLE IF NOT EXISTS "public"."widget" (\n')
        assert '  "id" SERIAL PRIMARY KEY NOT NULL,\n' in sql
        assert "uq_email" not in sql
        assert "idx_name" not in sql
        assert "ENGINE" not in sql

    def test_add_column_ignores_position(self, postgres_dialect):
        column = ColumnSpec("qty", "INT", default=0, after="name")
        assert postgres_dialect.add_column("widget", column) == (
            'ALTER TABLE "public"."widget" ADD COLUMN "qty" INT DEFAULT 0'
        )

    def test_modify_column(self, postgres_dialect):
        """Type, nullability and default are altered separately."""
        assert postgres_dialect.modify_column("widget", ColumnSpec("qty", "INT", default=0)) == (
            'ALTER TABLE "public"."widget" ALTER COLUMN "qty" TYPE INT, '
            'ALTER COLUMN "qty" DROP NOT NULL, '
            'ALTER COLUMN "qty" SET DEFAULT 0'
        )

    def test_modify_column_not_null_without_default(self, postgres_dialect):
        column = ColumnSpec("name", "VARCHAR(50)", nullable=False)
        assert postgres_dialect.modify_column("widget", column) == (
            'ALTER TABLE "public"."widget" ALTER COLUMN "name" TYPE VARCHAR(50), '
            'ALTER COLUMN "name" SET NOT NULL'
        )

    def test_modify_column_default_null(self, postgres_dialect):
        column = ColumnSpec("avatar", "VARCHAR(500)", default=None)
        assert postgres_dialect.modify_column("users", column).endswith(
            'ALTER COLUMN "avatar" DROP DEFAULT'
        )

    def test_index_statements(self, postgres_dialect, pg_declaration):
        """Stored index names carry the table name."""
        assert postgres_dialect.drop_index("widget", "idx_name") == (
            'DROP INDEX "public"."widget_idx_name"'
        )
        assert postgres_dialect.add_index("widget", pg_declaration.indexes[0]) == (
            'CREATE INDEX "widget_idx_name" ON "public"."widget" ("name")'
        )
        assert postgres_dialect.add_index("widget", pg_declaration.indexes[1]) == (
            'CREATE UNIQUE INDEX "widget_uq_email" ON "public"."widget" ("email")'
        )

    def test_index_names_per_table(self, postgres_dialect):
        """Two tables declaring the same index name never touch each other's index."""
        assert postgres_dialect.drop_index("charities", "idx_status") != (
            postgres_dialect.drop_index("charity_items", "idx_status")
        )
        assert postgres_dialect.index_name("charities", "idx_status") == "charities_idx_status"
        assert postgres_dialect.declared_index_name("charities", "charities_idx_status") == "idx_status"
        assert postgres_dialect.declared_index_name("charities", "charities_pkey") == "pkey"
        assert postgres_dialect.declared_index_name("charities", "idx_legacy") == "idx_legacy"

    def test_foreign_key_statements(self, postgres_dialect, lesson_fk):
        assert postgres_dialect.drop_foreign_key("lessons", "fk_lesson_playlist") == (
            'ALTER TABLE "public"."lessons" DROP CONSTRAINT "fk_lesson_playlist"'
        )
        assert postgres_dialect.add_foreign_key("lessons", lesson_fk) == (
            'ALTER TABLE "public"."lessons" ADD CONSTRAINT "fk_lesson_playlist" '
            'FOREIGN KEY ("playlist_id") REFERENCES "public"."lesson_playlists"("id") '
            "ON DELETE CASCADE ON UPDATE CASCADE"
        )

    def test_catalog_queries(self):
        """Catalog queries are parameterized by schema and table."""
        dialect = PostgresDialect(schema="app")
        assert dialect.columns_query("widget")[1] == ("app", "widget")
        assert dialect.indexes_query("widget")[1] == ("app", "widget")
        assert dialect.table_exists_query("widget")[1] == ("app", "widget")
        assert dialect.list_tables_query()[1] == ("app",)
        assert "$1" in dialect.columns_query("widget")[0]

    def test_error_classification(self, postgres_dialect):
        """SQLSTATE decides which failures are expected."""
        assert postgres_dialect.is_missing_object_error(FakePostgresError("42704"))
        assert postgres_dialect.is_missing_object_error(FakePostgresError("42703"))
        assert not postgres_dialect.is_missing_object_error(FakePostgresError("42601"))
        assert postgres_dialect.is_missing_table_error(FakePostgresError("42P01"))
        assert postgres_dialect.is_duplicate_table_error(FakePostgresError("42P07"))
        assert postgres_dialect.is_duplicate_table_error(FakePostgresError("23505"))

    def test_type_aliases(self, postgres_dialect):
        assert postgres_dialect.normalize_type("character varying(50)") == (
            postgres_dialect.normalize_type("VARCHAR(50)")
        )


class TestGetDialect:
    """Test dialect lookup by name."""

    def test_mysql_names(self):
        assert isinstance(get_dialect("mysql"), MySQLDialect)
        assert isinstance(get_dialect("MariaDB"), MySQLDialect)

    def test_postgres_names(self):
        dialect = get_dialect("postgres", schema="app")
        assert isinstance(dialect, PostgresDialect)
        assert dialect.schema == "app"
        assert isinstance(get_dialect("postgresql"), PostgresDialect)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unsupported SQL dialect: sqlite"):
            get_dialect("sqlite")
