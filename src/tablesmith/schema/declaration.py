"""
Schema declarations for tablesmith.

A declaration is the desired shape of one table: an ordered list of column
specifications and an ordered list of index/constraint specifications. They
are authored once per entity and never change at runtime.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..exceptions import DeclarationError


class _Unset:
    """Marker for "no default declared" (distinct from DEFAULT NULL)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class IndexKind(str, Enum):
    """Kinds of index/constraint a declaration can ask for."""

    INDEX = "INDEX"
    UNIQUE = "UNIQUE"
    FOREIGN_KEY = "FOREIGN KEY"


@dataclass(frozen=True)
class ColumnSpec:
    """Desired definition of a single column."""

    name: str
    type: str
    nullable: bool = True
    default: Any = UNSET
    extra: Optional[str] = None
    after: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return self.default is not UNSET

    @property
    def is_primary_key(self) -> bool:
        return "PRIMARY KEY" in " ".join(self.type.upper().split())

    @property
    def is_nullable(self) -> bool:
        """Nullability the database reports; a primary key is always NOT NULL."""
        return self.nullable and not self.is_primary_key


@dataclass(frozen=True)
class ForeignKeyReference:
    """Target of a foreign key."""

    table: str
    column: str

    def __str__(self) -> str:
        return f"{self.table}({self.column})"


@dataclass(frozen=True)
class IndexSpec:
    """Desired index, unique index or foreign key constraint."""

    name: str
    columns: Tuple[str, ...]
    kind: IndexKind = IndexKind.INDEX
    references: Optional[ForeignKeyReference] = None
    on_delete: Optional[str] = None
    on_update: Optional[str] = None

    def __post_init__(self):
        # Stored as tuples so the index stays hashable
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "kind", IndexKind(self.kind))

    @property
    def is_foreign_key(self) -> bool:
        return self.kind == IndexKind.FOREIGN_KEY

    @property
    def is_unique(self) -> bool:
        return self.kind == IndexKind.UNIQUE


@dataclass(frozen=True)
class SchemaDeclaration:
    """Desired shape of one table."""

    table_name: str
    columns: Tuple[ColumnSpec, ...]
    indexes: Tuple[IndexSpec, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "indexes", tuple(self.indexes))
        self.validate()

    @property
    def primary_key(self) -> Optional[ColumnSpec]:
        """The column whose type declares PRIMARY KEY, if any."""
        for column in self.columns:
            if column.is_primary_key:
                return column
        return None

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def foreign_keys(self) -> List[IndexSpec]:
        return [index for index in self.indexes if index.is_foreign_key]

    @property
    def referenced_tables(self) -> List[str]:
        """Tables this declaration points to through foreign keys."""
        tables = []
        for fk in self.foreign_keys:
            if fk.references.table not in tables:
                tables.append(fk.references.table)
        return tables

    def get_column(self, name: str) -> Optional[ColumnSpec]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def validate(self) -> None:
        """Check the invariants of a declaration, raising DeclarationError."""
        if not self.table_name:
            raise DeclarationError("<unnamed>", "table name is required")
        if not self.columns:
            raise DeclarationError(self.table_name, "at least one column is required")

        duplicates = _duplicates(column.name for column in self.columns)
        if duplicates:
            raise DeclarationError(
                self.table_name, f"duplicate column names: {', '.join(duplicates)}"
            )

        primary_keys = [column.name for column in self.columns if column.is_primary_key]
        if len(primary_keys) > 1:
            raise DeclarationError(
                self.table_name,
                f"more than one primary key column: {', '.join(primary_keys)}",
            )

        duplicates = _duplicates(index.name for index in self.indexes)
        if duplicates:
            raise DeclarationError(
                self.table_name, f"duplicate index names: {', '.join(duplicates)}"
            )

        known = set(self.column_names)
        for index in self.indexes:
            if not index.columns:
                raise DeclarationError(self.table_name, f"index '{index.name}' has no columns")
            unknown = [name for name in index.columns if name not in known]
            if unknown:
                raise DeclarationError(
                    self.table_name,
                    f"index '{index.name}' uses undeclared columns: {', '.join(unknown)}",
                )
            if index.is_foreign_key and index.references is None:
                raise DeclarationError(
                    self.table_name, f"foreign key '{index.name}' has no reference"
                )
            if not index.is_foreign_key and index.references is not None:
                raise DeclarationError(
                    self.table_name,
                    f"index '{index.name}' has a reference but is not a foreign key",
                )


def check_dependency_order(declarations: Sequence[SchemaDeclaration]) -> None:
    """Ensure every foreign key points to a table reconciled earlier.

    References to tables outside the sequence are not checked; those tables
    are managed elsewhere.
    """
    names = [declaration.table_name for declaration in declarations]
    duplicates = _duplicates(names)
    if duplicates:
        raise DeclarationError(duplicates[0], "table declared more than once")

    position = {name: i for i, name in enumerate(names)}
    for i, declaration in enumerate(declarations):
        for parent in declaration.referenced_tables:
            if parent == declaration.table_name:
                continue
            if parent in position and position[parent] > i:
                raise DeclarationError(
                    declaration.table_name,
                    f"references '{parent}', which is reconciled later",
                )


def _duplicates(values: Iterable[str]) -> List[str]:
    seen = set()
    duplicates = []
    for value in values:
        if value in seen and value not in duplicates:
            duplicates.append(value)
        seen.add(value)
    return duplicates
