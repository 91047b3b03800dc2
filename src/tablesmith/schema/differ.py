"""
Schema differencing for tablesmith.

Compares a declaration against the live structure of its table and records
what has to be added or modified. Nothing is ever scheduled for removal: a
live column or index that the declaration does not mention is left alone.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..database.introspection import LiveColumn, LiveStructure
from .declaration import ColumnSpec, IndexSpec, SchemaDeclaration
from .normalizer import normalize_default, normalize_type


logger = logging.getLogger(__name__)

TypeNormalizer = Callable[[str], str]


@dataclass
class ChangeSet:
    """Differences between a declaration and its live table."""

    table_name: str
    primary_key: Optional[str] = None
    columns_to_add: List[ColumnSpec] = field(default_factory=list)
    columns_to_modify: List[ColumnSpec] = field(default_factory=list)
    columns_to_drop: List[str] = field(default_factory=list)
    indexes_to_add: List[IndexSpec] = field(default_factory=list)
    indexes_to_drop: List[str] = field(default_factory=list)
    drift: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(
            self.columns_to_add
            or self.columns_to_modify
            or self.columns_to_drop
            or self.indexes_to_add
        )

    def summary(self) -> str:
        if not self.has_changes:
            return "no changes"
        parts = []
        if self.columns_to_add:
            parts.append(f"add columns: {', '.join(c.name for c in self.columns_to_add)}")
        if self.columns_to_modify:
            parts.append(f"modify columns: {', '.join(c.name for c in self.columns_to_modify)}")
        if self.indexes_to_add:
            parts.append(f"add indexes: {', '.join(i.name for i in self.indexes_to_add)}")
        return "; ".join(parts)


def column_needs_update(
    declared: ColumnSpec,
    live: LiveColumn,
    type_normalizer: TypeNormalizer = normalize_type,
) -> List[str]:
    """Reasons a live column differs from its declaration (empty if it matches).

    The default is only compared when the declaration sets one.
    """
    reasons = []

    declared_type = type_normalizer(declared.type)
    live_type = type_normalizer(live.type)
    if declared_type != live_type:
        reasons.append(f"type {live_type} -> {declared_type}")

    declared_nullable = "YES" if declared.is_nullable else "NO"
    if declared_nullable != live.nullable:
        reasons.append(f"nullable {live.nullable} -> {declared_nullable}")

    if declared.has_default:
        declared_default = normalize_default(declared.default)
        live_default = normalize_default(live.default)
        if declared_default != live_default:
            reasons.append(f"default {live_default!r} -> {declared_default!r}")

    return reasons


def diff_schema(
    declaration: SchemaDeclaration,
    live: LiveStructure,
    type_normalizer: TypeNormalizer = normalize_type,
) -> ChangeSet:
    """Compute the change-set that converges ``live`` toward ``declaration``."""
    primary_key = declaration.primary_key
    change_set = ChangeSet(
        table_name=declaration.table_name,
        primary_key=primary_key.name if primary_key else None,
    )

    live_columns = live.column_map()
    for column in declaration.columns:
        live_column = live_columns.get(column.name)
        if live_column is None:
            change_set.columns_to_add.append(column)
            change_set.drift[column.name] = ["missing"]
            continue

        reasons = column_needs_update(column, live_column, type_normalizer)
        if reasons:
            change_set.columns_to_modify.append(column)
            change_set.drift[column.name] = reasons

    live_indexes = live.index_groups()
    for index in declaration.indexes:
        if index.name == "PRIMARY":
            continue
        live_index = live_indexes.get(index.name)
        if live_index is None:
            change_set.indexes_to_add.append(index)
            change_set.drift[index.name] = ["missing"]
        elif set(live_index) != set(index.columns):
            change_set.indexes_to_add.append(index)
            change_set.drift[index.name] = [
                f"columns {', '.join(live_index)} -> {', '.join(index.columns)}"
            ]

    if change_set.has_changes:
        logger.debug(f"Drift in {declaration.table_name}: {change_set.drift}")

    return change_set
