"""
Schema management package for tablesmith.

This package provides:
- Schema declarations (columns, indexes, foreign keys)
- Type/default normalization and SQL dialects
- Differencing, DDL generation and best-effort execution
- Per-table reconciliation and ordered reconciliation of all tables
"""

from .declaration import (
    UNSET,
    ColumnSpec,
    ForeignKeyReference,
    IndexKind,
    IndexSpec,
    SchemaDeclaration,
    check_dependency_order,
)
from .dialects import Dialect, MySQLDialect, PostgresDialect, get_dialect
from .normalizer import normalize_default, normalize_type
from .differ import ChangeSet, diff_schema
from .generator import DDLGenerator, Statement
from .executor import ExecutionMode, StatementExecutor, StatementResult
from .reconciler import ReconciliationResult, ReconciliationStatus, SchemaReconciler

__all__ = [
    "UNSET",
    "ColumnSpec",
    "ForeignKeyReference",
    "IndexKind",
    "IndexSpec",
    "SchemaDeclaration",
    "check_dependency_order",
    "Dialect",
    "MySQLDialect",
    "PostgresDialect",
    "get_dialect",
    "normalize_default",
    "normalize_type",
    "ChangeSet",
    "diff_schema",
    "DDLGenerator",
    "Statement",
    "ExecutionMode",
    "StatementExecutor",
    "StatementResult",
    "SchemaReconciler",
    "ReconciliationResult",
    "ReconciliationStatus",
]
