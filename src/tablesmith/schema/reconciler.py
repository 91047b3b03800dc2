"""
Schema reconciliation core logic for tablesmith.

Brings each declared table into line with its declaration: create it when it
is missing, otherwise diff the live structure and run the generated DDL.
Entities are processed one at a time in declaration order so that parent
tables exist before the foreign keys that point at them.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..database.introspection import LiveStructure, SchemaIntrospector
from ..exceptions import TableCreationError
from .declaration import SchemaDeclaration, check_dependency_order
from .dialects import Dialect
from .differ import ChangeSet, diff_schema
from .executor import ExecutionMode, StatementExecutor, StatementResult
from .generator import DDLGenerator, Statement


logger = logging.getLogger(__name__)


class ReconciliationStatus(str, Enum):
    """Outcome of reconciling one table."""

    UNCHANGED = "unchanged"
    CREATED = "created"
    UPDATED = "updated"
    PARTIAL = "partial"
    PLANNED = "planned"


@dataclass
class ReconciliationResult:
    """Result of reconciling one table."""

    table: str
    status: ReconciliationStatus
    created: bool = False
    change_set: Optional[ChangeSet] = None
    statements: List[StatementResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    execution_time_ms: float = 0.0

    @property
    def executed_statements(self) -> int:
        return sum(1 for s in self.statements if s.executed)

    @property
    def ignored_statements(self) -> int:
        return sum(1 for s in self.statements if s.ignored)

    @property
    def failed_statements(self) -> int:
        return sum(1 for s in self.statements if s.failed)


class SchemaReconciler:
    """
    Core schema reconciliation engine for tablesmith.

    Coordinates introspection, differencing, DDL generation and statement
    execution for each declared table.
    """

    def __init__(
        self,
        pool: Any,
        dialect: Dialect,
        mode: ExecutionMode = ExecutionMode.APPLY,
        log: Optional[logging.Logger] = None,
    ):
        self.pool = pool
        self.dialect = dialect
        self.mode = ExecutionMode(mode)
        self.logger = log or logger

        self.introspector = SchemaIntrospector(pool, dialect)
        self.generator = DDLGenerator(dialect)
        self.executor = StatementExecutor(pool, dialect, self.mode, self.logger)

    @property
    def dry_run(self) -> bool:
        return self.mode == ExecutionMode.DRY_RUN

    def diff(self, declaration: SchemaDeclaration, live: LiveStructure) -> ChangeSet:
        return diff_schema(declaration, live, self.dialect.normalize_type)

    async def detect_drift(self, declaration: SchemaDeclaration) -> Optional[ChangeSet]:
        """Change-set for a table, or None when the table does not exist."""
        live = await self.introspector.introspect(declaration.table_name)
        if not live.exists:
            return None
        return self.diff(declaration, live)

    async def plan(self, declaration: SchemaDeclaration) -> List[Statement]:
        """Statements a pass would run for this table, without running them."""
        live = await self.introspector.introspect(declaration.table_name)
        if not live.exists:
            return [self.generator.create_table(declaration)]
        return self.generator.generate(self.diff(declaration, live))

    async def ensure_table(self, declaration: SchemaDeclaration) -> ReconciliationResult:
        """
        Create or reconcile a single table.

        Args:
            declaration: Desired shape of the table

        Returns:
            ReconciliationResult describing what was done

        Raises:
            TableCreationError: If the table is missing and cannot be created
            SchemaError: If the live structure cannot be read
        """
        start_time = asyncio.get_event_loop().time()
        table = declaration.table_name
        result = ReconciliationResult(table=table, status=ReconciliationStatus.UNCHANGED)

        live = await self.introspector.introspect(table)

        if not live.exists:
            create = self.generator.create_table(declaration)

            if self.dry_run:
                self.logger.info(f"DRY RUN: table {table} does not exist, would create it")
                result.statements.append(await self.executor.execute(create))
                result.status = ReconciliationStatus.PLANNED
                result.execution_time_ms = self._elapsed_ms(start_time)
                return result

            live, result.created = await self._create_table(declaration, create)

        change_set = self.diff(declaration, live)
        result.change_set = change_set

        if change_set.has_changes:
            self.logger.info(f"Schema drift in {table}: {change_set.summary()}")
            for name, reasons in change_set.drift.items():
                self.logger.info(f"  {name}: {'; '.join(reasons)}")

        statements = self.generator.generate(change_set)
        result.statements.extend(await self.executor.execute_batch(statements))

        failed = [s for s in result.statements if s.failed]
        result.errors.extend(f"{s.statement.sql}: {s.error}" for s in failed)

        if failed:
            result.status = ReconciliationStatus.PARTIAL
        elif result.created:
            result.status = ReconciliationStatus.CREATED
        elif statements and self.dry_run:
            result.status = ReconciliationStatus.PLANNED
        elif statements:
            result.status = ReconciliationStatus.UPDATED

        result.execution_time_ms = self._elapsed_ms(start_time)

        if failed:
            self.logger.warning(
                f"Table {table} partially reconciled: {len(failed)} statement(s) failed"
            )
        elif result.status == ReconciliationStatus.UNCHANGED:
            self.logger.info(f"Table {table} is up to date")
        else:
            self.logger.info(f"Table {table} {result.status.value}")

        return result

    async def _create_table(
        self, declaration: SchemaDeclaration, create: Statement
    ) -> Tuple[LiveStructure, bool]:
        """Create a missing table; the flag is False when another instance created it."""
        table = declaration.table_name
        self.logger.info(f"Table {table} does not exist, creating it")

        try:
            await self.executor.run(create)
        except Exception as e:
            if not self.dialect.is_duplicate_table_error(e):
                self.logger.error(f"Failed to create table {table}: {e}")
                raise TableCreationError(table, create.sql, e) from e

            # Another instance created it first
            self.logger.warning(f"Table {table} was created concurrently: {e}")
            live = await self.introspector.introspect(table)
            if not live.exists:
                raise TableCreationError(table, create.sql, e) from e
            return live, False

        live = await self.introspector.introspect(table)
        return live, live.exists

    async def reconcile_all(
        self, declarations: Sequence[SchemaDeclaration]
    ) -> Dict[str, ReconciliationResult]:
        """
        Reconcile every table, parents first.

        ALTER failures are reported in the results; a failed table creation
        or an unreadable catalog propagates and stops the pass.
        """
        check_dependency_order(declarations)

        results: Dict[str, ReconciliationResult] = {}
        for declaration in declarations:
            results[declaration.table_name] = await self.ensure_table(declaration)

        summary = self.get_reconciliation_summary(results)
        self.logger.info(
            f"Reconciled {summary['total_tables']} tables: "
            f"{summary['created']} created, {summary['updated']} updated, "
            f"{summary['partial']} partial, {summary['unchanged']} unchanged"
        )
        return results

    @staticmethod
    def get_reconciliation_summary(
        results: Dict[str, ReconciliationResult]
    ) -> Dict[str, Any]:
        """Get summary of reconciliation results."""
        counts = {status: 0 for status in ReconciliationStatus}
        for result in results.values():
            counts[result.status] += 1

        return {
            "total_tables": len(results),
            "unchanged": counts[ReconciliationStatus.UNCHANGED],
            "created": counts[ReconciliationStatus.CREATED],
            "updated": counts[ReconciliationStatus.UPDATED],
            "partial": counts[ReconciliationStatus.PARTIAL],
            "planned": counts[ReconciliationStatus.PLANNED],
            "total_statements": sum(len(r.statements) for r in results.values()),
            "executed_statements": sum(r.executed_statements for r in results.values()),
            "failed_statements": sum(r.failed_statements for r in results.values()),
            "partial_tables": [
                name for name, r in results.items()
                if r.status == ReconciliationStatus.PARTIAL
            ],
        }

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return (asyncio.get_event_loop().time() - start_time) * 1000
