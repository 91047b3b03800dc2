"""
Statement execution for tablesmith.

Runs generated DDL one statement at a time. A failing ALTER never stops the
batch: failures the generator marked as expected are swallowed, anything
else is logged with the statement and the driver error.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .dialects import Dialect
from .generator import Statement


logger = logging.getLogger(__name__)


class ExecutionMode(str, Enum):
    """Statement execution modes."""

    APPLY = "apply"      # Run statements against the database
    DRY_RUN = "dry_run"  # Log statements but don't execute


@dataclass
class StatementResult:
    """Outcome of running one statement."""

    statement: Statement
    executed: bool = False
    ignored: bool = False
    error: Optional[str] = None
    execution_time_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return self.error is not None and not self.ignored


class StatementExecutor:
    """Sequential, best-effort DDL runner."""

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

    @property
    def dry_run(self) -> bool:
        return self.mode == ExecutionMode.DRY_RUN

    async def run(self, statement: Statement) -> None:
        """Execute a statement and let driver errors propagate."""
        self.logger.info(f"Executing: {statement.sql}")
        await self.pool.execute(statement.sql)

    async def execute(self, statement: Statement) -> StatementResult:
        """Execute a statement, recording instead of raising on failure."""
        result = StatementResult(statement=statement)

        if self.dry_run:
            self.logger.info(f"DRY RUN: {statement.sql}")
            return result

        start_time = asyncio.get_event_loop().time()
        try:
            await self.run(statement)
            result.executed = True

        except Exception as e:
            result.error = str(e)
            if statement.ignore_failure and self.dialect.is_missing_object_error(e):
                result.ignored = True
                self.logger.debug(f"Ignored expected failure of '{statement.sql}': {e}")
            else:
                self.logger.error(f"Statement failed: {statement.sql}")
                self.logger.error(f"Error: {e}")

        finally:
            result.execution_time_ms = (asyncio.get_event_loop().time() - start_time) * 1000

        return result

    async def execute_batch(self, statements: List[Statement]) -> List[StatementResult]:
        """Execute statements in order; a failure never stops the batch."""
        results = []
        for statement in statements:
            results.append(await self.execute(statement))
        return results

    @staticmethod
    def get_execution_summary(results: List[StatementResult]) -> Dict[str, Any]:
        total = len(results)
        executed = sum(1 for r in results if r.executed)
        ignored = sum(1 for r in results if r.ignored)
        failed = [r for r in results if r.failed]

        return {
            "total_statements": total,
            "executed": executed,
            "ignored": ignored,
            "failed": len(failed),
            "total_execution_time_ms": sum(r.execution_time_ms for r in results),
            "failed_statements": [
                {"sql": r.statement.sql, "error": r.error} for r in failed
            ],
        }
