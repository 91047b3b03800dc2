"""
Start-up boundary for tablesmith.

``initialize_tables`` is what an application calls before it starts serving
requests: it opens a pool, makes sure the database exists, reconciles every
declared table in order and closes the pool again.
"""

import importlib
import logging
from typing import Dict, List, Optional, Sequence

from .config import ReconciliationSettings, TablesmithConfig
from .database.connection import ConnectionConfig
from .database.factory import create_pool, ensure_database
from .exceptions import ConfigurationError
from .schema.declaration import SchemaDeclaration
from .schema.dialects import Dialect, MySQLDialect, PostgresDialect
from .schema.executor import ExecutionMode
from .schema.reconciler import ReconciliationResult, SchemaReconciler


logger = logging.getLogger(__name__)


def load_catalog(path: str) -> List[SchemaDeclaration]:
    """Import a catalog module and return its declarations()."""
    try:
        module = importlib.import_module(path)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import catalog '{path}': {e}") from e

    factory = getattr(module, "declarations", None)
    if not callable(factory):
        raise ConfigurationError(f"Catalog '{path}' does not define declarations()")

    return list(factory())


def build_dialect(
    connection: ConnectionConfig,
    settings: Optional[ReconciliationSettings] = None,
) -> Dialect:
    """Dialect matching the configured engine."""
    settings = settings or ReconciliationSettings()
    if connection.dialect == "mysql":
        return MySQLDialect(table_options=settings.table_options)
    return PostgresDialect(schema=connection.schema_name)


async def initialize_tables(
    config: TablesmithConfig,
    declarations: Optional[Sequence[SchemaDeclaration]] = None,
    log: Optional[logging.Logger] = None,
) -> Dict[str, ReconciliationResult]:
    """
    Create or reconcile every declared table.

    Args:
        config: tablesmith configuration
        declarations: Declarations to reconcile (defaults to the configured catalog)
        log: Logger for reconciliation output

    Returns:
        Reconciliation results keyed by table name

    Raises:
        TableCreationError: If a missing table cannot be created
        SchemaError: If the catalog cannot be read
        DatabaseConnectionError: If the database is unreachable
    """
    if declarations is None:
        declarations = load_catalog(config.catalog)

    connection = config.database.to_connection_config()
    if config.database.create_database and not config.dry_run:
        await ensure_database(connection)

    pool = create_pool(connection)
    await pool.initialize()

    try:
        reconciler = SchemaReconciler(
            pool,
            build_dialect(connection, config.reconciliation),
            ExecutionMode(config.reconciliation.mode),
            log,
        )
        logger.info(f"Reconciling {len(declarations)} tables on {connection.display_name}")
        return await reconciler.reconcile_all(declarations)
    finally:
        await pool.close()
