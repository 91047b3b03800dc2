"""
Command-line interface for tablesmith.
"""

import asyncio
import sys
import time
from functools import wraps
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import DatabaseSettings, TablesmithConfig
from .database.factory import create_pool
from .exceptions import ConfigurationError, TablesmithError
from .log import setup_logging
from .schema.declaration import SchemaDeclaration, check_dependency_order
from .schema.differ import ChangeSet
from .schema.executor import ExecutionMode
from .schema.reconciler import ReconciliationResult, ReconciliationStatus, SchemaReconciler
from .startup import build_dialect, initialize_tables, load_catalog


console = Console()

_STATUS_STYLES = {
    ReconciliationStatus.UNCHANGED: "dim",
    ReconciliationStatus.CREATED: "green",
    ReconciliationStatus.UPDATED: "cyan",
    ReconciliationStatus.PARTIAL: "yellow",
    ReconciliationStatus.PLANNED: "magenta",
}


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TablesmithError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
            if "--debug" in sys.argv:
                console.print_exception()
            sys.exit(1)
    return wrapper


config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)


@click.group()
@click.version_option(__version__)
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def main(ctx, debug):
    """tablesmith: declarative schema reconciliation for MySQL and PostgreSQL."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="tablesmith.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new tablesmith configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    _create_default_config().to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Set DB_HOST, DB_NAME, DB_USER and DB_PASSWORD (or edit the file)")
    console.print(f"2. Run: tablesmith validate-config -c {output}")
    console.print(f"3. Run: tablesmith plan -c {output}")
    console.print(f"4. Run: tablesmith reconcile -c {output}")


@main.command()
@config_option
@handle_errors
def validate_config(config: str):
    """Validate configuration file and catalog."""
    console.print(f"Validating configuration: {config}")

    try:
        settings = TablesmithConfig.from_yaml(config)
        settings.database.to_connection_config()
        declarations = load_catalog(settings.catalog)
        _check_order(declarations)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {escape(str(e))}")
        sys.exit(1)

    console.print("[green]✓[/green] Configuration is valid")
    _display_config_summary(settings, declarations)


@main.command()
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option("--catalog", help="Catalog import path (overrides the configuration)")
@handle_errors
def show(config: Optional[str], catalog: Optional[str]):
    """Show declared tables in reconciliation order."""
    if catalog is None:
        catalog = TablesmithConfig.from_yaml(config).catalog if config else "tablesmith.entities"

    declarations = load_catalog(catalog)
    _check_order(declarations)

    table = Table(title=f"Declared tables ({catalog})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Table", style="cyan")
    table.add_column("Columns", justify="right")
    table.add_column("Indexes", justify="right")
    table.add_column("References", style="yellow")

    for position, declaration in enumerate(declarations, start=1):
        table.add_row(
            str(position),
            declaration.table_name,
            str(len(declaration.columns)),
            str(len(declaration.indexes)),
            ", ".join(declaration.referenced_tables) or "-",
        )

    console.print(table)


@main.command()
@config_option
@click.pass_context
@handle_errors
def status(ctx, config: str):
    """Show schema drift per table (read-only)."""
    settings = _load(config, ctx.obj.get("debug", False))
    declarations = load_catalog(settings.catalog)

    async def run_status() -> List[Tuple[SchemaDeclaration, Optional[ChangeSet]]]:
        async with _DryRunSession(settings) as reconciler:
            return [
                (declaration, await reconciler.detect_drift(declaration))
                for declaration in declarations
            ]

    rows = asyncio.run(run_status())

    table = Table(title="Schema status")
    table.add_column("Table", style="cyan")
    table.add_column("State")
    table.add_column("Drift", style="yellow")

    for declaration, change_set in rows:
        if change_set is None:
            table.add_row(declaration.table_name, "[red]missing[/red]", "table will be created")
        elif not change_set.has_changes:
            table.add_row(declaration.table_name, "[green]in sync[/green]", "")
        else:
            drift = "\n".join(
                f"{name}: {'; '.join(reasons)}" for name, reasons in change_set.drift.items()
            )
            table.add_row(declaration.table_name, "[yellow]drifted[/yellow]", drift)

    console.print(table)


@main.command()
@config_option
@click.option("--table", "tables", multiple=True, help="Only plan these tables")
@click.pass_context
@handle_errors
def plan(ctx, config: str, tables: Sequence[str]):
    """Print the statements a reconciliation pass would run."""
    settings = _load(config, ctx.obj.get("debug", False))
    declarations = _select(load_catalog(settings.catalog), tables)

    async def run_plan():
        async with _DryRunSession(settings) as reconciler:
            return [
                (declaration.table_name, await reconciler.plan(declaration))
                for declaration in declarations
            ]

    total = 0
    for table_name, statements in asyncio.run(run_plan()):
        console.print(f"\n[bold cyan]{table_name}[/bold cyan]")
        if not statements:
            console.print("  [dim]up to date[/dim]")
        for statement in statements:
            marker = " [dim](may fail)[/dim]" if statement.ignore_failure else ""
            console.print(f"  {escape(statement.sql)};{marker}", highlight=False)
        total += len(statements)

    console.print(f"\n[bold]{total}[/bold] statement(s) planned")


@main.command()
@config_option
@click.option("--dry-run", is_flag=True, help="Log statements without executing them")
@click.option("--table", "tables", multiple=True, help="Only reconcile these tables")
@click.pass_context
@handle_errors
def reconcile(ctx, config: str, dry_run: bool, tables: Sequence[str]):
    """Create or reconcile every declared table."""
    console.print("[blue]Schema reconciliation[/blue]")

    settings = _load(config, ctx.obj.get("debug", False))
    if dry_run:
        settings.reconciliation.mode = "dry_run"
        console.print("[yellow]Dry run mode - no changes will be made[/yellow]")

    declarations = _select(load_catalog(settings.catalog), tables)
    results = asyncio.run(initialize_tables(settings, declarations))

    _display_results(results)
    summary = SchemaReconciler.get_reconciliation_summary(results)
    if summary["partial"]:
        console.print(
            f"[yellow]⚠[/yellow] {summary['partial']} table(s) partially reconciled: "
            f"{', '.join(summary['partial_tables'])}"
        )
    else:
        console.print("[green]✓[/green] Reconciliation complete")


@main.command()
@config_option
@click.pass_context
@handle_errors
def test_connection(ctx, config: str):
    """Test the database connection."""
    console.print("[blue]Testing connection...[/blue]")
    settings = _load(config, ctx.obj.get("debug", False))
    connection = settings.database.to_connection_config()

    async def run_connection_test() -> Dict[str, object]:
        pool = create_pool(connection)
        start_time = time.time()
        await pool.initialize()
        try:
            info = await pool.server_info()
            info["response_time_ms"] = (time.time() - start_time) * 1000
            info["pool"] = pool.get_stats()
            return info
        finally:
            await pool.close()

    try:
        info = asyncio.run(run_connection_test())
    except TablesmithError as e:
        console.print(f"  ❌ [red]Connection failed: {escape(str(e))}[/red]")
        sys.exit(1)

    console.print(
        f"  ✅ [green]Connected to {connection.display_name}[/green] "
        f"({info['response_time_ms']:.1f}ms)"
    )
    console.print(f"     Server version: {info['version']}")
    console.print(f"     User: {info['user']}")
    console.print(f"     Pool size: {info['pool']['size']}")


def _load(path: str, debug: bool) -> TablesmithConfig:
    settings = TablesmithConfig.from_yaml(path)
    setup_logging(settings.logging, debug=debug or settings.debug, console=Console(stderr=True))
    return settings


def _check_order(declarations: Sequence[SchemaDeclaration]) -> None:
    try:
        check_dependency_order(declarations)
    except TablesmithError as e:
        raise ConfigurationError(str(e)) from e


def _select(declarations: List[SchemaDeclaration], tables: Sequence[str]) -> List[SchemaDeclaration]:
    if not tables:
        return declarations
    known = {declaration.table_name for declaration in declarations}
    unknown = [name for name in tables if name not in known]
    if unknown:
        raise ConfigurationError(f"Unknown table(s): {', '.join(unknown)}")
    return [declaration for declaration in declarations if declaration.table_name in tables]


class _DryRunSession:
    """Async context manager: an initialized pool wrapped in a dry-run reconciler."""

    def __init__(self, settings: TablesmithConfig):
        self.connection = settings.database.to_connection_config()
        self.dialect = build_dialect(self.connection, settings.reconciliation)
        self.pool = create_pool(self.connection)

    async def __aenter__(self) -> SchemaReconciler:
        await self.pool.initialize()
        return SchemaReconciler(self.pool, self.dialect, ExecutionMode.DRY_RUN)

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.pool.close()


def _create_default_config() -> TablesmithConfig:
    """Create a default configuration with environment placeholders."""
    return TablesmithConfig(
        database=DatabaseSettings(
            dialect="mysql",
            host="${DB_HOST}",
            port=3306,
            database="${DB_NAME}",
            user="${DB_USER}",
            password="${DB_PASSWORD}",
        ),
    )


def _display_config_summary(settings: TablesmithConfig, declarations: Sequence[SchemaDeclaration]):
    """Display a summary of the configuration."""
    console.print("\n[blue]Configuration Summary[/blue]")

    connection = settings.database.to_connection_config()
    db_table = Table(title="Database")
    db_table.add_column("Dialect", style="cyan")
    db_table.add_column("Host", style="magenta")
    db_table.add_column("Database", style="green")
    db_table.add_column("Mode", style="yellow")
    db_table.add_row(
        connection.dialect,
        f"{connection.host}:{connection.port}",
        connection.database,
        settings.reconciliation.mode,
    )
    console.print(db_table)

    console.print(f"Catalog: [cyan]{settings.catalog}[/cyan] ({len(declarations)} tables)")


def _display_results(results: Dict[str, ReconciliationResult]):
    table = Table(title="Reconciliation results")
    table.add_column("Table", style="cyan")
    table.add_column("Status")
    table.add_column("Executed", justify="right")
    table.add_column("Ignored", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Time (ms)", justify="right")

    for name, result in results.items():
        style = _STATUS_STYLES[result.status]
        table.add_row(
            name,
            f"[{style}]{result.status.value}[/{style}]",
            str(result.executed_statements),
            str(result.ignored_statements),
            str(result.failed_statements),
            f"{result.execution_time_ms:.1f}",
        )

    console.print(table)


if __name__ == "__main__":
    main()
