"""reverse-schema CLI - Main entry point."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from typing_extensions import Annotated

from .analysis.engine import EngineResult, ReverseEngineeringEngine
from .config import Settings, build_engine_config, settings
from .errors import ReverseSchemaError
from .events import CollectingEventSink, EventType, LoggingEventSink, MultiEventSink

app = typer.Typer(
    name="reverse-schema",
    help="Rebuild a typed schema model from a live database catalog",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


@dataclass
class CLIState:
    """Options shared by every command."""

    overrides: Dict[str, Any] = field(default_factory=dict)
    settings: Settings = field(default_factory=lambda: settings)


def _setup_logging(verbose: int, default_level: str) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, default_level.upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(error: ReverseSchemaError) -> None:
    err_console.print(f"[red]{error.kind.value}: {escape(error.message)}[/red]")
    errors = error.details.get("errors")
    if errors:
        for item in errors:
            err_console.print(f"  [red]{escape(str(item['field']))}: {escape(str(item['message']))}[/red]")
    raise typer.Exit(1)


def _engine(state: CLIState, events=None) -> ReverseEngineeringEngine:
    config = build_engine_config(state.settings, **state.overrides)
    return ReverseEngineeringEngine(config, events=events)


@app.callback()
def main(
    ctx: typer.Context,
    driver: Optional[str] = typer.Option(None, "--driver", help="Database dialect: mysql, postgresql, sqlite, duckdb (or DB_DRIVER env)"),
    host: Optional[str] = typer.Option(None, "--host", help="Database host (or DB_HOST env)"),
    port: Optional[int] = typer.Option(None, "--port", help="Database port (or DB_PORT env)"),
    database: Optional[str] = typer.Option(None, "--database", "-d", help="Database name, or file path for sqlite/duckdb (or DB_NAME env)"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Database user (or DB_USER env)"),
    password: Optional[str] = typer.Option(None, "--password", help="Database password (or DB_PASSWORD env)"),
    charset: Optional[str] = typer.Option(None, "--charset", help="Connection charset (or DB_CHARSET env)"),
    table: Annotated[Optional[List[str]], typer.Option(
        "--table", "-t",
        help="Table to process. Can be specified multiple times (default: all tables)."
    )] = None,
    exclude: Annotated[Optional[List[str]], typer.Option(
        "--exclude", "-x",
        help="Table to skip. Can be specified multiple times; wins over --table."
    )] = None,
    strategy: Optional[str] = typer.Option(None, "--strategy", help="Junction table strategy: auto, skip_simple, always_entity"),
    threshold: Optional[int] = typer.Option(None, "--threshold", help="Max metadata columns for a junction table to collapse under 'auto'"),
    pattern: Optional[str] = typer.Option(None, "--pattern", help="Join table naming pattern (default: %s_%s)"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log output (-v info, -vv debug)"),
):
    """
    reverse-schema - Rebuild a typed schema model from a live database catalog.

    Examples:

        reverse-schema --driver sqlite -d app.db inspect

        reverse-schema -d sakila -u root --password secret tables

        reverse-schema -d sakila -t film -t language -t film_actor -t actor inspect --json
    """
    _setup_logging(verbose, settings.log_level)

    overrides: Dict[str, Any] = {
        "db_driver": driver,
        "db_host": host,
        "db_port": port,
        "db_name": database,
        "db_user": user,
        "db_password": password,
        "db_charset": charset,
        "include_tables": ",".join(table) if table else None,
        "exclude_tables": ",".join(exclude) if exclude else None,
        "junction_strategy": strategy,
        "metadata_threshold": threshold,
        "junction_table_pattern": pattern,
    }
    ctx.obj = CLIState(overrides=overrides)


@app.command()
def config(ctx: typer.Context):
    """Show current configuration."""
    state: CLIState = ctx.obj
    try:
        engine_config = build_engine_config(state.settings, **state.overrides)
    except ReverseSchemaError as e:
        _fail(e)

    connection = engine_config.connection
    many_to_many = engine_config.many_to_many
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Driver: {connection.driver.value}")
    console.print(f"  Target: {escape(connection.describe())}")
    console.print(f"  Password configured: {'Yes' if connection.password else 'No'}")
    console.print(f"  Charset: {connection.charset}")
    console.print(f"  Include tables: {', '.join(engine_config.tables.include) or 'All'}")
    console.print(f"  Exclude tables: {', '.join(engine_config.tables.exclude) or 'None'}")
    console.print(f"  Junction strategy: {many_to_many.junction_strategy.value}")
    console.print(f"  Metadata threshold: {many_to_many.metadata_threshold}")
    console.print(f"  Join table pattern: {escape(many_to_many.junction_table_pattern)}")


@app.command()
def check(ctx: typer.Context):
    """Check the database connection."""
    try:
        engine = _engine(ctx.obj)
        engine.test_connection()
    except ReverseSchemaError as e:
        _fail(e)
    console.print(f"[green]Connected to {escape(engine.config.connection.describe())}[/green]")


@app.command()
def tables(ctx: typer.Context):
    """List the tables of the database."""
    try:
        engine = _engine(ctx.obj)
        names = engine.available_tables()
    except ReverseSchemaError as e:
        _fail(e)

    table = Table(title=f"Tables in {escape(engine.config.connection.dbname)}")
    table.add_column("Table", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)
    console.print(f"[dim]{len(names)} tables[/dim]")


def _print_result(result: EngineResult, collected: CollectingEventSink) -> None:
    model = result.model

    entities = Table(title="Entities")
    entities.add_column("Table", style="cyan")
    entities.add_column("Entity", style="green")
    entities.add_column("Columns", justify="right")
    entities.add_column("Primary key")
    for table in model.tables.values():
        entities.add_row(table.name, table.entity_name, str(len(table.columns)), ", ".join(table.primary_key))
    console.print(entities)

    if model.relationships:
        relationships = Table(title="Relationships")
        relationships.add_column("Kind", style="magenta")
        relationships.add_column("Owning side")
        relationships.add_column("Inverse side")
        relationships.add_column("Join table")
        for rel in model.relationships:
            relationships.add_row(
                rel.kind.value,
                f"{rel.owning_table}.{rel.owning_property}",
                f"{rel.inverse_table}.{rel.inverse_property}",
                rel.join_table.name if rel.join_table else "",
            )
        console.print(relationships)

    if model.enums:
        enums = Table(title="Enums")
        enums.add_column("Class", style="green")
        enums.add_column("Column")
        enums.add_column("Cases")
        for enum in model.enums:
            enums.add_row(enum.class_name, f"{enum.table}.{enum.column}", ", ".join(enum.case_names.values()))
        console.print(enums)

    notes = collected.of_type(EventType.TYPE_NORMALIZED)
    if notes:
        console.print("[bold]Type notes[/bold]")
        for event in notes:
            console.print(f"  [yellow]{event.table}.{event.column}: {escape(event.message)}[/yellow]")

    for warning in result.warnings:
        console.print(f"[yellow]Warning: {escape(warning.message)}[/yellow]")

    results = Table(title="Extraction results")
    results.add_column("Table", style="cyan")
    results.add_column("Status")
    results.add_column("Error")
    for name, table_result in result.table_results.items():
        if table_result.success:
            results.add_row(name, "[green]ok[/green]", "")
        else:
            results.add_row(name, "[red]failed[/red]", escape(table_result.error_message or ""))
    console.print(results)


@app.command()
def inspect(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print the schema model as JSON"),
):
    """Reverse engineer the database and show the resulting schema model."""
    collected = CollectingEventSink()
    try:
        engine = _engine(ctx.obj, events=MultiEventSink([LoggingEventSink(), collected]))
        result = engine.run()
    except ReverseSchemaError as e:
        _fail(e)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    _print_result(result, collected)
    if result.has_failures:
        console.print(f"[yellow]{len(result.failed_tables)} table(s) could not be read[/yellow]")


if __name__ == "__main__":
    app()
