"""
CLI utility helpers — migration loading, runner construction and output.
"""

from __future__ import annotations

import importlib
import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from schemaspine.core.errors import ConfigError, MigrateError
from schemaspine.core.logging import configure_logging
from schemaspine.core.migrations import Migration, MigrationResult, MigrationRunner, MigrationStatus
from schemaspine.core.settings import MigrateSettings, create_adapter

console = Console()
err_console = Console(stderr=True)

DEFAULT_ATTRIBUTE = "MIGRATIONS"


# ── Migration loading ────────────────────────────────────────────────────


def load_migrations(target: str) -> list[Migration]:
    """Import ``module[:attr]`` and return its migrations.

    The attribute (``MIGRATIONS`` by default) may be a sequence of
    ``Migration`` instances or subclasses, or a callable returning one.
    """
    module_name, _, attribute = target.partition(":")
    attribute = attribute or DEFAULT_ATTRIBUTE
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import migrations module {module_name!r}: {e}", cause=e) from e
    try:
        value = getattr(module, attribute)
    except AttributeError:
        raise ConfigError(f"Module {module_name!r} has no attribute {attribute!r}") from None

    if callable(value) and not isinstance(value, (list, tuple)):
        value = value()

    migrations = []
    for item in value:
        if isinstance(item, type) and issubclass(item, Migration):
            item = item()
        if not isinstance(item, Migration):
            raise ConfigError(f"{module_name}:{attribute} contains a non-migration: {item!r}")
        migrations.append(item)
    return migrations


def make_runner(migrations: str, **connection: Any) -> MigrationRunner:
    """Configure logging from settings and build a runner for the CLI."""
    settings = MigrateSettings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    adapter = create_adapter(settings, **connection)
    return MigrationRunner(adapter, load_migrations(migrations))


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: Exception) -> NoReturn:
    """Print an error and exit with status 1."""
    if isinstance(error, MigrateError):
        err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {error}")
    raise typer.Exit(code=1)


def output_status(statuses: list[MigrationStatus], *, as_json: bool = False) -> None:
    if as_json:
        console.print_json(json.dumps([s.to_dict() for s in statuses], default=str))
        return
    if not statuses:
        console.print("[dim]No migrations.[/dim]")
        return

    table = Table(title="Migration Status", show_lines=False, pad_edge=False)
    for col in ("Status", "Version", "Name", "Started", "Finished"):
        table.add_column(col, overflow="fold")
    for status in statuses:
        if status.missing:
            label = "[yellow]missing[/yellow]"
        elif status.applied:
            label = "[green]up[/green]"
        else:
            label = "[red]down[/red]"
        if status.breakpoint:
            label += " [magenta]BP[/magenta]"
        table.add_row(
            label,
            str(status.version),
            status.name,
            "" if status.start_time is None else str(status.start_time),
            "" if status.end_time is None else str(status.end_time),
        )
    console.print(table)


def output_result(result: MigrationResult, *, title: str) -> None:
    """Render a run result; exit 1 when any migration failed."""
    console.print(f"[bold]{title}[/bold]")
    for version in result.applied:
        console.print(f"  [green]applied[/green]  {version}")
    for version in result.reverted:
        console.print(f"  [cyan]reverted[/cyan] {version}")
    for version in result.skipped:
        console.print(f"  [dim]skipped[/dim]  {version}")
    if not (result.applied or result.reverted or result.errors):
        console.print("[dim]Nothing to do.[/dim]")
    if result.success:
        return
    for version, error in result.errors.items():
        err_console.print(f"[bold red]Failed[/bold red] {version}: {error.message}")
    if result.partially_applied:
        err_console.print(
            "[yellow]The database does not support transactional DDL; "
            "the failed migration may be partially applied.[/yellow]"
        )
    raise typer.Exit(code=1)
