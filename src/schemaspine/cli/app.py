"""
Root Typer application for the schema-spine CLI.

Connection options live on the root callback and override
``SCHEMASPINE_*`` settings; each command names its migrations with
``--migrations module[:attr]``::

    schemaspine --adapter sqlite --path app.db status -m app.migrations
    schemaspine migrate -m app.migrations --target 20240101120000
    schemaspine rollback -m app.migrations --target 0 --force
"""

from __future__ import annotations

import typer
from typer import Typer

from schemaspine.cli.utils import fail, make_runner, output_result, output_status
from schemaspine.core.errors import MigrateError
from schemaspine.core.logging import configure_logging
from schemaspine.core.settings import MigrateSettings, create_adapter

app = Typer(
    name="schemaspine",
    help="schema-spine — versioned schema migrations for SQLite, PostgreSQL and MySQL.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

MIGRATIONS_HELP = "Migrations as module[:attr] (attr defaults to MIGRATIONS)."


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("schema-spine")
        except PackageNotFoundError:
            from schemaspine import __version__ as v
        typer.echo(f"schema-spine {v}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    adapter: str | None = typer.Option(None, "--adapter", "-a", help="sqlite, postgresql or mysql."),
    path: str | None = typer.Option(None, "--path", help="SQLite database file."),
    host: str | None = typer.Option(None, "--host", help="Database server host."),
    port: int | None = typer.Option(None, "--port", help="Database server port."),
    database: str | None = typer.Option(None, "--database", "-d", help="Database name."),
    username: str | None = typer.Option(None, "--username", "-u", help="Login role."),
    password: str | None = typer.Option(None, "--password", help="Login password."),
    version_table: str | None = typer.Option(None, "--version-table", help="Version store table."),
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """schema-spine CLI — apply, revert and inspect schema migrations."""
    ctx.obj = {
        "adapter": adapter,
        "path": path,
        "host": host,
        "port": port,
        "database": database,
        "username": username,
        "password": password,
        "version_table": version_table,
    }


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def status(
    ctx: typer.Context,
    migrations: str = typer.Option(..., "--migrations", "-m", help=MIGRATIONS_HELP),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show applied, pending and missing migrations."""
    try:
        runner = make_runner(migrations, **ctx.obj)
        with runner.adapter:
            statuses = runner.status()
    except MigrateError as e:
        fail(e)
    output_status(statuses, as_json=json_out)


@app.command()
def migrate(
    ctx: typer.Context,
    migrations: str = typer.Option(..., "--migrations", "-m", help=MIGRATIONS_HELP),
    target: int | None = typer.Option(None, "--target", "-t", help="Migrate up to this version."),
) -> None:
    """Apply pending migrations, oldest first."""
    try:
        runner = make_runner(migrations, **ctx.obj)
        with runner.adapter:
            result = runner.migrate(target)
    except MigrateError as e:
        fail(e)
    output_result(result, title="Migrate")


@app.command()
def rollback(
    ctx: typer.Context,
    migrations: str = typer.Option(..., "--migrations", "-m", help=MIGRATIONS_HELP),
    target: int | None = typer.Option(
        None, "--target", "-t", help="Revert every version above this one (0 reverts all)."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore breakpoints."),
) -> None:
    """Revert the latest migration, or every migration above --target."""
    try:
        runner = make_runner(migrations, **ctx.obj)
        with runner.adapter:
            result = runner.rollback(target, force=force)
    except MigrateError as e:
        fail(e)
    output_result(result, title="Rollback")


@app.command()
def breakpoint(
    ctx: typer.Context,
    version: int | None = typer.Argument(None, help="Version to flag."),
    unset: bool = typer.Option(False, "--unset", help="Clear the breakpoint instead."),
    reset: bool = typer.Option(False, "--reset", help="Clear every breakpoint."),
) -> None:
    """Set or clear rollback breakpoints."""
    if version is None and not reset:
        fail(typer.BadParameter("Give a VERSION or --reset"))
    try:
        settings = MigrateSettings()
        configure_logging(level=settings.log_level, json_format=settings.log_json)
        with create_adapter(settings, **ctx.obj) as adapter:
            if reset:
                cleared = adapter.reset_all_breakpoints()
                typer.echo(f"Cleared {cleared} breakpoint(s)")
                return
            adapter.set_breakpoint(version, enabled=not unset)
    except MigrateError as e:
        fail(e)
    typer.echo(f"Breakpoint {'cleared' if unset else 'set'} on {version}")


if __name__ == "__main__":
    app()
