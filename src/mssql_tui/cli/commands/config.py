"""Configuration CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from mssql_tui.cli.commands._shared import resolve_ctx_config
from mssql_tui.core.config import DEFAULT_CONFIG_PATH
from mssql_tui.core.history import default_history_path

if TYPE_CHECKING:
    from pathlib import Path

config_app = typer.Typer(help="Configuration commands")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved configuration with source attribution."""
    resolved = resolve_ctx_config(ctx)
    sources = resolved.sources

    typer.echo("Connection Settings (resolved):")
    connection_fields = [
        ("host", resolved.host),
        ("port", str(resolved.port)),
        ("database", resolved.database),
        ("user", resolved.user),
        ("password", "***" if resolved.password else "not set"),
        ("login_timeout", f"{resolved.login_timeout}s"),
        ("tds_version", resolved.tds_version or "driver default"),
    ]
    for field_name, value in connection_fields:
        typer.echo(f"  {field_name}: {value} ({sources.get(field_name, 'default')})")

    typer.echo("")
    typer.echo("General:")
    general_fields = [
        ("query_timeout", f"{resolved.query_timeout}s" if resolved.query_timeout else "none"),
        ("default_format", resolved.default_format),
        ("history_max_entries", str(resolved.history_max_entries)),
        ("tick_ms", str(resolved.tick_ms)),
    ]
    for field_name, value in general_fields:
        typer.echo(f"  {field_name}: {value} ({sources.get(field_name, 'default')})")

    typer.echo("")
    typer.echo(f"Active Profile: {resolved.active_profile or 'none'}")


@config_app.command("path")
def config_path(ctx: typer.Context) -> None:
    """Show where the config file and query history live."""
    config_file: Path | None = ctx.ensure_object(dict).get("config_file")
    typer.echo(f"config:  {config_file or DEFAULT_CONFIG_PATH}")
    typer.echo(f"history: {default_history_path()}")
