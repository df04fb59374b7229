"""Query history CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

import typer

from mssql_tui.cli.commands._shared import output_result, resolve_ctx_config, text_result
from mssql_tui.cli.helpers import format_duration
from mssql_tui.core.history import QueryHistory

if TYPE_CHECKING:
    from mssql_tui.core.models import HistoryEntry

history_app = typer.Typer(help="Query history commands")


@history_app.callback(invoke_without_command=True)
def history_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _open_history(ctx: typer.Context) -> QueryHistory:
    resolved = resolve_ctx_config(ctx)
    return QueryHistory(max_entries=resolved.history_max_entries)


def _output_entries(ctx: typer.Context, entries: list[HistoryEntry]) -> None:
    rows = [
        (
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            entry.database,
            "" if entry.row_count is None else entry.row_count,
            format_duration(entry.execution_time_ms),
            " ".join(entry.query.split()),
        )
        for entry in entries
    ]
    output_result(ctx, text_result(["timestamp", "database", "rows", "time", "query"], rows))


@history_app.command("list")
def history_list(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Show the N most recent entries"),
    ] = 20,
) -> None:
    """Show recent queries, newest last."""
    entries = _open_history(ctx).entries()
    _output_entries(ctx, entries[-limit:] if limit > 0 else entries)


@history_app.command("search")
def history_search(
    ctx: typer.Context,
    term: Annotated[str, typer.Argument(help="Case-insensitive substring to match")],
) -> None:
    """Find past queries containing TERM."""
    _output_entries(ctx, _open_history(ctx).search(term))


@history_app.command("clear")
def history_clear(
    ctx: typer.Context,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Delete all history entries."""
    history = _open_history(ctx)
    if not yes:
        typer.confirm(f"Delete {len(history)} history entries?", abort=True)
    history.clear()
    typer.echo("History cleared.", err=True)
