from __future__ import annotations

import sys
from pathlib import Path  # noqa: TC003
from typing import Annotated

import typer

from mssql_tui.cli.commands._shared import get_client, output_result
from mssql_tui.cli.output import export_result
from mssql_tui.core.exceptions import InputError
from mssql_tui.core.executor import execute_batch
from mssql_tui.core.exit_codes import ExitCode
from mssql_tui.core.history import QueryHistory
from mssql_tui.core.query_source import resolve_query_source, split_batches


def query_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to execute"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Execute inline SQL query"),
    ] = None,
    timeout: Annotated[
        int | None,
        typer.Option("--timeout", "-t", help="Query timeout in seconds (0 = none)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Export the last result to a file (.csv, .json, .txt)"),
    ] = None,
    no_history: Annotated[
        bool,
        typer.Option("--no-history", help="Do not record the query in history"),
    ] = False,
) -> None:
    """Execute SQL from file, inline (-e), or stdin.

    Scripts are split into batches on GO lines and run in order,
    stopping at the first failing batch.
    """
    try:
        is_tty = sys.stdin.isatty()
    except (ValueError, AttributeError):
        is_tty = False
    if execute is None and file is None and is_tty:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        sql = resolve_query_source(inline=execute, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc

    batches = split_batches(sql)
    if not batches:
        typer.echo("No query provided.", err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR)

    with get_client(ctx, timeout=timeout) as client:
        results = execute_batch(client, batches)
        database = client.database
        max_entries = client.config.history_max_entries

    if not no_history:
        history = QueryHistory(max_entries=max_entries)
        for batch, result in zip(batches, results, strict=True):
            history.add(batch, int(result.execution_ms), result.row_count, database)

    for index, result in enumerate(results):
        if index:
            sys.stdout.write("\n")
        output_result(ctx, result)

    if output is not None:
        fmt = export_result(results[-1], output)
        typer.echo(f"Wrote {results[-1].row_count} row(s) to {output} ({fmt})", err=True)
