"""Interactive mode."""

from __future__ import annotations

from typing import Annotated

import structlog
import typer

from mssql_tui.cli.commands._shared import get_client
from mssql_tui.core.bridge import SharedConnection
from mssql_tui.core.history import QueryHistory, data_dir
from mssql_tui.core.logging import setup_logging
from mssql_tui.tui.input import StdinLineSource
from mssql_tui.tui.loop import RunLoop
from mssql_tui.tui.render import RichRenderer
from mssql_tui.tui.state import AppState

LOG_FILE_NAME = "mssql-tui.log"


def tui_command(
    ctx: typer.Context,
    timeout: Annotated[
        int | None,
        typer.Option("--timeout", "-t", help="Query timeout in seconds (0 = none)"),
    ] = None,
    max_rows: Annotated[
        int,
        typer.Option("--rows", help="Result rows shown per page"),
    ] = 20,
    skip_schema: Annotated[
        bool,
        typer.Option("--no-schema", help="Do not load the schema tree at startup"),
    ] = False,
) -> None:
    """Open the interactive query console.

    Type SQL terminated by ';' or GO. Backslash commands (\\? for help)
    browse results, history and the schema tree.
    """
    # Logs go to a file so they never draw over the screen.
    setup_logging(ctx.ensure_object(dict).get("verbose", False), log_file=data_dir() / LOG_FILE_NAME)
    log = structlog.get_logger()

    with get_client(ctx, timeout=timeout) as client:
        client.connect()
        config = client.config
        state = AppState(
            shared=SharedConnection(client),
            history=QueryHistory(max_entries=config.history_max_entries),
        )
        if not skip_schema:
            state.load_schema()

        log.info("tui started", host=config.host, database=config.database)
        with RichRenderer(max_rows=max_rows) as renderer:
            RunLoop(state, StdinLineSource(), renderer, tick_ms=config.tick_ms).run()
        log.info("tui stopped")
