"""Rich table formatter for QueryResult output."""

from __future__ import annotations

import shutil
from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table
from rich.text import Text

from mssql_tui.cli.helpers import format_duration, truncate
from mssql_tui.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from mssql_tui.core.models import QueryResult

_NO_RESULTS = "No results"


class TableFormatter:
    def __init__(self, width: int = 40) -> None:
        self.width = width

    def format(self, result: QueryResult) -> Iterator[str]:
        if not result.rows:
            if result.messages:
                yield from result.messages
            else:
                yield _NO_RESULTS
            return

        table = Table(show_edge=True, pad_edge=True)
        for col in result.columns:
            table.add_column(Text(col.name), no_wrap=True)

        for row in result.rows:
            table.add_row(*(Text(truncate(v.to_display_string(), self.width)) for v in row))

        buf = StringIO()
        term_width = shutil.get_terminal_size((120, 24)).columns
        console = Console(file=buf, force_terminal=True, width=term_width)
        console.print(table)
        yield buf.getvalue().rstrip("\n")
        yield f"{result.row_count} row(s) in {format_duration(result.execution_time)}"


registry.register("table", TableFormatter, extensions=(".txt",), options=("width",))
