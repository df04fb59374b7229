"""CSV formatter for QueryResult output (RFC 4180 compliant)."""

from __future__ import annotations

import csv
from io import StringIO
from typing import TYPE_CHECKING

from mssql_tui.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from mssql_tui.core.models import QueryResult, Value


def _write_row(values: list[str]) -> str:
    buf = StringIO()
    writer = csv.writer(buf)
    writer.writerow(values)
    return buf.getvalue().rstrip("\r\n")


def _cell(value: Value) -> str:
    return "" if value.is_null else value.to_display_string()


class CSVFormatter:
    def __init__(self, no_header: bool = False) -> None:
        self.no_header = no_header

    def format(self, result: QueryResult) -> Iterator[str]:
        if not self.no_header:
            yield _write_row([col.name for col in result.columns])

        for row in result.rows:
            yield _write_row([_cell(v) for v in row])


registry.register("csv", CSVFormatter, extensions=(".csv",), options=("no_header",))
