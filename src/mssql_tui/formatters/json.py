"""JSON formatter for QueryResult output."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from mssql_tui.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from mssql_tui.core.models import QueryResult


class JSONFormatter:
    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, result: QueryResult) -> Iterator[str]:
        rows_as_dicts = [
            {
                col.name: val.to_json_value()
                for col, val in zip(result.columns, row, strict=True)
            }
            for row in result.rows
        ]

        if self.compact:
            yield json.dumps(rows_as_dicts, default=str)
        else:
            yield json.dumps(rows_as_dicts, indent=2, default=str)


registry.register("json", JSONFormatter, extensions=(".json",), options=("compact",))
