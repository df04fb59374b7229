"""Query execution: rewrite, run, decode and time one query.

The result is always complete or absent. Rows are fully materialized
before ``execute`` returns, and a failure never surfaces partial rows.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import TYPE_CHECKING

import sentry_sdk
import structlog

from mssql_tui.core.decoder import decode, type_display_name
from mssql_tui.core.exceptions import MssqlTuiError, UnsupportedTypeError
from mssql_tui.core.models import ColumnInfo, QueryResult
from mssql_tui.core.rewriter import is_select_star, try_fix_date_columns

if TYPE_CHECKING:
    from mssql_tui.core.client import Connection, RawResultSet
    from mssql_tui.core.models import Value

UNSUPPORTED_DATE_SIGNATURES = ("unsupported column type: 40", "column type: 40")

DATE_GUIDANCE = (
    "Table contains DATE columns which are not supported by the driver. "
    "Please cast DATE columns to VARCHAR manually, e.g.:\n"
    "SELECT CONVERT(VARCHAR(10), date_column, 23) as date_column FROM table"
)

_MIN_COLUMN_WIDTH = 4


def is_unsupported_date_error(message: str) -> bool:
    return any(signature in message for signature in UNSUPPORTED_DATE_SIGNATURES)


def _materialize(result_sets: list[RawResultSet], start: float) -> QueryResult:
    columns: list[tuple[str, str]] = []
    widths: list[int] = []
    rows: list[list[Value]] = []
    affected_rows: int | None = None
    messages: list[str] = []

    for result_set in result_sets:
        if not result_set.columns:
            if result_set.rowcount >= 0:
                affected_rows = (affected_rows or 0) + result_set.rowcount
                messages.append(f"({result_set.rowcount} row(s) affected)")
            continue

        for raw_row in result_set.rows:
            if not columns:
                columns = [
                    (name, type_display_name(wire_type))
                    for name, wire_type in result_set.columns
                ]
                widths = [max(len(name), _MIN_COLUMN_WIDTH) for name, _ in columns]

            row: list[Value] = []
            for i in range(len(columns)):
                wire_type = (
                    result_set.columns[i][1]
                    if i < len(result_set.columns)
                    else result_set.columns[-1][1]
                )
                raw = raw_row[i] if i < len(raw_row) else None
                value = decode(wire_type, raw)
                widths[i] = max(widths[i], len(value.to_display_string()))
                row.append(value)
            rows.append(row)

    execution_time = timedelta(seconds=time.monotonic() - start)

    return QueryResult(
        columns=[
            ColumnInfo(name=name, declared_type=declared, observed_max_width=width)
            for (name, declared), width in zip(columns, widths, strict=True)
        ],
        rows=rows,
        row_count=len(rows),
        execution_time=execution_time,
        affected_rows=affected_rows,
        messages=messages,
    )


def execute(conn: Connection, query: str) -> QueryResult:
    """Execute one query and return its fully decoded result.

    Raises UnsupportedTypeError with casting guidance when the driver
    rejects a date column, and the client's MssqlTuiError otherwise.
    """
    log = structlog.get_logger()
    start = time.monotonic()

    query_to_execute = query
    if is_select_star(query):
        fixed = try_fix_date_columns(conn, query)
        if fixed:
            query_to_execute = fixed

    sql_normalized = " ".join(query_to_execute.split())
    with sentry_sdk.start_span(op="db.query", description=sql_normalized[:100]) as span:
        try:
            result_sets = conn.run_batch(query_to_execute)
        except MssqlTuiError as e:
            if is_unsupported_date_error(str(e)):
                span.set_status("invalid_argument")
                log.warning("unsupported date column", sql=sql_normalized)
                raise UnsupportedTypeError(DATE_GUIDANCE) from e
            span.set_status("internal_error")
            raise

        result = _materialize(result_sets, start)
        span.set_data("row_count", result.row_count)
        span.set_data("duration_ms", result.execution_ms)

    log.debug(
        "query complete",
        duration_ms=f"{result.execution_ms:.1f}",
        row_count=result.row_count,
    )
    return result


def execute_batch(conn: Connection, queries: list[str]) -> list[QueryResult]:
    """Run queries in order, stopping at the first failure."""
    return [execute(conn, query) for query in queries]
