"""Date-cast rewriting for queries that touch ``date`` columns.

The driver cannot decode the ``date`` wire type on older protocol
versions, so ``SELECT *`` against a table holding one fails outright.
Before such a query runs, the table's catalog entry is checked and the
select list is rewritten to cast each date column to ``VARCHAR(10)``.

This is a best-effort text transform, not a parser. Any failure while
looking at the catalog leaves the query untouched.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from mssql_tui.core.exceptions import MssqlTuiError

if TYPE_CHECKING:
    from mssql_tui.core.client import Connection

_FROM_RE = re.compile(r"\sFROM\s", re.IGNORECASE)
_SELECT_STAR_RE = re.compile(
    r"^\s*SELECT\s+"
    r"(?P<prefix>(?:DISTINCT\s+)?(?:TOP\s*(?:\(\s*\d+\s*\)|\d+)(?:\s+PERCENT)?\s+)?)"
    r"\*(?=\s|;|$)",
    re.IGNORECASE,
)
_TABLE_END_RE = re.compile(r"[\s(;]")

_DATE_COLUMNS_SQL = """
SELECT COLUMN_NAME
FROM {catalog}INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_NAME = %(table)s AND DATA_TYPE = 'date'{schema_filter}
ORDER BY ORDINAL_POSITION
"""

_ALL_COLUMNS_SQL = """
SELECT COLUMN_NAME, DATA_TYPE
FROM {catalog}INFORMATION_SCHEMA.COLUMNS
WHERE TABLE_NAME = %(table)s{schema_filter}
ORDER BY ORDINAL_POSITION
"""


def is_select_star(query: str) -> bool:
    """True when the whole select list is ``*``, optionally after DISTINCT and TOP n."""
    return _SELECT_STAR_RE.match(query) is not None


def extract_table_name(query: str) -> str | None:
    """The table reference following the first FROM, e.g. ``[dbo].[Orders]``."""
    match = _FROM_RE.search(query)
    if match is None:
        return None
    after_from = query[match.end() :].strip()
    end = _TABLE_END_RE.search(after_from)
    table = after_from[: end.start()] if end else after_from
    return table or None


def parse_table_name(table_name: str) -> tuple[str | None, str | None, str]:
    """Split a table reference into (database, schema, table), brackets removed."""
    clean = table_name.replace("[", "").replace("]", "")
    parts = clean.split(".")
    if len(parts) == 1:
        return None, None, parts[0]
    if len(parts) == 2:
        return None, parts[0] or None, parts[1]
    if len(parts) == 3:
        return parts[0] or None, parts[1] or None, parts[2]
    return None, None, clean


def quote_identifier(name: str) -> str:
    return "[" + name.replace("]", "]]") + "]"


def cast_expression(column: str) -> str:
    quoted = quote_identifier(column)
    return f"CONVERT(VARCHAR(10), {quoted}, 23) AS {quoted}"


def _catalog_query(template: str, table_name: str) -> tuple[str, dict[str, str]]:
    database, schema, table = parse_table_name(table_name)
    params = {"table": table}
    schema_filter = ""
    if schema:
        schema_filter = " AND TABLE_SCHEMA = %(schema)s"
        params["schema"] = schema
    catalog = f"{quote_identifier(database)}." if database else ""
    sql = template.format(catalog=catalog, schema_filter=schema_filter)
    return sql, params


def get_date_columns(conn: Connection, table_name: str) -> list[str]:
    """Names of ``date``-typed columns of the table, in ordinal order."""
    sql, params = _catalog_query(_DATE_COLUMNS_SQL, table_name)
    columns: list[str] = []
    for result_set in conn.run_batch(sql, params):
        for row in result_set.rows:
            if row and isinstance(row[0], str):
                columns.append(row[0])
    return columns


def get_table_columns(conn: Connection, table_name: str) -> list[tuple[str, str]]:
    """All (column name, data type) pairs of the table, in ordinal order."""
    sql, params = _catalog_query(_ALL_COLUMNS_SQL, table_name)
    columns: list[tuple[str, str]] = []
    for result_set in conn.run_batch(sql, params):
        for row in result_set.rows:
            if len(row) >= 2 and isinstance(row[0], str) and isinstance(row[1], str):
                columns.append((row[0], row[1]))
    return columns


def build_select_with_casts(
    conn: Connection, query: str, table_name: str, date_columns: list[str]
) -> str | None:
    """Replace ``*`` with the explicit column list, casting the date columns."""
    date_set = set(date_columns)
    column_defs = [
        cast_expression(name) if name in date_set else quote_identifier(name)
        for name, _data_type in get_table_columns(conn, table_name)
    ]
    if not column_defs:
        return None

    star_match = _SELECT_STAR_RE.match(query)
    if star_match is None:
        return None
    from_match = _FROM_RE.search(query, star_match.end())
    if from_match is None:
        return None

    prefix = " ".join(star_match.group("prefix").split())
    select_prefix = f"{prefix} " if prefix else ""

    after_from = query[from_match.start() :].strip()
    column_list = ",\n    ".join(column_defs)
    return f"SELECT {select_prefix}{column_list}\n{after_from}"


def substitute_date_references(query: str, date_columns: list[str]) -> str | None:
    """Wrap the first reference of each date column in a cast expression."""
    fixed = query
    for column in date_columns:
        bracketed = quote_identifier(column)
        if bracketed in fixed:
            fixed = fixed.replace(bracketed, cast_expression(column), 1)
            continue
        bare = re.compile(rf"(?<![\w\[\]]){re.escape(column)}(?![\w\]])")
        fixed = bare.sub(lambda _m, c=column: cast_expression(c), fixed, count=1)
    return fixed if fixed != query else None


def try_fix_date_columns(conn: Connection, query: str) -> str | None:
    """Return a rewritten query, or None when the original should run as-is."""
    log = structlog.get_logger()
    if not query.strip().upper().startswith("SELECT"):
        return None

    table_name = extract_table_name(query)
    if table_name is None:
        return None

    try:
        date_columns = get_date_columns(conn, table_name)
        if not date_columns:
            return None

        if is_select_star(query):
            rewritten = build_select_with_casts(conn, query, table_name, date_columns)
        else:
            rewritten = substitute_date_references(query, date_columns)
    except (MssqlTuiError, ValueError, IndexError) as e:
        log.debug("date cast rewrite skipped", table=table_name, error=str(e))
        return None

    if rewritten is not None:
        log.debug("rewrote date columns", table=table_name, columns=date_columns)
    return rewritten
