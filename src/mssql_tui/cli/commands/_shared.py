"""Shared CLI plumbing for command modules.

Client creation, format-option handling, and output helpers.
Distinct from cli.helpers which contains pure data-formatting functions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mssql_tui.cli.output import get_formatter, write_output
from mssql_tui.core.client import MssqlClient
from mssql_tui.core.config import load_config, resolve_config
from mssql_tui.core.models import ColumnInfo, QueryResult, TextValue

if TYPE_CHECKING:
    import typer

    from mssql_tui.core.config import ResolvedConfig


def resolve_ctx_config(ctx: typer.Context, timeout: int | None = None) -> ResolvedConfig:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in ("host", "port", "database", "user", "password"):
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    if timeout is not None:
        cli_overrides["timeout"] = timeout

    return resolve_config(
        config,
        profile_name=obj.get("profile"),
        dsn=obj.get("dsn"),
        **cli_overrides,
    )


def get_client(ctx: typer.Context, timeout: int | None = None) -> MssqlClient:
    return MssqlClient(resolve_ctx_config(ctx, timeout))


def format_options(ctx: typer.Context) -> dict[str, Any]:
    """Formatter options from the global flags.

    Without --format, a default_format set in the config file wins over
    TTY detection.
    """
    obj = ctx.ensure_object(dict)
    format_flag = obj.get("format")
    if format_flag is None:
        resolved = resolve_ctx_config(ctx)
        if resolved.sources.get("default_format", "default") != "default":
            format_flag = resolved.default_format
    return {
        "format_flag": format_flag,
        "compact": obj.get("compact", False),
        "width": obj.get("width", 40),
        "no_header": obj.get("no_header", False),
    }


def output_result(ctx: typer.Context, result: QueryResult) -> None:
    opts = format_options(ctx)
    formatter = get_formatter(**opts)
    write_output(formatter, result)


def text_result(headers: list[str], rows: list[tuple[Any, ...]]) -> QueryResult:
    """Wrap catalog rows as a text-only QueryResult for the formatters."""
    widths = [max(len(h), 4) for h in headers]
    values = []
    for row in rows:
        cells = ["" if v is None else str(v) for v in row]
        widths = [max(w, len(c)) for w, c in zip(widths, cells, strict=True)]
        values.append([TextValue(value=c) for c in cells])
    return QueryResult(
        columns=[
            ColumnInfo(name=h, declared_type="NVARCHAR", observed_max_width=w)
            for h, w in zip(headers, widths, strict=True)
        ],
        rows=values,
        row_count=len(values),
    )


def parse_table_arg(table_arg: str) -> tuple[str, str]:
    if "." in table_arg:
        schema, table = table_arg.split(".", 1)
        return schema, table
    return "dbo", table_arg
