"""Output format selection, TTY auto-detection and file export."""

from __future__ import annotations

import sys
from enum import StrEnum
from typing import TYPE_CHECKING

from mssql_tui.core.exceptions import OutputError
from mssql_tui.formatters import registry

if TYPE_CHECKING:
    from pathlib import Path

    from mssql_tui.core.models import QueryResult
    from mssql_tui.formatters.base import Formatter


class OutputFormat(StrEnum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def detect_tty() -> bool:
    return sys.stdout.isatty()


def resolve_format(format_flag: str | None) -> str:
    """Determine the output format.

    Explicit --format overrides TTY detection.
    Default: table for TTY, csv for pipes.
    """
    if format_flag is not None:
        return format_flag
    return "table" if detect_tty() else "csv"


def format_for_path(path: Path, format_flag: str | None = None) -> str:
    """Pick an export format from the flag, else the file extension, else CSV."""
    if format_flag is not None:
        return format_flag
    return registry.for_extension(path.suffix) or OutputFormat.CSV.value


def get_formatter(
    format_flag: str | None = None,
    *,
    compact: bool = False,
    width: int = 40,
    no_header: bool = False,
) -> Formatter:
    """Build the formatter for the flag, or for the TTY default when unset."""
    return registry.get(
        resolve_format(format_flag), width=width, compact=compact, no_header=no_header
    )


def write_output(formatter: Formatter, result: QueryResult) -> None:
    """Write formatted output to stdout."""
    for line in formatter.format(result):
        sys.stdout.write(line + "\n")


def export_result(
    result: QueryResult, path: Path, format_flag: str | None = None
) -> str:
    """Write result to path. Returns the format name used.

    Raises OutputError when the file cannot be written.
    """
    fmt_name = format_for_path(path, format_flag)
    formatter = get_formatter(fmt_name)
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            for line in formatter.format(result):
                f.write(line + "\n")
    except OSError as e:
        msg = f"Cannot write {path}: {e}"
        raise OutputError(msg) from e
    return fmt_name
