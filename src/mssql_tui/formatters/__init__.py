"""Output formatters for mssql-tui."""

from mssql_tui.formatters.base import Formatter, FormatterEntry, FormatterRegistry, registry
from mssql_tui.formatters.csv import CSVFormatter
from mssql_tui.formatters.json import JSONFormatter
from mssql_tui.formatters.table import TableFormatter

__all__ = [
    "CSVFormatter",
    "Formatter",
    "FormatterEntry",
    "FormatterRegistry",
    "JSONFormatter",
    "TableFormatter",
    "registry",
]
