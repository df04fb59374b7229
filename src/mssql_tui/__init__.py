"""Interactive terminal client for Microsoft SQL Server."""

from mssql_tui.__about__ import __version__

__all__ = ["__version__"]
