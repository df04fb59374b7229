"""Exception hierarchy for mssql-tui.

All exceptions carry an exit_code for CLI return value mapping.
Only errors from this hierarchy reach the operator; per-cell decode
failures and date-cast rewrite failures are absorbed below it.
"""

from mssql_tui.core.exit_codes import ExitCode


class MssqlTuiError(Exception):
    """Base exception for all mssql-tui errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NetworkError(MssqlTuiError):
    """Connection failures, unreachable host, dropped transport."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Query timeout, login timeout."""

    exit_code: int = ExitCode.TIMEOUT


class InputError(MssqlTuiError):
    """File not found, no query given."""

    exit_code: int = ExitCode.INPUT_ERROR


class OutputError(MssqlTuiError):
    """Export file cannot be written."""

    exit_code: int = ExitCode.OUTPUT_ERROR


class ConfigError(MssqlTuiError):
    """Malformed config, missing profile."""

    exit_code: int = ExitCode.CONFIG_ERROR


class UnsupportedTypeError(MssqlTuiError):
    """A column type the driver cannot decode; message tells how to cast it."""


class QueryInterruptedError(MssqlTuiError):
    """The background query finished without delivering a result."""

    def __init__(self, message: str = "Query execution was interrupted") -> None:
        super().__init__(message)
