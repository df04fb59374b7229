"""Standard exit codes for mssql-tui commands."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for mssql-tui commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    USAGE_ERROR = 2
    INPUT_ERROR = 3
    OUTPUT_ERROR = 4
    NETWORK_ERROR = 5
    TIMEOUT = 6
    CONFIG_ERROR = 7
