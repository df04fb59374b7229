"""Configuration for integration tests.

Override these values via environment variables to match your local server.

Example:
    export MSSQL_TUI_TEST_PROFILE=local_sql
    export MSSQL_TUI_TEST_DATABASE=tempdb
"""

import os

# Profile name configured in ~/.config/mssql-tui/config.toml
TEST_PROFILE = os.environ.get("MSSQL_TUI_TEST_PROFILE", "test_db")

# Database name the test profile connects to
TEST_DATABASE = os.environ.get("MSSQL_TUI_TEST_DATABASE", "tempdb")

# CLI profile arguments
PROFILE_ARGS = ["--profile", TEST_PROFILE]
