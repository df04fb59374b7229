"""Tests for the query command.

Unit tests run against a scripted connection. Integration tests need a
real SQL Server reachable through the test profile.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from mssql_tui.cli.main import app
from mssql_tui.core.config import ResolvedConfig
from mssql_tui.core.decoder import WireType
from mssql_tui.core.exceptions import MssqlTuiError
from mssql_tui.core.exit_codes import ExitCode
from mssql_tui.core.history import QueryHistory
from tests.fakes import FakeClient, result_set
from tests.integration_config import PROFILE_ARGS

FIXTURES = Path(__file__).parent.parent / "fixtures"
FIXTURE_SQL = str(FIXTURES / "select_42.sql")
BATCHES_SQL = str(FIXTURES / "batches.sql")


@pytest.fixture
def client():
    c = FakeClient(ResolvedConfig(database="sales", history_max_entries=50))
    c.on("SELECT 42", result_set([("answer", WireType.INT4)], [(42,)]))
    c.on("SELECT id FROM #t", result_set([("id", WireType.INT4)], [(1,), (2,)]))
    c.on("INSERT", result_set([], []))
    return c


@pytest.fixture
def invoke(runner, client, tmp_path):
    no_config = str(tmp_path / "missing.toml")

    def run(*args, **kwargs):
        with patch("mssql_tui.cli.commands.query.get_client", return_value=client):
            return runner.invoke(app, ["--config", no_config, *args], **kwargs)

    return run


@pytest.mark.unit
def test_query_help(runner):
    result = runner.invoke(app, ["query", "--help"])
    assert result.exit_code == 0
    assert "--execute" in result.stdout
    assert "--output" in result.stdout


@pytest.mark.unit
def test_query_inline_json(invoke):
    result = invoke("--format", "json", "query", "-e", "SELECT 42 AS answer")
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == [{"answer": 42}]


@pytest.mark.unit
def test_query_inline_csv(invoke):
    result = invoke("--format", "csv", "query", "-e", "SELECT 42 AS answer")
    assert result.stdout.splitlines() == ["answer", "42"]


@pytest.mark.unit
def test_query_from_file(invoke, client):
    result = invoke("--format", "csv", "query", FIXTURE_SQL)
    assert result.exit_code == 0
    assert client.executed == ["SELECT 42 AS answer"]


@pytest.mark.unit
def test_query_from_stdin(invoke):
    result = invoke("--format", "csv", "query", input="SELECT 42 AS answer\n")
    assert result.exit_code == 0
    assert "42" in result.stdout


@pytest.mark.unit
def test_query_splits_go_batches(invoke, client):
    result = invoke("--format", "csv", "query", BATCHES_SQL)
    assert result.exit_code == 0, result.output
    assert len(client.executed) == 3
    assert client.executed[-1] == "SELECT id FROM #t"
    assert result.stdout.rstrip().endswith("id\n1\n2")


@pytest.mark.unit
def test_query_records_history(invoke):
    invoke("--format", "csv", "query", "-e", "SELECT 42 AS answer")
    entries = QueryHistory().entries()
    assert [e.query for e in entries] == ["SELECT 42 AS answer"]
    assert entries[0].database == "sales"
    assert entries[0].row_count == 1


@pytest.mark.unit
def test_query_no_history(invoke):
    invoke("--format", "csv", "query", "--no-history", "-e", "SELECT 42 AS answer")
    assert len(QueryHistory()) == 0


@pytest.mark.unit
def test_query_output_file(invoke, tmp_path):
    target = tmp_path / "answer.json"
    result = invoke("--format", "csv", "query", "-e", "SELECT 42 AS answer", "-o", str(target))
    assert result.exit_code == 0
    assert json.loads(target.read_text()) == [{"answer": 42}]
    assert f"Wrote 1 row(s) to {target} (json)" in result.stderr


@pytest.mark.unit
def test_query_missing_file(invoke):
    result = invoke("query", "/nonexistent/query.sql")
    assert result.exit_code == ExitCode.INPUT_ERROR
    assert "Query file not found" in result.stderr


@pytest.mark.unit
def test_query_blank_script(invoke):
    result = invoke("query", "-e", "GO\n\n")
    assert result.exit_code == ExitCode.INPUT_ERROR
    assert "No query provided." in result.stderr


@pytest.mark.unit
def test_query_error_propagates(invoke, client):
    client.fail("nope", MssqlTuiError("SQL error: Invalid object name 'nope'"))
    result = invoke("query", "-e", "SELECT * FROM nope")
    assert result.exit_code != 0
    assert isinstance(result.exception, MssqlTuiError)


@pytest.mark.integration
def test_query_inline_integration(runner):
    result = runner.invoke(app, [*PROFILE_ARGS, "--format", "json", "query", "-e", "SELECT 1 AS num"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == [{"num": 1}]


@pytest.mark.integration
def test_query_date_column_integration(runner):
    sql = "SELECT CAST('2024-01-15' AS DATE) AS d"
    result = runner.invoke(app, [*PROFILE_ARGS, "--format", "json", "query", "-e", sql])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == [{"d": "2024-01-15"}]
