"""Shared test fixtures for mssql-tui."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from mssql_tui.core.history import QueryHistory
from tests.fakes import FakeConnection


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep history and log files out of the real home directory."""
    data_home = tmp_path / "xdg-data"
    monkeypatch.setenv("XDG_DATA_HOME", str(data_home))
    return data_home / "mssql-tui"


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def history(tmp_path):
    return QueryHistory(max_entries=100, path=tmp_path / "history.json")
