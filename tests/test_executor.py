"""Tests for the query executor."""

from datetime import date

import pytest

from mssql_tui.core.client import RawResultSet
from mssql_tui.core.decoder import WireType
from mssql_tui.core.exceptions import MssqlTuiError, NetworkError, UnsupportedTypeError
from mssql_tui.core.executor import (
    DATE_GUIDANCE,
    execute,
    execute_batch,
    is_unsupported_date_error,
)
from mssql_tui.core.models import NULL, IntegerValue, TemporalValue, TextValue
from tests.fakes import FakeConnection, result_set


@pytest.mark.unit
class TestExecute:
    def test_select_literal_columns(self, fake_conn):
        fake_conn.on(
            "SELECT 1 as num",
            result_set([("num", WireType.INT4), ("txt", WireType.NVARCHAR)], [(1, "hello")]),
        )
        result = execute(fake_conn, "SELECT 1 as num, 'hello' as txt")

        assert [c.name for c in result.columns] == ["num", "txt"]
        assert [c.declared_type for c in result.columns] == ["INT", "NVARCHAR"]
        assert result.rows == [[IntegerValue(value=1), TextValue(value="hello")]]
        assert result.row_count == 1
        assert result.execution_time.total_seconds() >= 0

    def test_plain_query_skips_catalog(self, fake_conn):
        fake_conn.on("SELECT 1", result_set([("n", WireType.INT4)], [(1,)]))
        execute(fake_conn, "SELECT 1")
        assert fake_conn.executed == ["SELECT 1"]

    def test_observed_width_tracks_longest_cell(self, fake_conn):
        fake_conn.on(
            "FROM people",
            result_set(
                [("n", WireType.NVARCHAR), ("identifier", WireType.INT4)],
                [("ab", 1), ("hello world", 22)],
            ),
        )
        result = execute(fake_conn, "SELECT n, identifier FROM people")
        assert [c.observed_max_width for c in result.columns] == [11, 10]

    def test_null_cells_count_toward_width(self, fake_conn):
        fake_conn.on("FROM t", result_set([("a", WireType.INT4)], [(None,)]))
        result = execute(fake_conn, "SELECT a FROM t")
        assert result.rows == [[NULL]]
        assert result.columns[0].observed_max_width == 4

    def test_short_rows_are_padded(self, fake_conn):
        fake_conn.on(
            "FROM t",
            result_set([("a", WireType.INT4), ("b", WireType.INT4)], [(1,)]),
        )
        result = execute(fake_conn, "SELECT a, b FROM t")
        assert result.rows == [[IntegerValue(value=1), NULL]]

    def test_malformed_cell_decodes_to_null(self, fake_conn):
        fake_conn.on("FROM t", result_set([("a", WireType.INT4)], [("oops",)]))
        result = execute(fake_conn, "SELECT a FROM t")
        assert result.rows == [[NULL]]

    def test_all_result_sets_are_consumed(self, fake_conn):
        fake_conn.on(
            "SELECT a",
            result_set([("a", WireType.INT4)], [(1,), (2,)]),
            result_set([("a", WireType.INT4)], [(3,)]),
        )
        result = execute(fake_conn, "SELECT a FROM t1; SELECT a FROM t2")
        assert [row[0].to_display_string() for row in result.rows] == ["1", "2", "3"]
        assert result.row_count == 3

    def test_row_count_only_sets(self, fake_conn):
        fake_conn.on("UPDATE", RawResultSet(rowcount=4), RawResultSet(rowcount=1))
        result = execute(fake_conn, "UPDATE t SET a = 1; UPDATE u SET b = 2")
        assert result.columns == []
        assert result.rows == []
        assert result.affected_rows == 5
        assert result.messages == ["(4 row(s) affected)", "(1 row(s) affected)"]

    def test_empty_result_set_has_no_columns(self, fake_conn):
        fake_conn.on("FROM t", result_set([("a", WireType.INT4)], []))
        result = execute(fake_conn, "SELECT a FROM t WHERE 1 = 0")
        assert result.columns == []
        assert result.row_count == 0


@pytest.mark.unit
class TestExecuteErrors:
    def test_unsupported_date_error_gets_guidance(self, fake_conn):
        original = MssqlTuiError("SQL error: unsupported column type: 40")
        fake_conn.fail("FROM events", original)
        with pytest.raises(UnsupportedTypeError) as exc_info:
            execute(fake_conn, "SELECT day FROM events")
        assert exc_info.value.message == DATE_GUIDANCE
        assert "CONVERT(VARCHAR(10), date_column, 23)" in exc_info.value.message
        assert exc_info.value.__cause__ is original

    def test_other_errors_propagate_unchanged(self, fake_conn):
        original = MssqlTuiError("SQL error: Invalid object name 'nope'")
        fake_conn.fail("nope", original)
        with pytest.raises(MssqlTuiError) as exc_info:
            execute(fake_conn, "SELECT a FROM nope")
        assert exc_info.value is original

    def test_network_error_propagates(self, fake_conn):
        fake_conn.fail("SELECT", NetworkError("Connection error: reset"))
        with pytest.raises(NetworkError):
            execute(fake_conn, "SELECT 1")

    def test_signature_matching(self):
        assert is_unsupported_date_error("Unexpected: column type: 40 not handled")
        assert not is_unsupported_date_error("Invalid column name 'x'")


@pytest.mark.unit
class TestExecuteRewrite:
    def _conn_with_date_table(self):
        conn = FakeConnection()
        conn.on("DATA_TYPE = 'date'", result_set([("COLUMN_NAME", WireType.NVARCHAR)], [("D",)]))
        conn.on(
            "SELECT COLUMN_NAME, DATA_TYPE",
            result_set(
                [("COLUMN_NAME", WireType.NVARCHAR), ("DATA_TYPE", WireType.NVARCHAR)],
                [("id", "int"), ("D", "date")],
            ),
        )
        conn.on(
            "CONVERT(VARCHAR(10), [D], 23)",
            result_set([("id", WireType.INT4), ("D", WireType.VARCHAR)], [(1, "2024-05-01")]),
        )
        return conn

    def test_select_star_runs_rewritten_text(self):
        conn = self._conn_with_date_table()
        result = execute(conn, "SELECT TOP 3 * FROM dbo.T")
        assert conn.executed[-1].startswith("SELECT TOP 3 [id],")
        assert result.rows == [[IntegerValue(value=1), TextValue(value="2024-05-01")]]

    def test_count_star_runs_original_text(self):
        conn = self._conn_with_date_table()
        conn.on("COUNT(*)", result_set([("n", WireType.INT4)], [(7,)]))
        query = "SELECT TOP 1 COUNT(*) AS n FROM dbo.T"

        result = execute(conn, query)

        assert conn.executed == [query]
        assert result.rows == [[IntegerValue(value=7)]]

    def test_select_star_without_dates_runs_original_text(self, fake_conn):
        fake_conn.on("FROM dbo.T", result_set([("id", WireType.INT4)], [(1,)]))
        execute(fake_conn, "SELECT * FROM dbo.T")
        assert fake_conn.executed[-1] == "SELECT * FROM dbo.T"

    def test_date_wire_type_decodes_when_driver_supports_it(self, fake_conn):
        fake_conn.on("FROM t", result_set([("d", WireType.DATE)], [(date(2024, 5, 1),)]))
        result = execute(fake_conn, "SELECT d FROM t")
        assert result.rows == [[TemporalValue(value="2024-05-01")]]


@pytest.mark.unit
class TestExecuteBatch:
    def test_all_succeed(self, fake_conn):
        fake_conn.on("SELECT 1", result_set([("a", WireType.INT4)], [(1,)]))
        fake_conn.on("SELECT 2", result_set([("b", WireType.INT4)], [(2,)]))
        results = execute_batch(fake_conn, ["SELECT 1", "SELECT 2"])
        assert [r.columns[0].name for r in results] == ["a", "b"]

    def test_stops_at_first_failure(self, fake_conn):
        fake_conn.on("SELECT 1", result_set([("a", WireType.INT4)], [(1,)]))
        fake_conn.fail("bad", MssqlTuiError("SQL error: syntax"))
        with pytest.raises(MssqlTuiError):
            execute_batch(fake_conn, ["SELECT 1", "SELECT bad", "SELECT 3"])
        assert fake_conn.executed == ["SELECT 1", "SELECT bad"]

    def test_empty_batch(self, fake_conn):
        assert execute_batch(fake_conn, []) == []
