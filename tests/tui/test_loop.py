"""Tests for the interactive run loop."""

import time

import pytest

from mssql_tui.core.bridge import SharedConnection
from mssql_tui.core.decoder import WireType
from mssql_tui.tui.loop import BUSY_TICK_MS, DEFAULT_TICK_MS, RunLoop
from mssql_tui.tui.state import ActivePanel, AppState, ResultsTab
from tests.fakes import FakeConnection, result_set

_TWO_COLS = [("a", WireType.NVARCHAR), ("b", WireType.NVARCHAR)]


class ScriptedSource:
    """Hands out prepared lines one per poll, then reports no input.

    With a state attached, input is held back while a query is loading,
    like an operator waiting for the spinner to stop.
    """

    def __init__(self, *lines):
        self.lines = list(lines)
        self.timeouts = []
        self.state = None

    def poll(self, timeout):
        self.timeouts.append(timeout)
        if self.state is not None and self.state.is_loading:
            return None
        if self.lines:
            return self.lines.pop(0)
        return None


class RecordingRenderer:
    def __init__(self):
        self.frames = 0

    def repaint(self, state):
        self.frames += 1
        return True


def sales_conn():
    conn = FakeConnection(database="sales")
    conn.on("SELECT 42", result_set([("answer", WireType.INT4)], [(42,)]))
    conn.on(
        "FROM orders",
        result_set(
            [("id", WireType.INT4), ("item", WireType.NVARCHAR)],
            [(i, f"item{i}") for i in range(10)],
        ),
    )
    conn.on("@@VERSION", result_set([("", WireType.NVARCHAR)], [("Microsoft SQL Server 2019",)]))
    conn.on("sys.tables", result_set(_TWO_COLS, [("dbo", "orders")]))
    conn.on("sys.views", result_set(_TWO_COLS, []))
    conn.on("sys.procedures", result_set(_TWO_COLS, []))
    return conn


@pytest.fixture
def conn():
    return sales_conn()


@pytest.fixture
def make_loop(conn, history):
    def factory(*lines):
        state = AppState(shared=SharedConnection(conn), history=history)
        source = ScriptedSource(*lines)
        source.state = state
        return RunLoop(state, source, RecordingRenderer())

    return factory


def settle(loop, timeout=5.0):
    """Step until input is consumed and no query is loading."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        loop.step()
        if not loop.source.lines and not loop.state.is_loading:
            return
        time.sleep(0.005)
    raise AssertionError("loop did not settle")


@pytest.mark.unit
class TestSubmission:
    def test_semicolon_submits(self, make_loop, conn, history):
        loop = make_loop("SELECT 42 AS answer;")
        settle(loop)

        assert loop.state.result.rows[0][0].to_display_string() == "42"
        assert loop.state.active_panel == ActivePanel.RESULTS
        assert history.entries()[-1].query == "SELECT 42 AS answer;"

    def test_multiline_joined(self, make_loop, conn):
        loop = make_loop("SELECT id, item", "FROM orders;")
        settle(loop)

        assert "SELECT id, item\nFROM orders;" in conn.executed
        assert loop.state.result.row_count == 10

    def test_go_line_submits_and_is_dropped(self, make_loop, conn):
        loop = make_loop("SELECT 42 AS answer", "go")
        settle(loop)
        assert loop.state.query == "SELECT 42 AS answer"

    def test_blank_line_submits_buffer(self, make_loop):
        loop = make_loop("SELECT 42 AS answer", "")
        settle(loop)
        assert loop.state.result.row_count == 1

    def test_blank_line_with_empty_buffer_ignored(self, make_loop, conn):
        loop = make_loop("", "   ")
        settle(loop)
        assert conn.calls == []

    def test_backslash_inside_buffer_is_text(self, make_loop):
        loop = make_loop("SELECT 42 AS answer", "\\q")
        loop.step()
        loop.step()
        assert loop.state.should_quit is False
        assert loop._buffer == ["SELECT 42 AS answer", "\\q"]

    def test_submit_while_loading(self, make_loop):
        loop = make_loop()
        loop.state.is_loading = True
        loop.handle_line("SELECT 1;")
        assert loop.state.message == "A query is already running"
        assert loop.state.query == ""

    def test_rerun(self, make_loop, conn, history):
        loop = make_loop("SELECT 42 AS answer;", "\\r")
        settle(loop)
        assert conn.executed.count("SELECT 42 AS answer;") == 2
        assert len(history) == 1


@pytest.mark.unit
class TestCommands:
    def test_quit_ends_run(self, make_loop):
        loop = make_loop("\\q")
        loop.run()
        assert loop.state.should_quit is True
        assert loop.renderer.frames == 2

    def test_unknown_command(self, make_loop):
        loop = make_loop()
        loop.handle_line("\\bogus")
        assert loop.state.error == "Unknown command: \\bogus"

    def test_known_command_clears_error(self, make_loop):
        loop = make_loop()
        loop.state.error = "old"
        loop.handle_line("\\?")
        assert loop.state.error is None
        assert loop.state.show_help is True

    def test_tab_switch(self, make_loop):
        loop = make_loop()
        loop.handle_line("\\tab columns")
        assert loop.state.results_tab == ResultsTab.COLUMNS
        assert loop.state.active_panel == ActivePanel.RESULTS

    def test_unknown_tab(self, make_loop):
        loop = make_loop()
        loop.handle_line("\\tab graphs")
        assert loop.state.error.startswith("Unknown tab 'graphs'")
        assert loop.state.results_tab == ResultsTab.DATA

    def test_move_selection(self, make_loop):
        loop = make_loop("SELECT * FROM orders;", "\\j 3", "\\k")
        settle(loop)
        assert loop.state.results_selected == 2

    def test_clear(self, make_loop):
        loop = make_loop("SELECT 42 AS answer;", "\\c")
        settle(loop)
        assert loop.state.query == ""

    def test_history_navigation(self, make_loop, history):
        history.add("SELECT 1", 1, 1, "sales")
        history.add("SELECT 2", 1, 1, "sales")
        loop = make_loop("\\p", "\\p", "\\n")
        settle(loop)
        assert loop.state.query == "SELECT 2"

    def test_history_panel_and_load(self, make_loop, history):
        history.add("SELECT 1", 1, 1, "sales")
        history.add("SELECT * FROM orders", 1, 10, "sales")
        loop = make_loop("\\h orders", "\\l 0")
        settle(loop)
        assert loop.state.history_filter == "orders"
        assert loop.state.query == "SELECT * FROM orders"
        assert loop.state.active_panel == ActivePanel.QUERY_EDITOR

    def test_history_panel_toggle(self, make_loop):
        loop = make_loop()
        loop.handle_line("\\h")
        assert loop.state.active_panel == ActivePanel.HISTORY
        loop.handle_line("\\h")
        assert loop.state.active_panel == ActivePanel.RESULTS

    def test_load_history_bad_argument(self, make_loop):
        loop = make_loop()
        loop.handle_line("\\l x")
        assert loop.state.error == "Expected an entry number, got 'x'"

    def test_schema_panel_loads_tree(self, make_loop):
        loop = make_loop("\\s", "\\t 0", "\\i 1")
        settle(loop)
        assert loop.state.server_version == "Microsoft SQL Server 2019"
        assert loop.state.schema_tree[0].expanded is True
        assert loop.state.query == "dbo.orders"

    def test_schema_bad_node_number(self, make_loop):
        loop = make_loop()
        loop.handle_line("\\t abc")
        assert loop.state.error == "Expected a node number, got 'abc'"

    def test_format(self, make_loop):
        loop = make_loop()
        loop.state.query = "select a from t"
        loop.handle_line("\\f")
        assert loop.state.query == "SELECT\n    a\nFROM\n    t"


@pytest.mark.unit
class TestExport:
    def test_export_csv(self, make_loop, tmp_path):
        target = tmp_path / "orders.csv"
        loop = make_loop("SELECT * FROM orders;", f"\\o {target}")
        settle(loop)

        assert loop.state.message == f"Exported 10 row(s) to {target} (csv)"
        lines = target.read_text().splitlines()
        assert lines[0] == "id,item"
        assert lines[1] == "0,item0"
        assert len(lines) == 11

    def test_export_json_by_extension(self, make_loop, tmp_path):
        target = tmp_path / "answer.json"
        loop = make_loop("SELECT 42 AS answer;", f"\\o '{target}'")
        settle(loop)
        assert loop.state.message.endswith("(json)")
        assert '"answer"' in target.read_text()

    def test_export_requires_path(self, make_loop):
        loop = make_loop()
        loop.handle_line("\\o")
        assert loop.state.error == "Usage: \\o FILE"

    def test_export_requires_result(self, make_loop, tmp_path):
        loop = make_loop()
        loop.handle_line(f"\\o {tmp_path / 'x.csv'}")
        assert loop.state.error == "No results to export"

    def test_export_unwritable(self, make_loop, tmp_path):
        loop = make_loop("SELECT 42 AS answer;")
        settle(loop)
        loop.handle_line(f"\\o {tmp_path / 'missing' / 'x.csv'}")
        assert loop.state.error.startswith("Cannot write")


@pytest.mark.unit
class TestTicks:
    def test_idle_and_busy_intervals(self, make_loop):
        loop = make_loop()
        assert loop.tick_interval == DEFAULT_TICK_MS / 1000
        loop.state.is_loading = True
        assert loop.tick_interval == BUSY_TICK_MS / 1000

    def test_busy_tick_never_slower_than_idle(self, conn, history):
        state = AppState(shared=SharedConnection(conn), history=history)
        loop = RunLoop(state, ScriptedSource(), RecordingRenderer(), tick_ms=50, busy_tick_ms=80)
        assert loop.busy_tick_ms == 50

    def test_step_repaints_once(self, make_loop):
        loop = make_loop()
        loop.step()
        assert loop.renderer.frames == 1
        assert loop.source.timeouts == [DEFAULT_TICK_MS / 1000]
