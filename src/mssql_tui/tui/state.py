"""Application state for the interactive UI.

All fields are mutated from the single-threaded run loop only. The
background query reports back through the runner's one-shot channel,
which ``check_query_completion`` drains once per tick.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from mssql_tui.core.bridge import QueryRunner, SharedConnection
from mssql_tui.core.exceptions import MssqlTuiError, QueryInterruptedError
from mssql_tui.core.executor import execute
from mssql_tui.core.models import QueryResult
from mssql_tui.core.schema import (
    NodeKind,
    NodePath,
    SchemaNode,
    build_schema_tree,
    load_columns_into,
    node_at,
    server_version,
    toggle_node,
    visible_nodes,
)
from mssql_tui.core.sql_format import format_sql
from mssql_tui.tui.theme import SPINNER_FRAMES

if TYPE_CHECKING:
    from mssql_tui.core.client import Connection
    from mssql_tui.core.history import QueryHistory
    from mssql_tui.core.models import HistoryEntry


class ActivePanel(StrEnum):
    QUERY_EDITOR = "query"
    RESULTS = "results"
    SCHEMA = "schema"
    HISTORY = "history"


class ResultsTab(StrEnum):
    DATA = "data"
    COLUMNS = "columns"
    STATS = "stats"


@dataclass
class AppState:
    shared: SharedConnection
    history: QueryHistory
    executor: Callable[[Connection, str], QueryResult] = execute
    runner: QueryRunner = field(init=False)

    query: str = ""
    result: QueryResult = field(default_factory=QueryResult.empty)
    is_loading: bool = False
    error: str | None = None
    message: str | None = None

    active_panel: ActivePanel = ActivePanel.QUERY_EDITOR
    results_tab: ResultsTab = ResultsTab.DATA
    results_selected: int = 0
    results_scroll: int = 0

    schema_tree: list[SchemaNode] = field(default_factory=list)
    schema_selected: int = 0

    history_filter: str = ""
    history_selected: int = 0

    server_version: str = ""
    spinner_frame: int = 0
    show_help: bool = False
    should_quit: bool = False

    def __post_init__(self) -> None:
        self.runner = QueryRunner(self.shared, self.executor)

    @property
    def database(self) -> str:
        return self.shared.database

    @property
    def spinner(self) -> str:
        return SPINNER_FRAMES[self.spinner_frame % len(SPINNER_FRAMES)]

    def tick(self) -> None:
        if self.is_loading:
            self.spinner_frame = (self.spinner_frame + 1) % len(SPINNER_FRAMES)

    # -- query lifecycle ----------------------------------------------------

    def start_query(self) -> bool:
        """Run the current query in the background.

        No-op for blank text or while another query is loading.
        """
        if self.is_loading or not self.query.strip():
            return False
        if not self.runner.start(self.query):
            return False

        self.is_loading = True
        self.error = None
        self.message = None
        self.spinner_frame = 0
        return True

    def check_query_completion(self) -> bool:
        """Drain the pending query's outcome, if any. Returns True when state changed."""
        completion = self.runner.poll()
        if completion is None:
            return False

        log = structlog.get_logger()
        self.is_loading = False

        if completion.error is not None:
            self.error = completion.error.message
            self.message = None
            log.info("query failed", error=completion.error.message)
            return True

        result = completion.result
        if result is None:
            self.error = QueryInterruptedError().message
            self.message = None
            return True
        self.history.add(
            completion.query_text,
            int(result.execution_ms),
            result.row_count,
            self.database,
        )
        self.result = result
        self.results_selected = 0
        self.results_scroll = 0
        self.results_tab = ResultsTab.DATA
        self.active_panel = ActivePanel.RESULTS
        self.error = None
        self.message = f"{result.row_count} row(s) returned in {result.execution_ms:.2f}ms"
        return True

    # -- results navigation -------------------------------------------------

    def move_selection(self, delta: int, viewport: int = 20) -> None:
        if not self.result.rows:
            self.results_selected = 0
            self.results_scroll = 0
            return
        last = len(self.result.rows) - 1
        self.results_selected = min(max(self.results_selected + delta, 0), last)
        if self.results_selected < self.results_scroll:
            self.results_scroll = self.results_selected
        elif self.results_selected >= self.results_scroll + viewport:
            self.results_scroll = self.results_selected - viewport + 1

    # -- schema -------------------------------------------------------------

    def _foreground_busy(self) -> bool:
        if self.is_loading:
            self.message = "A query is running; try again when it finishes"
            return True
        return False

    def load_schema(self) -> None:
        """Load server version and the object tree on the foreground."""
        if self._foreground_busy():
            return
        try:
            with self.shared.session() as conn:
                self.server_version = server_version(conn)
            with self.shared.session() as conn:
                self.schema_tree = build_schema_tree(conn)
        except MssqlTuiError as e:
            self.error = f"Failed to load schema: {e.message}"
            return
        self.schema_selected = 0

    def visible_schema(self) -> list[tuple[NodePath, int, SchemaNode]]:
        return visible_nodes(self.schema_tree)

    def _schema_path(self, index: int | None) -> NodePath | None:
        rows = self.visible_schema()
        position = self.schema_selected if index is None else index
        if not 0 <= position < len(rows):
            return None
        return rows[position][0]

    def toggle_schema_node(self, index: int | None = None) -> None:
        """Expand or collapse a visible node, loading columns on first expand."""
        path = self._schema_path(index)
        if path is None:
            return
        node = node_at(self.schema_tree, path)
        if node is None:
            return
        if index is not None:
            self.schema_selected = index

        if node.is_relation and not node.expanded and not node.children:
            if self._foreground_busy():
                return
            try:
                with self.shared.session() as conn:
                    load_columns_into(conn, node)
            except MssqlTuiError as e:
                self.error = f"Failed to load columns: {e.message}"
                return
        if node.children or node.kind == NodeKind.FOLDER:
            toggle_node(self.schema_tree, path)

    def insert_schema_object(self, index: int | None = None) -> None:
        """Append the selected object name to the query text."""
        path = self._schema_path(index)
        if path is None:
            return
        node = node_at(self.schema_tree, path)
        if node is None or node.kind == NodeKind.FOLDER:
            return
        if node.kind == NodeKind.COLUMN:
            text = node.name.split(" (", 1)[0]
        else:
            text = node.name
        separator = "" if not self.query or self.query.endswith((" ", "\n")) else " "
        self.query = f"{self.query}{separator}{text}"
        self.active_panel = ActivePanel.QUERY_EDITOR

    # -- history ------------------------------------------------------------

    def history_entries(self) -> list[HistoryEntry]:
        """Newest first, filtered by the current search term."""
        entries = (
            self.history.search(self.history_filter)
            if self.history_filter
            else self.history.entries()
        )
        return list(reversed(entries))

    def load_history_entry(self, index: int | None = None) -> None:
        entries = self.history_entries()
        position = self.history_selected if index is None else index
        if not 0 <= position < len(entries):
            return
        self.query = entries[position].query
        self.active_panel = ActivePanel.QUERY_EDITOR

    def history_previous(self) -> None:
        entry = self.history.previous()
        if entry is not None:
            self.query = entry.query

    def history_next(self) -> None:
        entry = self.history.next()
        self.query = entry.query if entry is not None else ""

    # -- editor -------------------------------------------------------------

    def format_query(self) -> None:
        if self.query.strip():
            self.query = format_sql(self.query)

    def clear_query(self) -> None:
        self.query = ""
        self.history.reset_navigation()
