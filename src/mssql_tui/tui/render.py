"""Rich rendering of the application state.

``render_screen`` is a pure function of the state. ``RichRenderer`` wraps
it in a ``rich.live.Live`` display and skips repaints when nothing visible
has changed since the last frame.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich import box
from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from mssql_tui.cli.helpers import format_duration, truncate
from mssql_tui.core.schema import NodeKind
from mssql_tui.tui import theme
from mssql_tui.tui.state import ActivePanel, AppState, ResultsTab

if TYPE_CHECKING:
    from types import TracebackType

MAX_CELL_WIDTH = 40

HELP_TEXT = """\
Type SQL and end it with ';' or a line containing GO (a blank line also submits).
  \\q            quit                    \\r            re-run current query
  \\p  \\n        previous/next history   \\f            format current query
  \\j  \\k        move row selection      \\tab NAME     data | columns | stats
  \\s            schema panel            \\t N  \\i N    toggle/insert schema node N
  \\h [TERM]     history panel           \\l N          load history entry N
  \\o FILE       export result (.csv/.json/.txt)
  \\c            clear query             \\?            toggle this help"""


def _panel(body: RenderableType, title: str, active: bool) -> Panel:
    return Panel(
        body,
        title=Text(title),
        title_align="left",
        border_style=theme.BORDER_ACTIVE if active else theme.BORDER_INACTIVE,
        box=box.ROUNDED,
    )


def _header(state: AppState) -> Text:
    text = Text()
    if state.is_loading:
        text.append(f"{state.spinner} Executing query...", style=theme.WARNING)
    else:
        text.append("● Connected", style=theme.SUCCESS)
    text.append(f"  {state.database}", style=theme.PRIMARY)
    if state.server_version:
        text.append(f"  {state.server_version}", style=theme.MUTED)
    return text


def _query_panel(state: AppState) -> Panel:
    body: RenderableType
    if state.query:
        body = Syntax(state.query, "sql", theme="ansi_dark", word_wrap=True)
    else:
        body = Text("Enter a query...", style=theme.MUTED)
    return _panel(body, "Query", state.active_panel == ActivePanel.QUERY_EDITOR)


def _data_table(state: AppState, max_rows: int) -> RenderableType:
    result = state.result
    if not result.columns:
        if result.messages:
            return Text("\n".join(result.messages), style=theme.MUTED)
        return Text("No results", style=theme.MUTED)

    table = Table(box=box.SIMPLE_HEAD, header_style=theme.HEADER, show_lines=False)
    table.add_column("#", style=theme.MUTED, justify="right")
    for col in result.columns:
        table.add_column(Text(col.name), max_width=min(col.observed_max_width, MAX_CELL_WIDTH) + 2)

    start = state.results_scroll
    for offset, row in enumerate(result.rows[start : start + max_rows]):
        index = start + offset
        cells = [Text(str(index + 1))]
        for value in row:
            cells.append(
                Text(
                    truncate(value.to_display_string(), MAX_CELL_WIDTH),
                    style=theme.VALUE_STYLES.get(value.kind, ""),
                )
            )
        table.add_row(
            *cells,
            style=theme.SELECTED_ROW if index == state.results_selected else None,
        )
    return table


def _columns_table(state: AppState) -> RenderableType:
    table = Table(box=box.SIMPLE_HEAD, header_style=theme.HEADER)
    table.add_column("Column")
    table.add_column("Type")
    table.add_column("Width", justify="right")
    for col in state.result.columns:
        table.add_row(Text(col.name), Text(col.declared_type), str(col.observed_max_width))
    return table


def _stats_table(state: AppState) -> RenderableType:
    result = state.result
    table = Table(box=None, show_header=False)
    table.add_column(style=theme.PRIMARY)
    table.add_column()
    table.add_row("Rows", str(result.row_count))
    table.add_row("Columns", str(len(result.columns)))
    table.add_row("Execution time", format_duration(result.execution_time))
    if result.affected_rows is not None:
        table.add_row("Affected rows", str(result.affected_rows))
    for message in result.messages:
        table.add_row("Message", Text(message))
    return table


def _results_panel(state: AppState, max_rows: int) -> Panel:
    body: RenderableType
    if state.results_tab == ResultsTab.COLUMNS:
        body = _columns_table(state)
    elif state.results_tab == ResultsTab.STATS:
        body = _stats_table(state)
    else:
        body = _data_table(state, max_rows)

    tabs = " | ".join(
        f"[{tab.value}]" if tab == state.results_tab else tab.value for tab in ResultsTab
    )
    title = f"Results ({state.result.row_count} rows)  {tabs}"
    return _panel(body, title, state.active_panel == ActivePanel.RESULTS)


_NODE_ICONS: dict[NodeKind, str] = {
    NodeKind.TABLE: "▦",
    NodeKind.VIEW: "◫",
    NodeKind.PROCEDURE: "ƒ",
    NodeKind.COLUMN: "·",
}


def _schema_panel(state: AppState) -> Panel:
    lines = Text()
    rows = state.visible_schema()
    if not rows:
        lines.append("Schema not loaded", style=theme.MUTED)
    for position, (_path, depth, node) in enumerate(rows):
        if node.kind == NodeKind.FOLDER:
            icon = "▾" if node.expanded else "▸"
        else:
            icon = _NODE_ICONS.get(node.kind, " ")
        style = theme.SELECTED_ROW if position == state.schema_selected else ""
        lines.append(f"{position:>3} {'  ' * depth}{icon} {node.object_name}\n", style=style)
    return _panel(lines, "Schema", state.active_panel == ActivePanel.SCHEMA)


def _history_panel(state: AppState, max_rows: int) -> Panel:
    table = Table(box=box.SIMPLE_HEAD, header_style=theme.HEADER)
    table.add_column("#", justify="right", style=theme.MUTED)
    table.add_column("When", style=theme.MUTED)
    table.add_column("Query")
    table.add_column("Rows", justify="right")
    table.add_column("Time", justify="right")
    for index, entry in enumerate(state.history_entries()[:max_rows]):
        table.add_row(
            str(index),
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            Text(truncate(" ".join(entry.query.split()), 60)),
            "" if entry.row_count is None else str(entry.row_count),
            f"{entry.execution_time_ms}ms",
            style=theme.SELECTED_ROW if index == state.history_selected else None,
        )
    title = "History"
    if state.history_filter:
        title += f" (search: {state.history_filter})"
    return _panel(table, title, state.active_panel == ActivePanel.HISTORY)


def _footer(state: AppState) -> Text:
    if state.error:
        return Text(f"Error: {state.error}", style=theme.ERROR)
    if state.message:
        return Text(state.message, style=theme.SUCCESS)
    return Text("\\? for help, \\q to quit", style=theme.MUTED)


def render_screen(state: AppState, max_rows: int = 20) -> RenderableType:
    parts: list[RenderableType] = [_header(state), _query_panel(state)]
    if state.active_panel == ActivePanel.SCHEMA:
        parts.append(_schema_panel(state))
    elif state.active_panel == ActivePanel.HISTORY:
        parts.append(_history_panel(state, max_rows))
    else:
        parts.append(_results_panel(state, max_rows))
    if state.show_help:
        parts.append(Text(HELP_TEXT, style=theme.MUTED))
    parts.append(_footer(state))
    return Group(*parts)


def frame_key(state: AppState) -> tuple[Any, ...]:
    """Everything the screen depends on. Equal keys render identical frames."""
    return (
        state.query,
        id(state.result),
        state.is_loading,
        state.spinner_frame if state.is_loading else 0,
        state.error,
        state.message,
        state.active_panel,
        state.results_tab,
        state.results_selected,
        state.results_scroll,
        tuple((path, node.expanded) for path, _, node in state.visible_schema()),
        state.schema_selected,
        state.history_filter,
        state.history_selected,
        len(state.history),
        state.server_version,
        state.show_help,
    )


class RichRenderer:
    """Live terminal display, repainted from the run loop."""

    def __init__(self, console: Console | None = None, max_rows: int = 20) -> None:
        self.console = console or Console()
        self.max_rows = max_rows
        self._live: Live | None = None
        self._last_key: tuple[Any, ...] | None = None

    def __enter__(self) -> RichRenderer:
        self._live = Live(console=self.console, auto_refresh=False, transient=False)
        self._live.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def repaint(self, state: AppState) -> bool:
        """Redraw if the visible state changed. Returns True when a frame was drawn."""
        key = frame_key(state)
        if key == self._last_key:
            return False
        self._last_key = key
        screen = render_screen(state, self.max_rows)
        if self._live is not None:
            self._live.update(screen, refresh=True)
        else:
            self.console.print(screen)
        return True
