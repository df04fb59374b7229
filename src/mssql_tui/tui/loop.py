"""The interactive run loop.

One foreground loop: wait for input at most one tick, apply it, drain the
background query's completion, advance the spinner and repaint. The tick
shortens while a query is loading so the spinner animates smoothly.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from mssql_tui.cli.output import export_result
from mssql_tui.core.exceptions import MssqlTuiError
from mssql_tui.tui.state import ActivePanel, ResultsTab

if TYPE_CHECKING:
    from collections.abc import Callable

    from mssql_tui.tui.input import InputSource
    from mssql_tui.tui.state import AppState

DEFAULT_TICK_MS = 250
BUSY_TICK_MS = 80


class Renderer(Protocol):
    def repaint(self, state: AppState) -> bool: ...


def _is_terminator(line: str) -> bool:
    stripped = line.strip()
    return stripped.upper() == "GO" or stripped.endswith(";")


class RunLoop:
    """Drives an AppState from an input source to a renderer."""

    def __init__(
        self,
        state: AppState,
        source: InputSource,
        renderer: Renderer,
        tick_ms: int = DEFAULT_TICK_MS,
        busy_tick_ms: int = BUSY_TICK_MS,
    ) -> None:
        self.state = state
        self.source = source
        self.renderer = renderer
        self.tick_ms = tick_ms
        self.busy_tick_ms = min(busy_tick_ms, tick_ms)
        self._buffer: list[str] = []
        self._commands: dict[str, Callable[[str], None]] = {
            "q": self._quit,
            "r": self._run,
            "p": lambda _: self.state.history_previous(),
            "n": lambda _: self.state.history_next(),
            "f": lambda _: self.state.format_query(),
            "c": self._clear,
            "j": lambda arg: self._move(arg, 1),
            "k": lambda arg: self._move(arg, -1),
            "tab": self._tab,
            "s": self._schema,
            "t": lambda arg: self._schema_action(arg, self.state.toggle_schema_node),
            "i": lambda arg: self._schema_action(arg, self.state.insert_schema_object),
            "h": self._history,
            "l": self._load_history,
            "o": self._export,
            "?": self._help,
        }

    @property
    def tick_interval(self) -> float:
        """Seconds to wait for input on this tick."""
        ms = self.busy_tick_ms if self.state.is_loading else self.tick_ms
        return ms / 1000

    def run(self) -> None:
        self.renderer.repaint(self.state)
        while not self.state.should_quit:
            self.step()

    def step(self) -> None:
        """One tick: input, completion, spinner, repaint."""
        line = self.source.poll(self.tick_interval)
        if line is not None:
            self.handle_line(line)
        self.state.check_query_completion()
        self.state.tick()
        self.renderer.repaint(self.state)

    # -- input --------------------------------------------------------------

    def handle_line(self, line: str) -> None:
        if not self._buffer and line.startswith("\\"):
            self.handle_command(line[1:])
            return

        if not line.strip():
            if self._buffer:
                self._submit()
            return

        self._buffer.append(line)
        if _is_terminator(line):
            self._submit()

    def _submit(self) -> None:
        lines = self._buffer
        self._buffer = []
        if lines and lines[-1].strip().upper() == "GO":
            lines = lines[:-1]
        text = "\n".join(lines).strip()
        if not text:
            return
        if self.state.is_loading:
            self.state.message = "A query is already running"
            return
        self.state.query = text
        self.state.history.reset_navigation()
        self.state.start_query()

    def handle_command(self, command_line: str) -> None:
        name, _, arg = command_line.strip().partition(" ")
        handler = self._commands.get(name.lower())
        if handler is None:
            self.state.error = f"Unknown command: \\{name}"
            return
        self.state.error = None
        handler(arg.strip())

    # -- commands -----------------------------------------------------------

    def _quit(self, _: str) -> None:
        self.state.should_quit = True

    def _run(self, _: str) -> None:
        if not self.state.start_query() and self.state.is_loading:
            self.state.message = "A query is already running"

    def _clear(self, _: str) -> None:
        self._buffer = []
        self.state.clear_query()

    def _move(self, arg: str, sign: int) -> None:
        steps = int(arg) if arg.isdigit() else 1
        panel = self.state.active_panel
        if panel == ActivePanel.SCHEMA:
            last = max(len(self.state.visible_schema()) - 1, 0)
            self.state.schema_selected = min(max(self.state.schema_selected + sign * steps, 0), last)
        elif panel == ActivePanel.HISTORY:
            last = max(len(self.state.history_entries()) - 1, 0)
            self.state.history_selected = min(max(self.state.history_selected + sign * steps, 0), last)
        else:
            self.state.active_panel = ActivePanel.RESULTS
            self.state.move_selection(sign * steps)

    def _tab(self, arg: str) -> None:
        try:
            self.state.results_tab = ResultsTab(arg.lower())
        except ValueError:
            names = ", ".join(tab.value for tab in ResultsTab)
            self.state.error = f"Unknown tab {arg!r}. Available: {names}"
            return
        self.state.active_panel = ActivePanel.RESULTS

    def _schema(self, _: str) -> None:
        if self.state.active_panel == ActivePanel.SCHEMA:
            self.state.active_panel = ActivePanel.RESULTS
            return
        if not self.state.schema_tree:
            self.state.load_schema()
        self.state.active_panel = ActivePanel.SCHEMA

    def _schema_action(self, arg: str, action: Callable[[int | None], None]) -> None:
        self.state.active_panel = ActivePanel.SCHEMA
        if arg and not arg.isdigit():
            self.state.error = f"Expected a node number, got {arg!r}"
            return
        action(int(arg) if arg else None)

    def _history(self, arg: str) -> None:
        if self.state.active_panel == ActivePanel.HISTORY and not arg:
            self.state.active_panel = ActivePanel.RESULTS
            return
        self.state.history_filter = arg
        self.state.history_selected = 0
        self.state.active_panel = ActivePanel.HISTORY

    def _load_history(self, arg: str) -> None:
        if arg and not arg.isdigit():
            self.state.error = f"Expected an entry number, got {arg!r}"
            return
        self.state.load_history_entry(int(arg) if arg else None)

    def _export(self, arg: str) -> None:
        log = structlog.get_logger()
        if not arg:
            self.state.error = "Usage: \\o FILE"
            return
        if not self.state.result.columns:
            self.state.error = "No results to export"
            return
        path = Path(arg.strip("\"'")).expanduser()
        try:
            fmt = export_result(self.state.result, path)
        except MssqlTuiError as e:
            self.state.error = e.message
            return
        log.info("result exported", path=str(path), format=fmt)
        self.state.message = f"Exported {self.state.result.row_count} row(s) to {path} ({fmt})"

    def _help(self, _: str) -> None:
        self.state.show_help = not self.state.show_help
