"""Query history: an append-only, size-capped log persisted as JSON.

History is best-effort. Load and save failures are logged and otherwise
ignored so they never get in the way of running queries.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog
from pydantic import TypeAdapter, ValidationError

from mssql_tui.core.models import HistoryEntry

DEFAULT_MAX_ENTRIES = 1000

_ENTRIES_ADAPTER = TypeAdapter(list[HistoryEntry])


def data_dir() -> Path:
    """Per-user data directory, honouring XDG_DATA_HOME."""
    base = os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / "mssql-tui"


def default_history_path() -> Path:
    return data_dir() / "history.json"


class QueryHistory:
    """Recency-ordered query log with a recall cursor."""

    def __init__(
        self, max_entries: int = DEFAULT_MAX_ENTRIES, path: Path | None = None
    ) -> None:
        self.max_entries = max_entries
        self.path = path if path is not None else default_history_path()
        self._entries: list[HistoryEntry] = []
        self._current_index: int | None = None
        self.load()

    def __len__(self) -> int:
        return len(self._entries)

    def add(
        self,
        query: str,
        execution_time_ms: int,
        row_count: int | None,
        database: str,
    ) -> bool:
        """Append an entry. Returns False when it repeats the last entry."""
        if self._entries and self._entries[-1].query.strip() == query.strip():
            return False

        self._entries.append(
            HistoryEntry(
                query=query,
                execution_time_ms=execution_time_ms,
                row_count=row_count,
                database=database,
            )
        )
        if len(self._entries) > self.max_entries:
            del self._entries[: len(self._entries) - self.max_entries]

        self._current_index = None
        self.save()
        return True

    def entries(self) -> list[HistoryEntry]:
        """All entries, oldest first."""
        return list(self._entries)

    def search(self, term: str) -> list[HistoryEntry]:
        term_lower = term.lower()
        return [e for e in self._entries if term_lower in e.query.lower()]

    def previous(self) -> HistoryEntry | None:
        """Step back towards older entries (up arrow)."""
        if not self._entries:
            return None

        if self._current_index is None:
            new_index = len(self._entries) - 1
        else:
            new_index = max(self._current_index - 1, 0)

        self._current_index = new_index
        return self._entries[new_index]

    def next(self) -> HistoryEntry | None:
        """Step forward towards newer entries (down arrow)."""
        if not self._entries or self._current_index is None:
            return None
        if self._current_index >= len(self._entries) - 1:
            return None

        self._current_index += 1
        return self._entries[self._current_index]

    def reset_navigation(self) -> None:
        self._current_index = None

    def clear(self) -> None:
        self._entries.clear()
        self._current_index = None
        self.save()

    def load(self) -> None:
        log = structlog.get_logger()
        if not self.path.exists():
            return
        try:
            entries = _ENTRIES_ADAPTER.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            log.debug("history not loaded", path=str(self.path), error=str(e))
            return
        self._entries = entries[-self.max_entries :] if self.max_entries else []

    def save(self) -> None:
        log = structlog.get_logger()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(_ENTRIES_ADAPTER.dump_json(self._entries, indent=2))
        except OSError as e:
            log.debug("history not saved", path=str(self.path), error=str(e))
