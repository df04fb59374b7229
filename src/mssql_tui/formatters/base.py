"""Formatter protocol and the format registry.

Each formatter module registers its class under a format name together
with the file extensions it writes and the display options it accepts.
Callers pass every option they have; the registry hands each formatter
only the ones it declared.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from mssql_tui.core.exceptions import OutputError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from mssql_tui.core.models import QueryResult


@runtime_checkable
class Formatter(Protocol):
    """Turns a QueryResult into output lines, one string per line."""

    def format(self, result: QueryResult) -> Iterator[str]: ...


@dataclass(frozen=True)
class FormatterEntry:
    name: str
    factory: type[Formatter]
    extensions: tuple[str, ...] = ()
    options: tuple[str, ...] = ()


class FormatterRegistry:
    """Formatters by name and by export file extension."""

    def __init__(self) -> None:
        self._entries: dict[str, FormatterEntry] = {}

    def register(
        self,
        name: str,
        factory: type[Formatter],
        *,
        extensions: tuple[str, ...] = (),
        options: tuple[str, ...] = (),
    ) -> None:
        self._entries[name] = FormatterEntry(
            name=name,
            factory=factory,
            extensions=tuple(ext.lower() for ext in extensions),
            options=options,
        )

    def get(self, name: str, **options: Any) -> Formatter:
        """Build the named formatter with the options it accepts.

        Raises OutputError for an unregistered name.
        """
        entry = self._entries.get(name)
        if entry is None:
            msg = f"Unknown output format {name!r}. Available: {', '.join(self.available)}"
            raise OutputError(msg)
        accepted = {key: value for key, value in options.items() if key in entry.options}
        return entry.factory(**accepted)

    def for_extension(self, suffix: str) -> str | None:
        """Format name registered for a file suffix such as ``.csv``."""
        suffix = suffix.lower()
        for entry in self._entries.values():
            if suffix in entry.extensions:
                return entry.name
        return None

    @property
    def available(self) -> list[str]:
        return sorted(self._entries)


registry = FormatterRegistry()
