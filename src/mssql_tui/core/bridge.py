"""Hand-off between the UI loop and the background query.

At most one query runs at a time, on its own thread. The thread talks to
the UI only through a one-shot channel carrying a single outcome, which
the UI loop polls without blocking once per tick. The connection is a
shared resource behind a lock, held for exactly one round trip.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog

from mssql_tui.core.exceptions import MssqlTuiError, QueryInterruptedError
from mssql_tui.core.executor import execute

if TYPE_CHECKING:
    from mssql_tui.core.client import Connection
    from mssql_tui.core.models import QueryResult

T = TypeVar("T")


class ChannelEmpty(Exception):
    """Nothing has been sent yet."""


class ChannelClosed(Exception):
    """The sender finished without a value, or the value was already taken."""


class OneShot(Generic[T]):
    """Single-value channel: one send, one receive."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: T | None = None
        self._has_value = False
        self._closed = False

    def send(self, value: T) -> bool:
        """Deliver the value. Returns False if the channel is already closed."""
        with self._lock:
            if self._closed:
                return False
            self._value = value
            self._has_value = True
            self._closed = True
            return True

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def try_recv(self) -> T:
        """Take the value without blocking.

        Raises ChannelEmpty while the sender is still working and
        ChannelClosed once it is gone without a value.
        """
        with self._lock:
            if self._has_value:
                value = self._value
                self._value = None
                self._has_value = False
                return value  # type: ignore[return-value]
            if self._closed:
                raise ChannelClosed
            raise ChannelEmpty


class SharedConnection:
    """A connection guarded for exclusive use, one round trip at a time."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self._lock = threading.Lock()

    @property
    def database(self) -> str:
        return self._connection.database

    @contextmanager
    def session(self) -> Iterator[Connection]:
        with self._lock:
            yield self._connection


@dataclass
class PendingQuery:
    query_text: str
    channel: OneShot[QueryResult | MssqlTuiError]


@dataclass
class Completion:
    """What the UI loop learns when a pending query finishes."""

    query_text: str
    result: QueryResult | None = None
    error: MssqlTuiError | None = None


class QueryRunner:
    """Starts background queries and reports their completion."""

    def __init__(
        self,
        shared: SharedConnection,
        executor: Callable[[Connection, str], QueryResult] = execute,
    ) -> None:
        self.shared = shared
        self._executor = executor
        self.pending: PendingQuery | None = None

    @property
    def busy(self) -> bool:
        return self.pending is not None

    def start(self, query_text: str) -> bool:
        """Spawn execution of query_text. No-op for blank text or while busy."""
        if not query_text.strip() or self.pending is not None:
            return False

        channel: OneShot[QueryResult | MssqlTuiError] = OneShot()
        self.pending = PendingQuery(query_text=query_text, channel=channel)
        worker = threading.Thread(
            target=self._work,
            args=(query_text, channel),
            name="query-worker",
            daemon=True,
        )
        worker.start()
        return True

    def _work(self, query_text: str, channel: OneShot[QueryResult | MssqlTuiError]) -> None:
        log = structlog.get_logger()
        try:
            with self.shared.session() as conn:
                try:
                    outcome: QueryResult | MssqlTuiError = self._executor(conn, query_text)
                except MssqlTuiError as e:
                    outcome = e
            channel.send(outcome)
        except Exception:
            log.exception("query worker failed", sql=" ".join(query_text.split())[:100])
        finally:
            channel.close()

    def poll(self) -> Completion | None:
        """Check the pending query without blocking. Returns at most one completion."""
        if self.pending is None:
            return None

        pending = self.pending
        try:
            outcome = pending.channel.try_recv()
        except ChannelEmpty:
            return None
        except ChannelClosed:
            self.pending = None
            return Completion(query_text=pending.query_text, error=QueryInterruptedError())

        self.pending = None
        if isinstance(outcome, MssqlTuiError):
            return Completion(query_text=pending.query_text, error=outcome)
        return Completion(query_text=pending.query_text, result=outcome)
