"""SQL Server client for mssql-tui.

Wraps a pymssql connection: sends one batch, collects every result set
with its wire-typed columns, and maps driver exceptions to the
MssqlTuiError hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import pymssql
import structlog

from mssql_tui.core.decoder import wire_type_for
from mssql_tui.core.exceptions import MssqlTuiError, NetworkError, TimeoutError

if TYPE_CHECKING:
    from mssql_tui.core.config import ResolvedConfig
    from mssql_tui.core.decoder import WireType

_TIMEOUT_MARKERS = ("timed out", "timeout expired")


@dataclass
class RawResultSet:
    """One result set as returned by the driver, before decoding."""

    columns: list[tuple[str, WireType | str]] = field(default_factory=list)
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    rowcount: int = -1


class Connection(Protocol):
    """What the executor, rewriter and schema explorer need from a connection."""

    @property
    def database(self) -> str: ...

    def run_batch(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> list[RawResultSet]: ...


def _column_values(rows: list[tuple[Any, ...]], index: int) -> list[Any]:
    return [row[index] for row in rows if index < len(row)]


def _is_timeout(exc: Exception) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _TIMEOUT_MARKERS)


class MssqlClient:
    """Synchronous SQL Server client using pymssql."""

    def __init__(self, config: ResolvedConfig) -> None:
        self.config = config
        self._connection: Any = None

    def __enter__(self) -> MssqlClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def database(self) -> str:
        return self.config.database

    def _connect(self) -> Any:
        if self._connection is not None:
            return self._connection

        log = structlog.get_logger()
        kwargs: dict[str, Any] = {
            "server": self.config.host,
            "port": str(self.config.port),
            "user": self.config.user,
            "password": self.config.password,
            "database": self.config.database,
            "login_timeout": self.config.login_timeout,
            "timeout": self.config.query_timeout,
            "appname": self.config.app_name,
            "autocommit": True,
        }
        if self.config.tds_version:
            kwargs["tds_version"] = self.config.tds_version

        try:
            self._connection = pymssql.connect(**kwargs)
        except pymssql.Error as e:
            msg = (
                f"Connection failed to {self.config.host}:{self.config.port} "
                f"database '{self.config.database}': {e}"
            )
            if _is_timeout(e):
                raise TimeoutError(msg) from e
            raise NetworkError(msg) from e

        log.debug(
            "connected",
            host=self.config.host,
            port=self.config.port,
            database=self.config.database,
        )
        return self._connection

    def connect(self) -> None:
        """Open the connection eagerly so connection errors surface at startup."""
        self._connect()

    def run_batch(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> list[RawResultSet]:
        """Send one batch and return all of its result sets in order."""
        log = structlog.get_logger()
        conn = self._connect()
        sql_normalized = " ".join(sql.split())
        log.debug("sending batch", sql=sql_normalized)

        try:
            cur = conn.cursor()
            try:
                cur.execute(sql, params)
                result_sets: list[RawResultSet] = []
                while True:
                    if cur.description:
                        rows = [tuple(r) for r in cur.fetchall()]
                        columns = [
                            (desc[0] or "", wire_type_for(desc[1], _column_values(rows, i)))
                            for i, desc in enumerate(cur.description)
                        ]
                        result_sets.append(
                            RawResultSet(columns=columns, rows=rows, rowcount=len(rows))
                        )
                    else:
                        result_sets.append(RawResultSet(rowcount=cur.rowcount))
                    if not cur.nextset():
                        break
            finally:
                cur.close()
        except pymssql.InterfaceError as e:
            log.error("connection lost", sql=sql_normalized, error=str(e))
            self._connection = None
            raise NetworkError(f"Connection error: {e}") from e
        except pymssql.OperationalError as e:
            if _is_timeout(e):
                log.error("query timeout", sql=sql_normalized)
                msg = f"Query timed out after {self.config.query_timeout}s: {e}"
                raise TimeoutError(msg) from e
            log.error("database error", sql=sql_normalized, error=str(e))
            raise MssqlTuiError(f"SQL error: {e}") from e
        except pymssql.Error as e:
            log.error("query error", sql=sql_normalized, error=str(e))
            raise MssqlTuiError(f"SQL error: {e}") from e

        return result_sets

    def reconnect(self) -> None:
        """Drop the current connection and open a new one."""
        self.close()
        self._connect()

    def test_connection(self) -> bool:
        try:
            self.run_batch("SELECT 1")
        except MssqlTuiError:
            return False
        return True

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
