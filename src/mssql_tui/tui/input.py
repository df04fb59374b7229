"""Non-blocking line input for the run loop."""

from __future__ import annotations

import os
import select
import sys
from typing import Protocol, TextIO

QUIT_COMMAND = "\\q"

_READ_SIZE = 4096


class InputSource(Protocol):
    def poll(self, timeout: float) -> str | None:
        """Return one complete line, or None if none arrived within timeout seconds."""
        ...


class StdinLineSource:
    """Reads whole lines from a terminal stream, waiting at most one tick.

    Bytes are read straight from the file descriptor into a local buffer, so
    several lines arriving at once (a paste) are handed out one per poll
    without waiting on ``select`` again. End of input is reported as the
    quit command so the loop exits cleanly.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdin
        self.encoding = getattr(self.stream, "encoding", None) or "utf-8"
        self._fd = self.stream.fileno()
        self._buffer = bytearray()
        self._eof = False

    def _take_line(self) -> str | None:
        end = self._buffer.find(b"\n")
        if end < 0:
            return None
        raw = bytes(self._buffer[:end])
        del self._buffer[: end + 1]
        return raw.decode(self.encoding, errors="replace").rstrip("\r")

    def poll(self, timeout: float) -> str | None:
        line = self._take_line()
        if line is not None:
            return line
        if self._eof:
            return QUIT_COMMAND

        ready, _, _ = select.select([self._fd], [], [], max(timeout, 0.0))
        if not ready:
            return None
        chunk = os.read(self._fd, _READ_SIZE)
        if not chunk:
            self._eof = True
            if self._buffer:
                # Unterminated last line.
                self._buffer.extend(b"\n")
                return self._take_line()
            return QUIT_COMMAND
        self._buffer.extend(chunk)
        return self._take_line()
