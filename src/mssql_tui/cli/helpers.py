"""Shared formatting helpers for CLI and UI output."""

from __future__ import annotations

from datetime import timedelta


def format_duration(d: timedelta | float | None) -> str:
    """Human-friendly elapsed time: ``850ms``, ``2.35s`` or ``3m 12s``.

    Plain numbers are taken as milliseconds.
    """
    if d is None:
        return ""
    ms = d.total_seconds() * 1000 if isinstance(d, timedelta) else float(d)
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1000:.2f}s"
    mins, secs = divmod(int(ms // 1000), 60)
    return f"{mins}m {secs}s"


def truncate(value: str, max_len: int) -> str:
    if len(value) <= max_len:
        return value
    if max_len <= 3:
        return value[:max_len]
    return value[: max_len - 3] + "..."


def format_number(n: int) -> str:
    """Thousands separators: 1234567 -> ``1,234,567``."""
    return f"{n:,}"
