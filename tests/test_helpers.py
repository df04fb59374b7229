"""Tests for CLI formatting helpers."""

from datetime import timedelta

from mssql_tui.cli.helpers import format_duration, format_number, truncate

# -- format_duration --


def test_format_duration_none_returns_empty():
    assert format_duration(None) == ""


def test_format_duration_milliseconds():
    assert format_duration(timedelta(milliseconds=850)) == "850ms"


def test_format_duration_plain_number_is_milliseconds():
    assert format_duration(12.7) == "12ms"


def test_format_duration_seconds():
    assert format_duration(timedelta(seconds=2.35)) == "2.35s"


def test_format_duration_minutes():
    assert format_duration(timedelta(minutes=3, seconds=12)) == "3m 12s"


def test_format_duration_zero():
    assert format_duration(timedelta(0)) == "0ms"


# -- truncate --


def test_truncate_short_value_unchanged():
    assert truncate("abc", 10) == "abc"


def test_truncate_exact_length_unchanged():
    assert truncate("abcde", 5) == "abcde"


def test_truncate_adds_ellipsis():
    assert truncate("abcdefghij", 6) == "abc..."


def test_truncate_tiny_limit_cuts_without_ellipsis():
    assert truncate("abcdef", 2) == "ab"


# -- format_number --


def test_format_number_small():
    assert format_number(42) == "42"


def test_format_number_thousands():
    assert format_number(1234567) == "1,234,567"
