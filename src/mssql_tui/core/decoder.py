"""Row decoding: driver column type + raw value -> Value.

Dispatch is by wire type. A raw value that does not fit its declared wire
type decodes to Null, and wire types outside the dispatch table go through
a fixed probe sequence, so ``decode`` never raises.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from mssql_tui.core.models import (
    INT64_MAX,
    INT64_MIN,
    NULL,
    BinaryValue,
    BoolValue,
    FloatValue,
    IntegerValue,
    TemporalValue,
    TextValue,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from mssql_tui.core.models import Value


class WireType(StrEnum):
    """TDS column types the decoder knows about."""

    NULL = "Null"
    BIT = "Bit"
    INT1 = "Int1"
    INT2 = "Int2"
    INT4 = "Int4"
    INT8 = "Int8"
    FLOAT4 = "Float4"
    FLOAT8 = "Float8"
    MONEY = "Money"
    MONEY4 = "Money4"
    DECIMAL = "Decimaln"
    NUMERIC = "Numericn"
    DATETIME = "Datetime"
    DATETIME2 = "Datetime2"
    SMALLDATETIME = "Datetime4"
    DATETIMEOFFSET = "DatetimeOffsetn"
    DATE = "Daten"
    TIME = "Timen"
    GUID = "Guid"
    CHAR = "BigChar"
    VARCHAR = "BigVarChar"
    NCHAR = "NChar"
    NVARCHAR = "NVarchar"
    TEXT = "Text"
    NTEXT = "NText"
    XML = "Xml"
    BINARY = "BigBinary"
    VARBINARY = "BigVarBin"
    IMAGE = "Image"


_DISPLAY_NAMES: dict[WireType, str] = {
    WireType.NULL: "NULL",
    WireType.BIT: "BIT",
    WireType.INT1: "TINYINT",
    WireType.INT2: "SMALLINT",
    WireType.INT4: "INT",
    WireType.INT8: "BIGINT",
    WireType.FLOAT4: "REAL",
    WireType.FLOAT8: "FLOAT",
    WireType.MONEY: "MONEY",
    WireType.MONEY4: "SMALLMONEY",
    WireType.DECIMAL: "DECIMAL",
    WireType.NUMERIC: "NUMERIC",
    WireType.DATETIME: "DATETIME",
    WireType.DATETIME2: "DATETIME2",
    WireType.SMALLDATETIME: "SMALLDATETIME",
    WireType.DATETIMEOFFSET: "DATETIMEOFFSET",
    WireType.DATE: "DATE",
    WireType.TIME: "TIME",
    WireType.GUID: "UNIQUEIDENTIFIER",
    WireType.CHAR: "CHAR",
    WireType.VARCHAR: "VARCHAR(MAX)",
    WireType.NCHAR: "NCHAR",
    WireType.NVARCHAR: "NVARCHAR",
    WireType.TEXT: "TEXT",
    WireType.NTEXT: "NTEXT",
    WireType.XML: "XML",
    WireType.BINARY: "BINARY",
    WireType.VARBINARY: "VARBINARY(MAX)",
    WireType.IMAGE: "IMAGE",
}

# Type codes reported in cursor.description by pymssql.
DBAPI_STRING = 1
DBAPI_BINARY = 2
DBAPI_NUMBER = 3
DBAPI_DATETIME = 4
DBAPI_DECIMAL = 5

_INT_RANGES: dict[WireType, tuple[int, int]] = {
    WireType.INT1: (0, 255),
    WireType.INT2: (-(2**15), 2**15 - 1),
    WireType.INT4: (-(2**31), 2**31 - 1),
    WireType.INT8: (INT64_MIN, INT64_MAX),
}

def _format_datetime(raw: datetime) -> str:
    return raw.replace(tzinfo=None).isoformat(sep=" ", timespec="seconds")


def _format_date(raw: date) -> str:
    if isinstance(raw, datetime):
        raw = raw.date()
    return raw.isoformat()


def _format_time(raw: datetime | time) -> str:
    if isinstance(raw, datetime):
        raw = raw.time()
    return raw.replace(tzinfo=None).isoformat(timespec="seconds")


def type_display_name(wire_type: WireType | str) -> str:
    """Declared-type label for a column, e.g. ``INT`` or ``NVARCHAR``."""
    if isinstance(wire_type, WireType):
        return _DISPLAY_NAMES[wire_type]
    return "UNKNOWN"


def wire_type_for(type_code: Any, values: Iterable[Any] = ()) -> WireType | str:
    """Map a DB-API type code and the column's values to a wire type.

    pymssql only reports five coarse type codes, so the values narrow the
    choice. Integer columns are sized from every value, not the first one.
    Codes outside that set come back as their string tag.
    """
    present = [v for v in values if v is not None]
    sample = present[0] if present else None
    if type_code == DBAPI_STRING:
        if isinstance(sample, uuid.UUID):
            return WireType.GUID
        return WireType.NVARCHAR
    if type_code == DBAPI_BINARY:
        if isinstance(sample, uuid.UUID):
            return WireType.GUID
        return WireType.VARBINARY
    if type_code == DBAPI_NUMBER:
        if present and all(isinstance(v, bool) for v in present):
            return WireType.BIT
        if any(isinstance(v, float) for v in present):
            return WireType.FLOAT8
        if any(_is_int(v) and not _in_range(v, WireType.INT4) for v in present):
            return WireType.INT8
        return WireType.INT4
    if type_code == DBAPI_DECIMAL:
        return WireType.DECIMAL
    if type_code == DBAPI_DATETIME:
        if isinstance(sample, datetime):
            return WireType.DATETIME2
        if isinstance(sample, date):
            return WireType.DATE
        if isinstance(sample, time):
            return WireType.TIME
        return WireType.DATETIME2
    return str(type_code)


def _in_range(value: int, wire_type: WireType) -> bool:
    low, high = _INT_RANGES[wire_type]
    return low <= value <= high


def _is_int(raw: Any) -> bool:
    return isinstance(raw, int) and not isinstance(raw, bool)


def _decode_bit(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, bool):
        return BoolValue(value=raw)
    if _is_int(raw) and raw in (0, 1):
        return BoolValue(value=bool(raw))
    return NULL


def _decode_int(raw: Any, wire_type: WireType) -> Value:
    if _is_int(raw) and _in_range(raw, wire_type):
        return IntegerValue(value=int(raw))
    return NULL


def _decode_float(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, float):
        return FloatValue(value=raw)
    if _is_int(raw) or isinstance(raw, Decimal):
        try:
            return FloatValue(value=float(raw))
        except OverflowError:
            return NULL
    return NULL


def _decode_decimal(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, Decimal) and raw.is_finite():
        return TextValue(value=format(raw, "f"))
    if _is_int(raw):
        return TextValue(value=str(raw))
    return NULL


def _decode_text(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, str):
        return TextValue(value=raw)
    return NULL


def _decode_datetime(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, datetime):
        return TemporalValue(value=_format_datetime(raw))
    return NULL


def _decode_date(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, date):
        return TemporalValue(value=_format_date(raw))
    if isinstance(raw, str):
        # Older TDS protocol versions hand DATE columns over as text.
        try:
            parsed = date.fromisoformat(raw.strip()[:10])
        except ValueError:
            return NULL
        return TemporalValue(value=_format_date(parsed))
    return NULL


def _decode_time(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, (datetime, time)):
        return TemporalValue(value=_format_time(raw))
    return NULL


def _decode_guid(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, uuid.UUID):
        return TextValue(value=str(raw))
    try:
        if isinstance(raw, str):
            return TextValue(value=str(uuid.UUID(raw)))
        if isinstance(raw, bytes) and len(raw) == 16:
            return TextValue(value=str(uuid.UUID(bytes_le=raw)))
    except ValueError:
        return NULL
    return NULL


def _decode_binary(raw: Any, wire_type: WireType) -> Value:
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return BinaryValue(value=bytes(raw))
    return NULL


def _decode_null(raw: Any, wire_type: WireType) -> Value:
    return NULL


_DECODERS: dict[WireType, Callable[[Any, WireType], Value]] = {
    WireType.NULL: _decode_null,
    WireType.BIT: _decode_bit,
    WireType.INT1: _decode_int,
    WireType.INT2: _decode_int,
    WireType.INT4: _decode_int,
    WireType.INT8: _decode_int,
    WireType.FLOAT4: _decode_float,
    WireType.FLOAT8: _decode_float,
    WireType.MONEY: _decode_float,
    WireType.MONEY4: _decode_float,
    WireType.DECIMAL: _decode_decimal,
    WireType.NUMERIC: _decode_decimal,
    WireType.DATETIME: _decode_datetime,
    WireType.DATETIME2: _decode_datetime,
    WireType.SMALLDATETIME: _decode_datetime,
    WireType.DATETIMEOFFSET: _decode_datetime,
    WireType.DATE: _decode_date,
    WireType.TIME: _decode_time,
    WireType.GUID: _decode_guid,
    WireType.CHAR: _decode_text,
    WireType.VARCHAR: _decode_text,
    WireType.NCHAR: _decode_text,
    WireType.NVARCHAR: _decode_text,
    WireType.TEXT: _decode_text,
    WireType.NTEXT: _decode_text,
    WireType.XML: _decode_text,
    WireType.BINARY: _decode_binary,
    WireType.VARBINARY: _decode_binary,
    WireType.IMAGE: _decode_binary,
}


def _probe_text(raw: Any) -> Value | None:
    if isinstance(raw, str):
        return TextValue(value=raw)
    return None


def _probe_temporal(raw: Any) -> Value | None:
    if isinstance(raw, datetime):
        return TemporalValue(value=_format_datetime(raw))
    if isinstance(raw, date):
        return TemporalValue(value=_format_date(raw))
    if isinstance(raw, time):
        return TemporalValue(value=_format_time(raw))
    return None


def _probe_int(raw: Any) -> Value | None:
    if _is_int(raw) and INT64_MIN <= raw <= INT64_MAX:
        return IntegerValue(value=int(raw))
    return None


def _probe_float(raw: Any) -> Value | None:
    if isinstance(raw, float):
        return FloatValue(value=raw)
    return None


def _probe_decimal(raw: Any) -> Value | None:
    if isinstance(raw, Decimal) and raw.is_finite():
        return TextValue(value=format(raw, "f"))
    return None


_PROBES: tuple[Callable[[Any], Value | None], ...] = (
    _probe_text,
    _probe_temporal,
    _probe_int,
    _probe_float,
    _probe_decimal,
)


def decode(wire_type: WireType | str, raw: Any) -> Value:
    """Decode one cell. Always returns exactly one Value."""
    if raw is None:
        return NULL

    if isinstance(wire_type, WireType):
        return _DECODERS[wire_type](raw, wire_type)

    for probe in _PROBES:
        value = probe(raw)
        if value is not None:
            return value
    return TextValue(value=f"<{wire_type}>")
