"""Result and history models for mssql-tui.

A cell is one of a closed set of ``Value`` variants. Each variant knows how
to render itself for display; nothing else in the system inspects raw
driver values after decoding.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictBytes,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class _ValueBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_display_string(self) -> str:
        raise NotImplementedError

    def to_json_value(self) -> Any:
        """Native JSON representation used by exporters."""
        return self.to_display_string()

    @property
    def is_null(self) -> bool:
        return False


class NullValue(_ValueBase):
    kind: Literal["null"] = "null"

    def to_display_string(self) -> str:
        return "NULL"

    def to_json_value(self) -> Any:
        return None

    @property
    def is_null(self) -> bool:
        return True


class BoolValue(_ValueBase):
    kind: Literal["bool"] = "bool"
    value: StrictBool

    def to_display_string(self) -> str:
        return "true" if self.value else "false"

    def to_json_value(self) -> Any:
        return self.value


class IntegerValue(_ValueBase):
    kind: Literal["integer"] = "integer"
    value: Annotated[StrictInt, Field(ge=INT64_MIN, le=INT64_MAX)]

    def to_display_string(self) -> str:
        return str(self.value)

    def to_json_value(self) -> Any:
        return self.value


class FloatValue(_ValueBase):
    kind: Literal["float"] = "float"
    value: StrictFloat

    def to_display_string(self) -> str:
        return f"{self.value:.6f}"

    def to_json_value(self) -> Any:
        return self.value


class TextValue(_ValueBase):
    kind: Literal["text"] = "text"
    value: StrictStr

    def to_display_string(self) -> str:
        return self.value


class TemporalValue(_ValueBase):
    """Date/time already rendered as YYYY-MM-DD[ HH:MM:SS] or HH:MM:SS."""

    kind: Literal["temporal"] = "temporal"
    value: StrictStr

    def to_display_string(self) -> str:
        return self.value


class BinaryValue(_ValueBase):
    kind: Literal["binary"] = "binary"
    value: StrictBytes

    def to_display_string(self) -> str:
        return "0x" + self.value.hex().upper()


Value = Annotated[
    NullValue
    | BoolValue
    | IntegerValue
    | FloatValue
    | TextValue
    | TemporalValue
    | BinaryValue,
    Field(discriminator="kind"),
]

NULL = NullValue()


class ColumnInfo(BaseModel):
    """Metadata for a single result column."""

    model_config = ConfigDict(frozen=True)

    name: str
    declared_type: str
    observed_max_width: int = 4


class QueryResult(BaseModel):
    """Immutable snapshot of one successful execution."""

    model_config = ConfigDict(frozen=True)

    columns: list[ColumnInfo]
    rows: list[list[Value]]
    row_count: int
    execution_time: timedelta = timedelta(0)
    affected_rows: int | None = None
    messages: list[str] = []

    @model_validator(mode="after")
    def check_row_widths(self) -> QueryResult:
        width = len(self.columns)
        for index, row in enumerate(self.rows):
            if len(row) != width:
                msg = f"row {index} has {len(row)} values, expected {width}"
                raise ValueError(msg)
        return self

    @classmethod
    def empty(cls) -> QueryResult:
        return cls(columns=[], rows=[], row_count=0)

    @property
    def execution_ms(self) -> float:
        return self.execution_time.total_seconds() * 1000


class HistoryEntry(BaseModel):
    """One executed query, as persisted in the history file."""

    query: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now().astimezone())
    execution_time_ms: int = 0
    row_count: int | None = None
    database: str = ""
