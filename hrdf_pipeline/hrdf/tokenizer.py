"""Line tokenizer for fixed-column and delimited HRDF files.

Columns are 1-based and inclusive, as in the HRDF documentation. Every
parse function is side-effect-free and raises ``MalformedRecord`` carrying
the file name, line number and offending field.
"""

import csv
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from hrdf_pipeline.hrdf.errors import MalformedRecord

_INT_RE = re.compile(r"^-?\d+$")
_DECIMAL_RE = re.compile(r"^-?\d+(\.\d+)?$")
_DATE_RE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")
_TIME_RE = re.compile(r"^(-?)(\d{1,5})$")
_HEX_RE = re.compile(r"^[0-9A-Fa-f]+$")


class FieldKind(Enum):
    """Typed interpretations of a column slice."""

    INT = "int"
    DECIMAL = "decimal"
    STR = "str"  # trimmed
    FIXED = "fixed"  # exact width, untrimmed
    DATE = "date"  # dd.mm.yyyy
    TIME = "time"  # signed HHHMM
    HEX = "hex"


@dataclass(frozen=True)
class Field:
    """One column of a fixed-width layout. ``end=None`` runs to end of line."""

    name: str
    start: int
    end: int | None = None
    kind: FieldKind = FieldKind.STR
    optional: bool = False


@dataclass(frozen=True)
class TimeValue:
    """A scheduled time in minutes after the service day's midnight.

    ``restricted`` is set when the source carried a leading minus sign,
    which marks a stop where boarding or alighting is not possible.
    """

    minutes: int
    restricted: bool = False

    def __str__(self) -> str:
        hours, minutes = divmod(self.minutes, 60)
        return f"{'-' if self.restricted else ''}{hours:02d}:{minutes:02d}"


def parse_int(text: str, field: str = "") -> int:
    """Parse a (possibly zero padded) integer."""
    value = text.strip()
    if not _INT_RE.match(value):
        raise MalformedRecord(f"Expected integer, got {text!r}", field=field)
    return int(value)


def parse_date(text: str, field: str = "") -> date:
    """Parse a dd.mm.yyyy date."""
    match = _DATE_RE.match(text.strip())
    if not match:
        raise MalformedRecord(f"Expected date dd.mm.yyyy, got {text!r}", field=field)
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise MalformedRecord(f"Invalid date {text!r}: {e}", field=field) from e


def parse_time(text: str, field: str = "") -> TimeValue:
    """Parse a signed HHHMM time. Hours past 23 belong to the following day."""
    match = _TIME_RE.match(text.strip())
    if not match:
        raise MalformedRecord(f"Expected time HHHMM, got {text!r}", field=field)
    sign, digits = match.groups()
    hours, minutes = divmod(int(digits), 100)
    if minutes >= 60:
        raise MalformedRecord(f"Minutes out of range in time {text!r}", field=field)
    return TimeValue(minutes=hours * 60 + minutes, restricted=sign == "-")


def _convert(raw: str, spec: Field) -> Any:
    if spec.kind is FieldKind.FIXED:
        return raw
    value = raw.strip()
    if spec.kind is FieldKind.STR:
        return value
    if spec.kind is FieldKind.INT:
        return parse_int(value, spec.name)
    if spec.kind is FieldKind.DECIMAL:
        if not _DECIMAL_RE.match(value):
            raise MalformedRecord(f"Expected decimal, got {raw!r}", field=spec.name)
        return float(value)
    if spec.kind is FieldKind.DATE:
        return parse_date(value, spec.name)
    if spec.kind is FieldKind.TIME:
        return parse_time(value, spec.name)
    if not _HEX_RE.match(value):
        raise MalformedRecord(f"Expected hexadecimal digits, got {raw!r}", field=spec.name)
    return value.upper()


def tokenize_fixed(line: str, fields: tuple[Field, ...] | list[Field]) -> dict[str, Any]:
    """Split ``line`` into typed values according to a fixed-column layout.

    Optional fields that are blank or beyond the end of the line yield
    ``None``. A mandatory field that is cut short or blank is malformed.
    """
    values: dict[str, Any] = {}
    for spec in fields:
        end = len(line) if spec.end is None else spec.end
        raw = line[spec.start - 1 : end]
        if not raw.strip():
            if spec.optional:
                values[spec.name] = None
                continue
            raise MalformedRecord(f"Missing value in columns {spec.start}-{end}", field=spec.name)
        if spec.kind is FieldKind.FIXED and spec.end is not None and len(raw) != end - spec.start + 1:
            raise MalformedRecord(
                f"Expected {end - spec.start + 1} characters, got {len(raw)}", field=spec.name
            )
        values[spec.name] = _convert(raw, spec)
    return values


def tokenize_delimited(line: str, delimiter: str = " ", quotechar: str = '"') -> list[str]:
    """Split a delimiter separated line, honouring quoted values.

    Runs of the delimiter collapse, so column alignment padding is ignored.
    """
    stripped = line.strip()
    if stripped.count(quotechar) % 2:
        raise MalformedRecord("Unterminated quote")
    if not stripped:
        return []
    reader = csv.reader([stripped], delimiter=delimiter, quotechar=quotechar, skipinitialspace=True)
    return [token for token in next(reader) if token]


def strip_comment(line: str, marker: str = "%") -> str:
    """Drop a trailing ``%`` comment."""
    index = line.find(marker)
    if index == -1:
        return line.rstrip()
    return line[:index].rstrip()


def column(line: str, start: int, end: int | None = None) -> str:
    """Return the raw text of a 1-based inclusive column range."""
    return line[start - 1 : end]
