"""Decoders for UMSTEIGV, UMSTEIGL, UMSTEIGZ and DURCHBI."""

from collections.abc import Iterable

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.errors import MalformedRecord
from hrdf_pipeline.hrdf.records import (
    AdministrationTransferRecord,
    JourneyTransferRecord,
    LineTransferRecord,
    ThroughServiceRecord,
)
from hrdf_pipeline.hrdf.tokenizer import Field, FieldKind, column, parse_int, tokenize_fixed

ALL_STOPS = "@@@@@@@"
WILDCARD = "*"

_ADMINISTRATION_FIELDS = (
    Field("administration_1", 9, 14, FieldKind.FIXED),
    Field("administration_2", 16, 21, FieldKind.FIXED),
    Field("minutes", 23, 24, FieldKind.INT),
)
_LINE_FIELDS = (
    Field("administration_1", 9, 14, FieldKind.FIXED),
    Field("category_1", 16, 18, FieldKind.STR),
    Field("line_1", 20, 27, FieldKind.STR),
    Field("direction_1", 29, 29, FieldKind.STR),
    Field("administration_2", 31, 36, FieldKind.FIXED),
    Field("category_2", 38, 40, FieldKind.STR),
    Field("line_2", 42, 49, FieldKind.STR),
    Field("direction_2", 51, 51, FieldKind.STR),
    Field("minutes", 53, 55, FieldKind.INT),
)
_JOURNEY_FIELDS = (
    Field("stop_id", 1, 7, FieldKind.INT),
    Field("journey_number_1", 9, 14, FieldKind.INT),
    Field("administration_1", 16, 21, FieldKind.FIXED),
    Field("journey_number_2", 23, 28, FieldKind.INT),
    Field("administration_2", 30, 35, FieldKind.FIXED),
    Field("minutes", 37, 39, FieldKind.INT),
    Field("bitfield_id", 42, 47, FieldKind.INT, optional=True),
)
_THROUGH_FIELDS = (
    Field("journey_number_1", 1, 6, FieldKind.INT),
    Field("administration_1", 8, 13, FieldKind.FIXED),
    Field("stop_id_1", 15, 21, FieldKind.INT),
    Field("journey_number_2", 23, 28, FieldKind.INT),
    Field("administration_2", 30, 35, FieldKind.FIXED),
    Field("bitfield_id", 37, 42, FieldKind.INT),
    Field("stop_id_2", 44, 50, FieldKind.INT, optional=True),
)


def _stop_or_all(line: str) -> int | None:
    """Columns 1-7 hold a stop id, or ``@@@@@@@`` for every stop."""
    raw = column(line, 1, 7)
    if raw.strip() in ("", ALL_STOPS):
        return None
    return parse_int(raw, "stop_id")


def _wildcard(value: str) -> str | None:
    return None if value in ("", WILDCARD) else value


def _direction(value: str) -> str | None:
    if value not in ("", WILDCARD, "H", "R"):
        raise MalformedRecord(f"Direction must be H, R or *, got {value!r}", field="direction")
    return _wildcard(value)


class AdministrationTransferDecoder(Decoder):
    """UMSTEIGV: minimum transfer time between two administrations."""

    def decode_line(self, line_number: int, line: str) -> Iterable[AdministrationTransferRecord]:
        values = tokenize_fixed(line, _ADMINISTRATION_FIELDS)
        yield AdministrationTransferRecord(
            file=self.file_name, line=line_number, stop_id=_stop_or_all(line), **values
        )


class LineTransferDecoder(Decoder):
    """UMSTEIGL: transfer time between categories/lines/directions."""

    def decode_line(self, line_number: int, line: str) -> Iterable[LineTransferRecord]:
        values = tokenize_fixed(line, _LINE_FIELDS)
        for key in ("category_1", "line_1", "category_2", "line_2"):
            values[key] = _wildcard(values[key])
        for key in ("direction_1", "direction_2"):
            values[key] = _direction(values[key])
        yield LineTransferRecord(
            file=self.file_name,
            line=line_number,
            stop_id=_stop_or_all(line),
            guaranteed=column(line, 56, 56) == "!",
            **values,
        )


class JourneyTransferDecoder(Decoder):
    """UMSTEIGZ: transfer time between two specific journeys at a stop."""

    def decode_line(self, line_number: int, line: str) -> Iterable[JourneyTransferRecord]:
        values = tokenize_fixed(line, _JOURNEY_FIELDS)
        yield JourneyTransferRecord(
            file=self.file_name,
            line=line_number,
            guaranteed=column(line, 40, 40) == "!",
            **values,
        )


class ThroughServiceDecoder(Decoder):
    """DURCHBI: passengers may stay on board from journey 1 into journey 2."""

    def decode_line(self, line_number: int, line: str) -> Iterable[ThroughServiceRecord]:
        values = tokenize_fixed(line, _THROUGH_FIELDS)
        yield ThroughServiceRecord(file=self.file_name, line=line_number, **values)
