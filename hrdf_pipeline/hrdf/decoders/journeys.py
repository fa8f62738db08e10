"""Decoder for the FPLAN journey file.

FPLAN is a block format. A ``*Z`` header opens a journey; the lines that
follow are either sub-records (``*G``, ``*A VE``, ``*A``, ``*I``, ``*L``,
``*R``, ``*CI``, ``*CO``, ...) or stop visits. The block closes when the
next header is seen or the input ends.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.errors import ErrorKind, MalformedRecord
from hrdf_pipeline.hrdf.records import (
    JourneyRecord,
    JourneySectionRecord,
    SectionKind,
    VisitRecord,
)
from hrdf_pipeline.hrdf.tokenizer import Field, FieldKind, tokenize_fixed

_HEADER_FIELDS = (
    Field("number", 4, 9, FieldKind.INT),
    Field("administration", 11, 16, FieldKind.FIXED),
    Field("variant", 18, 20, FieldKind.STR, optional=True),
    Field("cycles", 22, 24, FieldKind.INT, optional=True),
    Field("cycle_minutes", 26, 28, FieldKind.INT, optional=True),
)
_VISIT_FIELDS = (
    Field("stop_id", 1, 7, FieldKind.INT),
    Field("arrival", 30, 35, FieldKind.TIME, optional=True),
    Field("departure", 37, 42, FieldKind.TIME, optional=True),
)
_SECTION_FIELDS: dict[SectionKind, tuple[Field, ...]] = {
    SectionKind.CATEGORY: (
        Field("code", 4, 6, FieldKind.STR),
        Field("from_stop", 8, 14, FieldKind.INT, optional=True),
        Field("until_stop", 16, 22, FieldKind.INT, optional=True),
    ),
    SectionKind.RUNNING_DAYS: (
        Field("from_stop", 7, 13, FieldKind.INT, optional=True),
        Field("until_stop", 15, 21, FieldKind.INT, optional=True),
        Field("bitfield_id", 23, 28, FieldKind.INT, optional=True),
    ),
    SectionKind.ATTRIBUTE: (
        Field("code", 4, 5, FieldKind.STR),
        Field("from_stop", 7, 13, FieldKind.INT, optional=True),
        Field("until_stop", 15, 21, FieldKind.INT, optional=True),
        Field("bitfield_id", 23, 28, FieldKind.INT, optional=True),
    ),
    SectionKind.INFO_TEXT: (
        Field("code", 4, 5, FieldKind.STR),
        Field("from_stop", 7, 13, FieldKind.INT, optional=True),
        Field("until_stop", 15, 21, FieldKind.INT, optional=True),
        Field("bitfield_id", 23, 28, FieldKind.INT, optional=True),
        Field("reference", 30, 38, FieldKind.INT),
    ),
    SectionKind.LINE: (
        Field("code", 4, 11, FieldKind.STR),
        Field("from_stop", 13, 19, FieldKind.INT, optional=True),
        Field("until_stop", 21, 27, FieldKind.INT, optional=True),
    ),
    SectionKind.DIRECTION: (
        Field("code", 4, 4, FieldKind.STR),
        Field("reference", 6, 12, FieldKind.STR, optional=True),
        Field("from_stop", 14, 20, FieldKind.INT, optional=True),
        Field("until_stop", 22, 28, FieldKind.INT, optional=True),
    ),
    SectionKind.CHECK_IN: (
        Field("minutes", 5, 8, FieldKind.INT),
        Field("from_stop", 10, 16, FieldKind.INT, optional=True),
        Field("until_stop", 18, 24, FieldKind.INT, optional=True),
    ),
}
_SECTION_FIELDS[SectionKind.EXCEPTION_DAYS] = _SECTION_FIELDS[SectionKind.RUNNING_DAYS]
_SECTION_FIELDS[SectionKind.CHECK_OUT] = _SECTION_FIELDS[SectionKind.CHECK_IN]

# Longest prefix first: "*A VE" must win over "*A".
_SECTION_PREFIXES = (
    ("*A VE", SectionKind.RUNNING_DAYS),
    ("*A NV", SectionKind.EXCEPTION_DAYS),
    ("*CI", SectionKind.CHECK_IN),
    ("*CO", SectionKind.CHECK_OUT),
    ("*A", SectionKind.ATTRIBUTE),
    ("*G", SectionKind.CATEGORY),
    ("*I", SectionKind.INFO_TEXT),
    ("*L", SectionKind.LINE),
    ("*R", SectionKind.DIRECTION),
)
_IGNORED_PREFIXES = ("*GR", "*SH")


class BlockState(Enum):
    AWAITING_HEADER = "awaiting-header"
    IN_BLOCK = "in-block"


@dataclass
class _Block:
    line: int
    header: dict[str, Any] | None
    visits: list[VisitRecord] = field(default_factory=list)
    sections: list[JourneySectionRecord] = field(default_factory=list)
    broken: bool = False


def check_visit_order(visits: list[VisitRecord] | tuple[VisitRecord, ...]) -> VisitRecord | None:
    """Return the first visit whose times go backwards, if any."""
    previous = -1
    for visit in visits:
        for time in (visit.arrival, visit.departure):
            if time is None:
                continue
            if time.minutes < previous:
                return visit
            previous = time.minutes
    return None


class JourneyDecoder(Decoder):
    """Group FPLAN lines into journey records with an explicit state machine.

    ``AWAITING_HEADER`` accepts only a ``*Z`` header. ``IN_BLOCK`` collects
    sub-records and stop visits until the next header or end of input
    closes the block. A block whose lines were malformed is dropped as a
    whole; the individual defects have already been reported.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.state = BlockState.AWAITING_HEADER
        self._block: _Block | None = None

    def decode_line(self, line_number: int, line: str) -> Iterator[JourneyRecord]:
        if line.startswith("*Z"):
            yield from self._close()
            self._open(line_number, line)
            return

        if self.state is BlockState.AWAITING_HEADER:
            raise MalformedRecord("Journey line before any *Z header", field="*Z")

        block = self._block
        if block.broken:
            return
        try:
            if line.startswith("*"):
                section = self._section(line_number, line)
                if section is not None:
                    block.sections.append(section)
            else:
                block.visits.append(self._visit(line_number, line))
        except MalformedRecord:
            block.broken = True
            raise

    def finish(self) -> Iterable[JourneyRecord]:
        return self._close()

    def _open(self, line_number: int, line: str) -> None:
        self.state = BlockState.IN_BLOCK
        self._block = _Block(line=line_number, header=None)
        try:
            self._block.header = tokenize_fixed(line, _HEADER_FIELDS)
        except MalformedRecord:
            self._block.broken = True
            raise

    def _close(self) -> Iterator[JourneyRecord]:
        if self.state is not BlockState.IN_BLOCK:
            return
        block, self._block = self._block, None
        self.state = BlockState.AWAITING_HEADER
        if block.broken:
            return
        header = block.header
        label = f"Journey {header['number']}/{header['administration']}"
        if not block.visits:
            self.error(ErrorKind.EMPTY_JOURNEY_BLOCK, block.line, f"{label} has no stop visits")
            return
        offending = check_visit_order(block.visits)
        if offending is not None:
            self.error(
                ErrorKind.MALFORMED_RECORD,
                offending.line,
                f"{label} goes back in time at stop {offending.stop_id}",
            )
            return
        yield JourneyRecord(
            file=self.file_name,
            line=block.line,
            number=header["number"],
            administration=header["administration"],
            variant=header["variant"],
            cycles=header["cycles"] or 0,
            cycle_minutes=header["cycle_minutes"] or 0,
            visits=tuple(block.visits),
            sections=tuple(block.sections),
        )

    def _visit(self, line_number: int, line: str) -> VisitRecord:
        values = tokenize_fixed(line, _VISIT_FIELDS)
        return VisitRecord(file=self.file_name, line=line_number, **values)

    def _section(self, line_number: int, line: str) -> JourneySectionRecord | None:
        if line.startswith(_IGNORED_PREFIXES):
            return None
        for prefix, kind in _SECTION_PREFIXES:
            if line.startswith(prefix):
                break
        else:
            raise MalformedRecord(f"Unknown journey sub-record {line[:3]!r}", field="type")

        values = tokenize_fixed(line, _SECTION_FIELDS[kind])
        if kind is SectionKind.LINE and values["code"].startswith("#"):
            digits = values.pop("code")[1:]
            if not digits.isdigit():
                raise MalformedRecord(f"Bad line reference in {line!r}", field="line")
            values["reference"] = int(digits)
        elif kind is SectionKind.DIRECTION and values["code"] not in ("H", "R"):
            raise MalformedRecord(f"Direction type must be H or R in {line!r}", field="type")
        return JourneySectionRecord(file=self.file_name, line=line_number, kind=kind, **values)
