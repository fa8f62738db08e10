"""Decoders for the legacy (GLEIS*) and extended (GLEISE_*) platform files."""

from collections.abc import Iterable
from typing import Any

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.errors import MalformedRecord
from hrdf_pipeline.hrdf.records import (
    CoordinateSystem,
    PlatformAssignmentRecord,
    PlatformCoordinateRecord,
    PlatformRecord,
    PlatformSloidRecord,
)
from hrdf_pipeline.hrdf.tokenizer import Field, FieldKind, parse_int, tokenize_fixed

_ASSIGNMENT_FIELDS = (
    Field("stop_id", 1, 7, FieldKind.INT),
    Field("journey_number", 9, 14, FieldKind.INT),
    Field("administration", 16, 21, FieldKind.FIXED),
    Field("index", 24, 30, FieldKind.INT),
    Field("time", 32, 35, FieldKind.TIME, optional=True),
    Field("bitfield_id", 37, 42, FieldKind.INT, optional=True),
)


def parse_platform_data(data: str) -> tuple[str, str | None]:
    """Parse ``G '3' A 'AB'`` into the platform code and optional sectors."""
    entries: dict[str, str] = {}
    remaining = data.strip()
    while remaining:
        key, sep, rest = remaining.partition(" '")
        if not sep:
            raise MalformedRecord(f"Expected quoted value after {key!r}", field="platform")
        value, sep, remaining = rest.partition("'")
        if not sep:
            raise MalformedRecord("Unterminated quote", field="platform")
        entries[key.strip()] = value
        remaining = remaining.strip()
    if "G" not in entries:
        raise MalformedRecord("Platform row has no 'G' entry", field="code")
    return entries["G"], entries.get("A")


class PlatformDecoder(Decoder):
    """Decode one platform file.

    Row shapes (columns 1-based)::

        8500010 000003 000011 #0000001 0830 053751    journey assignment
        8500010 #0000001 G '3' A 'AB'                 platform definition
        8500010 #0000001 I A ch:1:sloid:10:3:5        SLOID (legacy)
        8500010 #0000001 g A ch:1:sloid:10:3:5        SLOID (extended)
        8500010 #0000001 K 2611363 1266310 0          coordinates (legacy)
        8500010 #0000001 k 2611363 1266310 0          coordinates (extended)

    ``system`` is the coordinate system of the file (None for plain GLEIS).
    ``definitions`` controls whether assignment and definition rows are
    decoded; coordinate-only companions repeat them and are read for their
    coordinate and SLOID rows only.
    """

    def __init__(
        self,
        *args: Any,
        system: CoordinateSystem | None = None,
        extended: bool = False,
        definitions: bool = True,
        sloids: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.system = system
        self.extended = extended
        self.definitions = definitions
        self.sloids = sloids

    def decode_line(self, line_number: int, line: str) -> Iterable[Any]:
        if line[8:9] != "#":
            if self.definitions:
                yield self._assignment(line_number, line)
            return

        stop_id = parse_int(line[:7], "stop_id")
        index = parse_int(line[9:16], "index")
        common = {"file": self.file_name, "line": line_number, "stop_id": stop_id, "index": index}
        marker = line[17:20]

        if marker.startswith("G"):
            if self.definitions:
                code, sectors = parse_platform_data(line[17:])
                yield PlatformRecord(code=code, sectors=sectors, **common)
        elif marker == ("g A" if self.extended else "I A"):
            if self.sloids:
                sloid = line[21:].strip()
                if not sloid:
                    raise MalformedRecord("Empty SLOID", field="sloid")
                yield PlatformSloidRecord(sloid=sloid, **common)
        elif marker.startswith("k" if self.extended else "K"):
            if self.system is not None:
                yield self._coordinates(line[19:], common)
        elif self.extended and marker.startswith("A"):
            # Section rows carry no platform attributes we model.
            return
        else:
            raise MalformedRecord(f"Unknown platform row type {marker.strip()!r}", field="type")

    def _assignment(self, line_number: int, line: str) -> PlatformAssignmentRecord:
        if line[22:23] != "#":
            raise MalformedRecord("Expected '#' before the platform index", field="index")
        values = tokenize_fixed(line, _ASSIGNMENT_FIELDS)
        time = values.pop("time")
        return PlatformAssignmentRecord(
            file=self.file_name,
            line=line_number,
            time=time.minutes if time is not None else None,
            **values,
        )

    def _coordinates(self, data: str, common: dict[str, Any]) -> PlatformCoordinateRecord:
        parts = data.split()
        if len(parts) < 2:
            raise MalformedRecord(f"Expected 'x y [altitude]', got {data!r}", field="coordinates")
        try:
            first, second = float(parts[0]), float(parts[1])
            altitude = float(parts[2]) if len(parts) > 2 else 0.0
        except ValueError:
            raise MalformedRecord(f"Non-numeric coordinate in {data!r}", field="coordinates") from None
        if self.system is CoordinateSystem.WGS84 and self.extended:
            # Extended WGS rows list latitude first.
            first, second = second, first
        return PlatformCoordinateRecord(
            system=self.system, x=first, y=second, altitude=altitude, **common
        )

