"""Decoders for the stop registry and the files that enrich it."""

import re
from collections.abc import Iterable
from typing import Any

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.errors import MalformedRecord
from hrdf_pipeline.hrdf.records import (
    CoordinateRecord,
    CoordinateSystem,
    ExchangeFlagRecord,
    ExchangeTimeRecord,
    StopConnectionRecord,
    StopGroupRecord,
    StopPriorityRecord,
    StopPropertyRecord,
    StopRecord,
)
from hrdf_pipeline.hrdf.tokenizer import (
    Field,
    FieldKind,
    parse_int,
    strip_comment,
    tokenize_fixed,
)

_DESIGNATION_RE = re.compile(r"([^$]*)\$<(\d)>")

_PRIORITY_FIELDS = (
    Field("stop_id", 1, 7, FieldKind.INT),
    Field("priority", 9, 10, FieldKind.INT),
)
_EXCHANGE_FLAG_FIELDS = (
    Field("stop_id", 1, 7, FieldKind.INT),
    Field("flag", 9, 13, FieldKind.INT),
)
_EXCHANGE_TIME_FIELDS = (
    Field("stop_id", 1, 7, FieldKind.INT),
    Field("intercity_minutes", 9, 10, FieldKind.INT),
    Field("other_minutes", 12, 13, FieldKind.INT),
)
_CONNECTION_FIELDS = (
    Field("from_stop", 1, 7, FieldKind.INT),
    Field("to_stop", 9, 15, FieldKind.INT),
    Field("minutes", 17, 19, FieldKind.INT),
)

MAX_EXCHANGE_PRIORITY = 16


class StopDecoder(Decoder):
    """BAHNHOF: ``id     name$<1>$long$<2>$abbr$<3>$synonym$<4>``."""

    def decode_line(self, line_number: int, line: str) -> Iterable[StopRecord]:
        stop_id = parse_int(line[:7], "stop_id")
        designations: dict[str, list[str]] = {}
        for text, kind in _DESIGNATION_RE.findall(line[7:]):
            designations.setdefault(kind, []).append(text.strip())
        names = designations.get("1")
        if not names or not names[0]:
            raise MalformedRecord("Stop has no main designation <1>", field="name")
        yield StopRecord(
            file=self.file_name,
            line=line_number,
            stop_id=stop_id,
            name=names[0],
            long_name=designations.get("2", [None])[0],
            abbreviation=designations.get("3", [None])[0],
            synonyms=tuple(designations.get("4", ())),
        )


class CoordinateDecoder(Decoder):
    """BFKOORD_LV95 / BFKOORD_WGS: ``id x y altitude``."""

    def __init__(self, *args: Any, system: CoordinateSystem, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.system = system

    def decode_line(self, line_number: int, line: str) -> Iterable[CoordinateRecord]:
        parts = strip_comment(line).split()
        if len(parts) < 3:
            raise MalformedRecord(f"Expected 'id x y [altitude]', got {line!r}", field="coordinates")
        stop_id = parse_int(parts[0], "stop_id")
        try:
            x, y = float(parts[1]), float(parts[2])
            altitude = float(parts[3]) if len(parts) > 3 else 0.0
        except ValueError:
            raise MalformedRecord(f"Non-numeric coordinate in {line!r}", field="coordinates") from None
        yield CoordinateRecord(
            file=self.file_name,
            line=line_number,
            stop_id=stop_id,
            system=self.system,
            x=x,
            y=y,
            altitude=altitude,
        )


class StopPriorityDecoder(Decoder):
    """BFPRIOS: exchange priority between 0 and 16."""

    def decode_line(self, line_number: int, line: str) -> Iterable[StopPriorityRecord]:
        values = tokenize_fixed(line, _PRIORITY_FIELDS)
        if not 0 <= values["priority"] <= MAX_EXCHANGE_PRIORITY:
            raise MalformedRecord(f"Priority {values['priority']} outside 0-16", field="priority")
        yield StopPriorityRecord(file=self.file_name, line=line_number, **values)


class ExchangeFlagDecoder(Decoder):
    """KMINFO: 0 means changing trains is not possible at the stop."""

    def decode_line(self, line_number: int, line: str) -> Iterable[ExchangeFlagRecord]:
        values = tokenize_fixed(line, _EXCHANGE_FLAG_FIELDS)
        yield ExchangeFlagRecord(file=self.file_name, line=line_number, **values)


class ExchangeTimeDecoder(Decoder):
    """UMSTEIGB: per-stop transfer minutes; stop 9999999 holds the default."""

    def decode_line(self, line_number: int, line: str) -> Iterable[ExchangeTimeRecord]:
        values = tokenize_fixed(line, _EXCHANGE_TIME_FIELDS)
        yield ExchangeTimeRecord(file=self.file_name, line=line_number, **values)


class StopPropertyDecoder(Decoder):
    """BHFART / BHFART_60: restrictions, SLOIDs, country and canton."""

    def decode_line(self, line_number: int, line: str) -> Iterable[StopPropertyRecord]:
        if line.startswith("%"):
            return
        parts = strip_comment(line).split()
        if len(parts) < 3:
            raise MalformedRecord(f"Incomplete stop property row {line!r}", field="type")
        stop_id = parse_int(parts[0], "stop_id")
        code = parts[1]
        if code == "B":
            kind, value = "restriction", parse_int(parts[2], "restriction")
        elif code == "G" and len(parts) >= 4 and parts[2] in ("A", "a"):
            kind = "sloid" if parts[2] == "A" else "boarding_area"
            value = parts[3]
        elif code == "L":
            kind, value = "country", parts[2]
        elif code == "I" and len(parts) >= 4 and parts[2] == "KT":
            kind, value = "canton", parse_int(parts[3], "canton")
        else:
            raise MalformedRecord(f"Unknown stop property row {line!r}", field="type")
        yield StopPropertyRecord(
            file=self.file_name, line=line_number, stop_id=stop_id, kind=kind, value=value
        )


class StopConnectionDecoder(Decoder):
    """METABHF: walking connections, their attributes and stop groups."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._pending: dict[str, Any] | None = None

    def decode_line(self, line_number: int, line: str) -> Iterable[Any]:
        if line.startswith("*A"):
            if self._pending is None:
                raise MalformedRecord("Attribute row without a preceding connection", field="*A")
            code = line[3:5].strip()
            if not code:
                raise MalformedRecord("Attribute row without a code", field="code")
            self._pending["attributes"].append(code)
            return
        yield from self._flush()
        if line[7:8] == ":":
            main_stop = parse_int(line[:7], "main_stop")
            members = tuple(parse_int(part, "members") for part in line[8:].split())
            yield StopGroupRecord(
                file=self.file_name, line=line_number, main_stop=main_stop, members=members
            )
            return
        values = tokenize_fixed(line, _CONNECTION_FIELDS)
        self._pending = {"file": self.file_name, "line": line_number, "attributes": [], **values}

    def _flush(self) -> Iterable[StopConnectionRecord]:
        if self._pending is not None:
            pending, self._pending = self._pending, None
            pending["attributes"] = tuple(pending["attributes"])
            yield StopConnectionRecord(**pending)

    def finish(self) -> Iterable[StopConnectionRecord]:
        return self._flush()
