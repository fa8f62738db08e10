"""Decoders for ECKDATEN, BITFELD and FEIERTAG."""

import re
from collections.abc import Iterable
from typing import Any

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.errors import MalformedRecord
from hrdf_pipeline.hrdf.records import BitfieldRecord, HolidayRecord, KeyDatesRecord, Language
from hrdf_pipeline.hrdf.tokenizer import Field, FieldKind, parse_date, tokenize_fixed

# The decoded bit stream starts with two padding bits.
BITFIELD_PADDING = 2

_BITFIELD_FIELDS = (
    Field("bitfield_id", 1, 6, FieldKind.INT),
    Field("pattern", 8, None, FieldKind.HEX),
)

_HOLIDAY_NAME_RE = re.compile(r"([^<>]*)<([a-z]{3})>")


def decode_bitfield_pattern(pattern: str) -> tuple[int, int]:
    """Expand a hex pattern into ``(mask, length)``.

    Each hex digit contributes four bits, most significant first. After the
    padding bits are dropped, bit ``i`` of the returned mask is day ``i`` of
    the validity window.
    """
    bits = "".join(f"{int(digit, 16):04b}" for digit in pattern)[BITFIELD_PADDING:]
    mask = 0
    for index, bit in enumerate(bits):
        if bit == "1":
            mask |= 1 << index
    return mask, len(bits)


class KeyDatesDecoder(Decoder):
    """ECKDATEN: validity window on the first two lines, metadata on the third."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._lines: list[tuple[int, str]] = []

    def decode_line(self, line_number: int, line: str) -> Iterable[KeyDatesRecord]:
        self._lines.append((line_number, line))
        return ()

    def finish(self) -> Iterable[KeyDatesRecord]:
        if len(self._lines) < 2:
            raise MalformedRecord("Validity window needs a start and an end date", field="end")
        (start_line, start_text), (end_line, end_text) = self._lines[:2]
        try:
            start = parse_date(start_text[:10], "start")
        except MalformedRecord as e:
            e.line_number = start_line
            raise
        try:
            end = parse_date(end_text[:10], "end")
        except MalformedRecord as e:
            e.line_number = end_line
            raise
        if end < start:
            raise MalformedRecord(
                f"Validity window ends ({end}) before it starts ({start})",
                line_number=end_line,
                field="end",
            )
        metadata: list[str | None] = [None, None, None, None]
        if len(self._lines) > 2:
            parts = self._lines[2][1].split("$")
            for index, value in enumerate(parts[:4]):
                metadata[index] = value.strip() or None
        yield KeyDatesRecord(
            file=self.file_name,
            line=start_line,
            start=start,
            end=end,
            name=metadata[0],
            created_at=metadata[1],
            version=metadata[2],
            provider=metadata[3],
        )


class BitfieldDecoder(Decoder):
    """BITFELD: one running-day pattern per line."""

    def decode_line(self, line_number: int, line: str) -> Iterable[BitfieldRecord]:
        values = tokenize_fixed(line, _BITFIELD_FIELDS)
        mask, length = decode_bitfield_pattern(values["pattern"])
        yield BitfieldRecord(
            file=self.file_name,
            line=line_number,
            bitfield_id=values["bitfield_id"],
            mask=mask,
            length=length,
        )


class HolidayDecoder(Decoder):
    """FEIERTAG: ``dd.mm.yyyy name<deu>nom<fra>...``."""

    def decode_line(self, line_number: int, line: str) -> Iterable[HolidayRecord]:
        day = parse_date(line[:10], "date")
        names = []
        for name, code in _HOLIDAY_NAME_RE.findall(line[10:]):
            try:
                language = Language(code)
            except ValueError:
                raise MalformedRecord(f"Unknown language tag <{code}>", field="names") from None
            names.append((language, name.strip()))
        yield HolidayRecord(file=self.file_name, line=line_number, day=day, names=tuple(names))
