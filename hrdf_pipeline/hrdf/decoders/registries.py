"""Decoders for LINIE, RICHTUNG, ZUGART and ATTRIBUT."""

import re
from collections.abc import Iterable
from typing import Any

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.errors import MalformedRecord
from hrdf_pipeline.hrdf.records import (
    AttributeRecord,
    AttributeTextRecord,
    CategoryRecord,
    CategoryTextRecord,
    DirectionRecord,
    Language,
    LinePropertyRecord,
    LineRecord,
)
from hrdf_pipeline.hrdf.tokenizer import (
    Field,
    FieldKind,
    parse_int,
    strip_comment,
    tokenize_fixed,
)

_DIRECTION_FIELDS = (
    Field("code", 1, 7, FieldKind.STR),
    Field("text", 9, None, FieldKind.STR),
)
_ATTRIBUTE_FIELDS = (
    Field("code", 1, 2, FieldKind.STR),
    Field("stop_scope", 4, 4, FieldKind.INT),
    Field("main_priority", 6, 8, FieldKind.INT),
    Field("secondary_priority", 10, 11, FieldKind.INT),
)
_ATTRIBUTE_DEFINITION_RE = re.compile(r"^.{2} [0-9] [0-9 ]{3} [0-9 ]{2}$")
_ATTRIBUTE_TEXT_RE = re.compile(r"^.{2} .+$")
_CATEGORY_TEXT_RE = re.compile(r"^(class|option|category)(\d+)\s+(.*)$")
_SECTION_RE = re.compile(r"^<([^>]+)>")

_ZUGART_LANGUAGES = {
    "Deutsch": Language.GERMAN,
    "Franzoesisch": Language.FRENCH,
    "Englisch": Language.ENGLISH,
    "Italienisch": Language.ITALIAN,
}


def _parse_color(parts: list[str]) -> tuple[int, int, int]:
    if len(parts) != 3:
        raise MalformedRecord(f"Expected three colour components, got {parts}", field="color")
    red, green, blue = (parse_int(part, "color") for part in parts)
    if not all(0 <= component <= 255 for component in (red, green, blue)):
        raise MalformedRecord(f"Colour component out of range in {parts}", field="color")
    return red, green, blue


class LineDecoder(Decoder):
    """LINIE: several property rows per line id, introduced by a ``K`` row."""

    def decode_line(self, line_number: int, line: str) -> Iterable[Any]:
        text = strip_comment(line)
        line_id = parse_int(text[:7], "line_id")
        rest = text[8:]
        code, _, value = rest.partition(" ")
        common = {"file": self.file_name, "line": line_number, "line_id": line_id}
        if code == "K":
            if not value.strip():
                raise MalformedRecord("Line key is empty", field="key")
            yield LineRecord(key=value.strip(), **common)
        elif code in ("N", "L", "D", "R"):
            marker, _, text_value = value.partition(" ")
            if marker != "T":
                raise MalformedRecord(f"Expected text marker 'T' in {line!r}", field=code)
            yield LinePropertyRecord(code=code, value=text_value.strip(), **common)
        elif code == "W":
            yield LinePropertyRecord(code=code, value=value.strip(), **common)
        elif code in ("F", "B"):
            yield LinePropertyRecord(code=code, value=_parse_color(value.split()), **common)
        elif code == "H":
            yield LinePropertyRecord(code=code, value=parse_int(value, "main_line"), **common)
        elif code == "I":
            parts = value.split()
            if len(parts) != 2:
                raise MalformedRecord(f"Expected info text code and id in {line!r}", field="I")
            yield LinePropertyRecord(
                code=code, value=(parts[0], parse_int(parts[1], "info_text_id")), **common
            )
        else:
            raise MalformedRecord(f"Unknown line property {code!r}", field="type")


class DirectionDecoder(Decoder):
    """RICHTUNG: ``R000011 Esslingen``."""

    def decode_line(self, line_number: int, line: str) -> Iterable[DirectionRecord]:
        values = tokenize_fixed(line, _DIRECTION_FIELDS)
        yield DirectionRecord(file=self.file_name, line=line_number, **values)


class CategoryDecoder(Decoder):
    """ZUGART: offer categories, followed by per-language text sections."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._language: Language | None = None

    def decode_line(self, line_number: int, line: str) -> Iterable[Any]:
        text = strip_comment(line)
        if not text:
            return
        section = _SECTION_RE.match(text)
        if section:
            name = section.group(1)
            if name == "text":
                self._language = None
            elif name in _ZUGART_LANGUAGES:
                self._language = _ZUGART_LANGUAGES[name]
            else:
                raise MalformedRecord(f"Unknown section <{name}>", field="section")
            return
        named = _CATEGORY_TEXT_RE.match(text)
        if named:
            if self._language is None:
                raise MalformedRecord("Text row outside a language section", field="language")
            kind, number, value = named.groups()
            yield CategoryTextRecord(
                file=self.file_name,
                line=line_number,
                kind=kind,
                number=int(number),
                language=self._language,
                text=value.strip(),
            )
            return
        if text.startswith("*I"):
            # Informational rows attached to categories are not modelled.
            return
        yield self._offer(line_number, text)

    def _offer(self, line_number: int, text: str) -> CategoryRecord:
        tokens = text.split()
        if len(tokens) < 6:
            raise MalformedRecord(f"Incomplete category row {text!r}", field="code")
        flag = None
        category_number = None
        for extra in tokens[6:]:
            if extra.startswith("#"):
                category_number = parse_int(extra[1:], "category_number")
            elif extra in ("N", "B"):
                flag = extra
            else:
                raise MalformedRecord(f"Unexpected token {extra!r}", field="flag")
        return CategoryRecord(
            file=self.file_name,
            line=line_number,
            code=tokens[0],
            product_class=parse_int(tokens[1], "product_class"),
            tariff_group=tokens[2],
            output_control=parse_int(tokens[3], "output_control"),
            designation=tokens[4],
            surcharge=parse_int(tokens[5], "surcharge"),
            flag=flag,
            category_number=category_number,
        )


class AttributeDecoder(Decoder):
    """ATTRIBUT: code definitions plus per-language descriptions."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._language = Language.GERMAN

    def decode_line(self, line_number: int, line: str) -> Iterable[Any]:
        if line.startswith("#"):
            return
        if line.startswith("<"):
            tag = line.strip().strip("<>")
            if tag != "text":
                try:
                    self._language = Language(tag)
                except ValueError:
                    raise MalformedRecord(f"Unknown language tag <{tag}>", field="language") from None
            return
        if _ATTRIBUTE_DEFINITION_RE.match(line.rstrip()):
            values = tokenize_fixed(line, _ATTRIBUTE_FIELDS)
            yield AttributeRecord(file=self.file_name, line=line_number, **values)
            return
        if _ATTRIBUTE_TEXT_RE.match(line):
            start = self.manifest.attribute_text_column
            yield AttributeTextRecord(
                file=self.file_name,
                line=line_number,
                code=line[:2].strip(),
                language=self._language,
                text=line[start - 1 :].strip(),
            )
            return
        raise MalformedRecord(f"Unrecognised attribute row {line!r}", field="code")
