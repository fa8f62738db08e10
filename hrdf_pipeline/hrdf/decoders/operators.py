"""Decoder for the BETRIEB_* operator files."""

from collections.abc import Iterable
from typing import Any

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.errors import MalformedRecord
from hrdf_pipeline.hrdf.records import (
    Language,
    OperatorAdministrationsRecord,
    OperatorNamesRecord,
    OperatorSboidRecord,
)
from hrdf_pipeline.hrdf.tokenizer import parse_int, tokenize_delimited

_NAME_KEYS = {"K": "short_name", "L": "abbreviation", "V": "long_name"}


class OperatorDecoder(Decoder):
    """Decode one language variant of BETRIEB.

    Rows come in three shapes::

        00379 K "SBB" L "SBB" V "Schweizerische Bundesbahnen SBB"
        00379 : 000011 000012
        00379 N "ch:1:sboid:100001"
    """

    def __init__(self, *args: Any, language: Language, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.language = language

    def decode_line(self, line_number: int, line: str) -> Iterable[Any]:
        tokens = tokenize_delimited(line)
        if len(tokens) < 2:
            raise MalformedRecord(f"Incomplete operator row {line!r}", field="type")
        operator_id = parse_int(tokens[0], "operator_id")
        common = {
            "file": self.file_name,
            "line": line_number,
            "operator_id": operator_id,
            "language": self.language,
        }
        marker = tokens[1]
        if marker == ":":
            administrations = tuple(tokens[2:])
            if not administrations:
                raise MalformedRecord("Administration row lists no codes", field="administrations")
            yield OperatorAdministrationsRecord(administrations=administrations, **common)
        elif marker == "N":
            if len(tokens) != 3:
                raise MalformedRecord(f"Malformed SBOID row {line!r}", field="sboid")
            yield OperatorSboidRecord(sboid=tokens[2], **common)
        elif marker in _NAME_KEYS:
            names: dict[str, str] = {}
            pairs = tokens[1:]
            if len(pairs) % 2:
                raise MalformedRecord(f"Unpaired name key in {line!r}", field="names")
            for key, value in zip(pairs[::2], pairs[1::2], strict=True):
                if key not in _NAME_KEYS:
                    raise MalformedRecord(f"Unknown name key {key!r}", field="names")
                names[_NAME_KEYS[key]] = value
            yield OperatorNamesRecord(**names, **common)
        else:
            raise MalformedRecord(f"Unknown operator row type {marker!r}", field="type")
