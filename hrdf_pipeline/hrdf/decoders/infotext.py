"""Decoder for INFOTEXT_* files."""

from collections.abc import Iterable
from typing import Any

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.records import InfoTextRecord, Language
from hrdf_pipeline.hrdf.tokenizer import Field, FieldKind, tokenize_fixed

_INFOTEXT_FIELDS = (
    Field("info_text_id", 1, 9, FieldKind.INT),
    Field("text", 11, None, FieldKind.STR, optional=True),
)


class InfoTextDecoder(Decoder):
    """One free text per line. ``%`` is ordinary text here, not a comment."""

    def __init__(self, *args: Any, language: Language, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.language = language

    def decode_line(self, line_number: int, line: str) -> Iterable[InfoTextRecord]:
        values = tokenize_fixed(line, _INFOTEXT_FIELDS)
        yield InfoTextRecord(
            file=self.file_name,
            line=line_number,
            info_text_id=values["info_text_id"],
            language=self.language,
            text=values["text"] or "",
        )
