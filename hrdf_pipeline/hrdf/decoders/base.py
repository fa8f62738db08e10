"""Shared decoder machinery."""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from hrdf_pipeline.hrdf.errors import ErrorKind, LoadError, MalformedRecord
from hrdf_pipeline.hrdf.manifest import VersionManifest
from hrdf_pipeline.hrdf.records import RecordSet

logger = logging.getLogger(__name__)


class Decoder:
    """Lazily decode one HRDF file into records.

    Subclasses implement ``decode_line``. Record-level defects are collected
    in ``errors`` and decoding continues with the next line; I/O errors
    propagate to the caller.
    """

    skip_blank_lines = True

    def __init__(
        self,
        dataset_path: Path,
        file_name: str,
        manifest: VersionManifest,
        encoding: str | None = None,
    ) -> None:
        self.path = Path(dataset_path) / file_name
        self.file_name = file_name
        self.manifest = manifest
        self.encoding = encoding or manifest.encoding
        self.errors: list[LoadError] = []

    @property
    def present(self) -> bool:
        return self.path.is_file()

    def lines(self) -> Iterator[tuple[int, str]]:
        """Yield ``(line_number, text)`` pairs without line terminators.

        Lines that do not decode in the dataset encoding are reported as
        malformed and skipped.
        """
        with open(self.path, "rb") as f:
            for line_number, raw in enumerate(f, start=1):
                try:
                    line = raw.decode(self.encoding)
                except UnicodeDecodeError as e:
                    self._record_malformed(
                        MalformedRecord(f"Cannot decode line as {self.encoding}: {e.reason}"),
                        line_number,
                    )
                    continue
                yield line_number, line.rstrip("\r\n")

    def error(self, kind: ErrorKind, line_number: int | None, message: str) -> None:
        logger.debug(f"{self.file_name}:{line_number}: {message}")
        self.errors.append(LoadError(kind, self.file_name, line_number, message))

    def decode_line(self, line_number: int, line: str) -> Iterable[Any]:
        raise NotImplementedError

    def finish(self) -> Iterable[Any]:
        """Flush records buffered across lines once input ends."""
        return ()

    def __iter__(self) -> Iterator[Any]:
        if not self.present:
            logger.info(f"{self.file_name} not found, skipping")
            return
        for line_number, line in self.lines():
            if self.skip_blank_lines and not line.strip():
                continue
            try:
                yield from self.decode_line(line_number, line)
            except MalformedRecord as e:
                self._record_malformed(e, line_number)
        try:
            yield from self.finish()
        except MalformedRecord as e:
            self._record_malformed(e, e.line_number)

    def _record_malformed(self, e: MalformedRecord, line_number: int | None) -> None:
        e.file = self.file_name
        if e.line_number is None:
            e.line_number = line_number
        error = e.to_load_error()
        logger.debug(str(error))
        self.errors.append(error)

    def decode(self) -> RecordSet:
        """Consume the whole file into a RecordSet."""
        records = list(self)
        if records:
            logger.debug(f"Decoded {len(records)} records from {self.file_name}")
        return RecordSet(
            file=self.file_name,
            records=records,
            errors=list(self.errors),
            present=self.present,
        )
