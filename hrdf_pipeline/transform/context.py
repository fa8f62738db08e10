"""Shared state for a single resolution pass."""

import logging
from typing import Any

from hrdf_pipeline.hrdf.errors import ErrorKind, LoadError
from hrdf_pipeline.hrdf.records import Record

logger = logging.getLogger(__name__)


class ResolutionContext:
    """Collects resolution errors and remembers excluded keys.

    ``excluded`` holds ``(kind, key)`` pairs for entities dropped because of
    an error already reported. Records that depend on them are dropped
    without a second error.
    """

    def __init__(self) -> None:
        self.errors: list[LoadError] = []
        self.excluded: set[tuple[str, Any]] = set()

    def report(self, kind: ErrorKind, record: Record | None, message: str) -> None:
        file = record.file if record is not None else ""
        line = record.line if record is not None else None
        error = LoadError(kind, file, line, message)
        logger.debug(str(error))
        self.errors.append(error)

    def unresolved(self, record: Record, what: str, native_id: Any) -> None:
        self.report(
            ErrorKind.UNRESOLVED_REFERENCE,
            record,
            f"Unknown {what} {native_id!r}",
        )

    def duplicate(self, record: Record, what: str, native_id: Any, first: Record) -> None:
        self.report(
            ErrorKind.DUPLICATE_KEY,
            record,
            f"Duplicate {what} {native_id!r} (first defined at {first.file}:{first.line})",
        )

    def exclude(self, kind: str, key: Any) -> None:
        self.excluded.add((kind, key))

    def is_excluded(self, kind: str, key: Any) -> bool:
        return (kind, key) in self.excluded

    def lookup(self, interner: Any, record: Record, native_id: Any) -> int | None:
        """Handle for ``native_id``, reporting it as unresolved when unknown.

        Ids that were excluded earlier are not reported again.
        """
        handle = interner.get(native_id)
        if handle is None and not self.is_excluded(interner.kind, native_id):
            self.unresolved(record, interner.kind, native_id)
        return handle
