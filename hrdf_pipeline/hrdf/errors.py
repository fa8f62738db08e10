"""Error taxonomy for HRDF loading."""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    """Kinds of defects collected while loading a dataset."""

    MALFORMED_RECORD = "MalformedRecord"
    DUPLICATE_KEY = "DuplicateKey"
    UNRESOLVED_REFERENCE = "UnresolvedReference"
    INCONSISTENT_VARIANT_MERGE = "InconsistentVariantMerge"
    DATE_OUT_OF_RANGE = "DateOutOfRange"
    EMPTY_JOURNEY_BLOCK = "EmptyJourneyBlock"


@dataclass(frozen=True)
class LoadError:
    """A structured defect found in a dataset file."""

    kind: ErrorKind
    file: str
    line: int | None
    message: str

    def __str__(self) -> str:
        location = self.file if self.line is None else f"{self.file}:{self.line}"
        return f"{location}: [{self.kind.value}] {self.message}"


class HRDFError(Exception):
    """Base class for HRDF errors."""


class MalformedRecord(HRDFError):
    """A line violates its file's grammar."""

    def __init__(
        self,
        message: str,
        file: str = "",
        line_number: int | None = None,
        field: str | None = None,
    ) -> None:
        self.file = file
        self.line_number = line_number
        self.field = field
        self.message = message
        prefix = f"{file}:{line_number}: " if file else ""
        suffix = f" (field {field})" if field else ""
        super().__init__(f"{prefix}{message}{suffix}")

    def to_load_error(self) -> LoadError:
        message = self.message if not self.field else f"{self.message} (field {self.field})"
        return LoadError(ErrorKind.MALFORMED_RECORD, self.file, self.line_number, message)


class DateOutOfRange(HRDFError, ValueError):
    """A calendar query falls outside the dataset's validity window."""


class LoadFailed(HRDFError):
    """Strict-mode load aborted because defects were collected."""

    def __init__(self, errors: list[LoadError]) -> None:
        self.errors = errors
        first = f"; first: {errors[0]}" if errors else ""
        super().__init__(f"Load failed with {len(errors)} errors{first}")
