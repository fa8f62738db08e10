"""Decoded HRDF records, keyed by the dataset's native identifiers."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from hrdf_pipeline.hrdf.errors import LoadError
from hrdf_pipeline.hrdf.tokenizer import TimeValue


class Language(Enum):
    GERMAN = "deu"
    FRENCH = "fra"
    ITALIAN = "ita"
    ENGLISH = "eng"

    @classmethod
    def from_suffix(cls, suffix: str) -> "Language":
        """Map a file suffix (DE, FR, IT, EN) to a language."""
        return {
            "DE": cls.GERMAN,
            "FR": cls.FRENCH,
            "IT": cls.ITALIAN,
            "EN": cls.ENGLISH,
        }[suffix.upper()]


class CoordinateSystem(Enum):
    LV95 = "lv95"
    WGS84 = "wgs84"


@dataclass(frozen=True)
class Record:
    """Base for every decoded record: where it came from."""

    file: str
    line: int


@dataclass
class RecordSet:
    """Records and record-level errors produced by one decoder run."""

    file: str
    records: list[Any] = field(default_factory=list)
    errors: list[LoadError] = field(default_factory=list)
    present: bool = True


# Calendar


@dataclass(frozen=True)
class KeyDatesRecord(Record):
    start: date
    end: date
    name: str | None = None
    created_at: str | None = None
    version: str | None = None
    provider: str | None = None


@dataclass(frozen=True)
class BitfieldRecord(Record):
    bitfield_id: int
    mask: int  # bit i set means day start + i
    length: int


@dataclass(frozen=True)
class HolidayRecord(Record):
    day: date
    names: tuple[tuple[Language, str], ...] = ()


# Stops


@dataclass(frozen=True)
class StopRecord(Record):
    stop_id: int
    name: str
    long_name: str | None = None
    abbreviation: str | None = None
    synonyms: tuple[str, ...] = ()


@dataclass(frozen=True)
class CoordinateRecord(Record):
    stop_id: int
    system: CoordinateSystem
    x: float
    y: float
    altitude: float = 0.0


@dataclass(frozen=True)
class StopPriorityRecord(Record):
    stop_id: int
    priority: int


@dataclass(frozen=True)
class ExchangeFlagRecord(Record):
    stop_id: int
    flag: int


@dataclass(frozen=True)
class ExchangeTimeRecord(Record):
    stop_id: int
    intercity_minutes: int
    other_minutes: int


@dataclass(frozen=True)
class StopPropertyRecord(Record):
    """One BHFART row. ``kind`` is restriction, sloid, boarding_area, country or canton."""

    stop_id: int
    kind: str
    value: Any


@dataclass(frozen=True)
class StopConnectionRecord(Record):
    from_stop: int
    to_stop: int
    minutes: int
    attributes: tuple[str, ...] = ()


@dataclass(frozen=True)
class StopGroupRecord(Record):
    main_stop: int
    members: tuple[int, ...]


# Operators


@dataclass(frozen=True)
class OperatorNamesRecord(Record):
    operator_id: int
    language: Language
    short_name: str | None = None
    abbreviation: str | None = None
    long_name: str | None = None


@dataclass(frozen=True)
class OperatorAdministrationsRecord(Record):
    operator_id: int
    language: Language
    administrations: tuple[str, ...]


@dataclass(frozen=True)
class OperatorSboidRecord(Record):
    operator_id: int
    language: Language
    sboid: str


# Registries


@dataclass(frozen=True)
class LineRecord(Record):
    line_id: int
    key: str


@dataclass(frozen=True)
class LinePropertyRecord(Record):
    """A non-key LINIE row; ``code`` is the row type letter."""

    line_id: int
    code: str
    value: Any


@dataclass(frozen=True)
class DirectionRecord(Record):
    code: str
    text: str


@dataclass(frozen=True)
class CategoryRecord(Record):
    code: str
    product_class: int
    tariff_group: str
    output_control: int
    designation: str
    surcharge: int
    flag: str | None = None
    category_number: int | None = None


@dataclass(frozen=True)
class CategoryTextRecord(Record):
    """A ``classNN``/``optionNN``/``categoryNNN`` text in one language."""

    kind: str
    number: int
    language: Language
    text: str


@dataclass(frozen=True)
class AttributeRecord(Record):
    code: str
    stop_scope: int
    main_priority: int
    secondary_priority: int


@dataclass(frozen=True)
class AttributeTextRecord(Record):
    code: str
    language: Language
    text: str


@dataclass(frozen=True)
class InfoTextRecord(Record):
    info_text_id: int
    language: Language
    text: str


# Platforms


@dataclass(frozen=True)
class PlatformRecord(Record):
    stop_id: int
    index: int
    code: str
    sectors: str | None = None


@dataclass(frozen=True)
class PlatformAssignmentRecord(Record):
    stop_id: int
    journey_number: int
    administration: str
    index: int
    time: int | None = None
    bitfield_id: int | None = None


@dataclass(frozen=True)
class PlatformSloidRecord(Record):
    stop_id: int
    index: int
    sloid: str


@dataclass(frozen=True)
class PlatformCoordinateRecord(Record):
    stop_id: int
    index: int
    system: CoordinateSystem
    x: float
    y: float
    altitude: float = 0.0


# Transfers and through services


@dataclass(frozen=True)
class AdministrationTransferRecord(Record):
    stop_id: int | None
    administration_1: str
    administration_2: str
    minutes: int


@dataclass(frozen=True)
class LineTransferRecord(Record):
    stop_id: int | None
    administration_1: str
    category_1: str | None
    line_1: str | None
    direction_1: str | None
    administration_2: str
    category_2: str | None
    line_2: str | None
    direction_2: str | None
    minutes: int
    guaranteed: bool = False


@dataclass(frozen=True)
class JourneyTransferRecord(Record):
    stop_id: int
    journey_number_1: int
    administration_1: str
    journey_number_2: int
    administration_2: str
    minutes: int
    guaranteed: bool = False
    bitfield_id: int | None = None


@dataclass(frozen=True)
class ThroughServiceRecord(Record):
    journey_number_1: int
    administration_1: str
    stop_id_1: int
    journey_number_2: int
    administration_2: str
    bitfield_id: int
    stop_id_2: int | None = None


# Journeys


class SectionKind(Enum):
    """FPLAN sub-record types that apply to a stop-visit range."""

    CATEGORY = "G"
    RUNNING_DAYS = "A VE"
    EXCEPTION_DAYS = "A NV"
    ATTRIBUTE = "A"
    INFO_TEXT = "I"
    LINE = "L"
    DIRECTION = "R"
    CHECK_IN = "CI"
    CHECK_OUT = "CO"


@dataclass(frozen=True)
class JourneySectionRecord(Record):
    kind: SectionKind
    from_stop: int | None = None
    until_stop: int | None = None
    code: str | None = None
    reference: Any = None
    bitfield_id: int | None = None
    minutes: int | None = None


@dataclass(frozen=True)
class VisitRecord(Record):
    stop_id: int
    arrival: TimeValue | None = None
    departure: TimeValue | None = None


@dataclass(frozen=True)
class JourneyRecord(Record):
    number: int
    administration: str
    variant: str | None = None
    cycles: int = 0
    cycle_minutes: int = 0
    visits: tuple[VisitRecord, ...] = ()
    sections: tuple[JourneySectionRecord, ...] = ()

    @property
    def key(self) -> tuple[int, str]:
        return (self.number, self.administration)
