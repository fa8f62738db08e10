"""Resolved timetable entities and load configuration.

Entities reference each other through dense integer handles (indexes into
the per-kind tuples held by the timetable model), never through object
links, so a resolved model is acyclic and can be shared freely.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from hrdf_pipeline.hrdf.errors import LoadError
from hrdf_pipeline.hrdf.manifest import FormatVersion
from hrdf_pipeline.hrdf.records import Language

if TYPE_CHECKING:
    from hrdf_pipeline.model import TimetableModel

def _empty_map() -> MappingProxyType:
    return MappingProxyType({})


@dataclass(frozen=True)
class LV95Coordinates:
    """Swiss national projected coordinates."""

    easting: float
    northing: float
    altitude: float = 0.0


@dataclass(frozen=True)
class WGS84Coordinates:
    latitude: float
    longitude: float
    altitude: float = 0.0


@dataclass(frozen=True)
class ExchangeTime:
    """Minimum transfer minutes at a stop (UMSTEIGB)."""

    intercity_minutes: int
    other_minutes: int


@dataclass(frozen=True)
class Stop:
    handle: int
    stop_id: int
    name: str
    long_name: str | None = None
    abbreviation: str | None = None
    synonyms: tuple[str, ...] = ()
    lv95: LV95Coordinates | None = None
    wgs84: WGS84Coordinates | None = None
    exchange_priority: int = 8
    exchange_flag: int | None = None
    exchange_time: ExchangeTime | None = None
    restrictions: int | None = None
    sloid: str | None = None
    boarding_areas: tuple[str, ...] = ()
    country: str | None = None
    canton: int | None = None
    group: tuple[int, ...] = ()  # stop handles, for the main stop of a group

    @property
    def is_auxiliary(self) -> bool:
        """Ids below 1000000 are auxiliary points, not public stops."""
        return self.stop_id < 1_000_000

    @property
    def allows_exchange(self) -> bool:
        return self.exchange_flag != 0


@dataclass(frozen=True)
class StopConnection:
    """A walking link between two stops (METABHF)."""

    from_stop: int
    to_stop: int
    minutes: int
    attributes: tuple[int, ...] = ()


@dataclass(frozen=True)
class OperatorName:
    short_name: str | None = None
    abbreviation: str | None = None
    long_name: str | None = None


@dataclass(frozen=True)
class Operator:
    handle: int
    operator_id: int
    names: MappingProxyType = field(default_factory=_empty_map)  # Language -> OperatorName
    administrations: tuple[str, ...] = ()
    sboid: str | None = None

    def name(self, language: Language = Language.GERMAN) -> OperatorName | None:
        return self.names.get(language) or self.names.get(Language.GERMAN)


@dataclass(frozen=True)
class Line:
    handle: int
    line_id: int
    key: str
    short_name: str | None = None
    long_name: str | None = None
    internal_designation: str | None = None
    description: str | None = None
    region: str | None = None
    text_color: tuple[int, int, int] | None = None
    background_color: tuple[int, int, int] | None = None
    main_line: int | None = None  # line handle
    info_texts: tuple[tuple[str, int], ...] = ()  # (code, info text handle)


@dataclass(frozen=True)
class Direction:
    handle: int
    code: str
    text: str


@dataclass(frozen=True)
class Category:
    handle: int
    code: str
    product_class: int
    tariff_group: str
    output_control: int
    designation: str
    surcharge: int
    flag: str | None = None
    names: MappingProxyType = field(default_factory=_empty_map)  # Language -> category long name

    @property
    def is_local(self) -> bool:
        return self.flag == "N"


@dataclass(frozen=True)
class Attribute:
    handle: int
    code: str
    stop_scope: int
    main_priority: int
    secondary_priority: int
    descriptions: MappingProxyType = field(default_factory=_empty_map)  # Language -> text


@dataclass(frozen=True)
class InfoText:
    handle: int
    info_text_id: int
    texts: MappingProxyType = field(default_factory=_empty_map)  # Language -> text

    def text(self, language: Language = Language.GERMAN) -> str | None:
        return self.texts.get(language) or self.texts.get(Language.GERMAN)


@dataclass(frozen=True)
class Bitfield:
    handle: int
    bitfield_id: int
    mask: int
    length: int


@dataclass(frozen=True)
class Holiday:
    day: date
    names: MappingProxyType = field(default_factory=_empty_map)  # Language -> name


@dataclass(frozen=True)
class Platform:
    handle: int
    stop: int
    index: int
    code: str
    sectors: str | None = None
    sloid: str | None = None
    lv95: LV95Coordinates | None = None
    wgs84: WGS84Coordinates | None = None


@dataclass(frozen=True)
class PlatformAssignment:
    journey: int
    stop: int
    platform: int
    time: int | None = None  # minutes after midnight
    bitfield: int | None = None


@dataclass(frozen=True)
class Section:
    """An inclusive range of stop-visit indexes within a journey."""

    first: int
    last: int

    def covers(self, index: int) -> bool:
        return self.first <= index <= self.last


@dataclass(frozen=True)
class Visit:
    stop: int
    arrival: int | None = None  # minutes after the service day's midnight
    departure: int | None = None
    can_alight: bool = True
    can_board: bool = True
    platform: int | None = None  # platform handle when unconditionally assigned


@dataclass(frozen=True)
class SectionRef:
    """A reference that applies to part of a journey."""

    section: Section
    target: int | None = None  # handle in the relevant arena
    code: str | None = None
    bitfield: int | None = None
    minutes: int | None = None


@dataclass(frozen=True)
class ThroughService:
    from_journey: int
    to_journey: int
    stop: int
    to_stop: int | None = None
    bitfield: int | None = None


@dataclass(frozen=True)
class Journey:
    handle: int
    number: int
    administration: str
    visits: tuple[Visit, ...]
    operator: int | None = None
    category: int | None = None
    line: int | None = None
    line_designation: str | None = None
    direction: int | None = None
    direction_type: str | None = None
    attributes: tuple[int, ...] = ()
    running_days: tuple[int, ...] = ()  # bitfield handles; empty means every day
    exception_days: tuple[int, ...] = ()
    holiday_sensitive: bool = False
    cycles: int = 0
    cycle_minutes: int = 0
    categories: tuple[SectionRef, ...] = ()
    lines: tuple[SectionRef, ...] = ()
    directions: tuple[SectionRef, ...] = ()
    attribute_refs: tuple[SectionRef, ...] = ()
    info_texts: tuple[SectionRef, ...] = ()
    check_in: tuple[SectionRef, ...] = ()
    check_out: tuple[SectionRef, ...] = ()
    through_services: tuple[int, ...] = ()  # indexes into TimetableModel.through_services

    @property
    def key(self) -> tuple[int, str]:
        return (self.number, self.administration)

    def occurrences(self) -> range:
        """Start offsets in minutes for each repetition of a cyclic journey."""
        if self.cycles and self.cycle_minutes:
            return range(0, (self.cycles + 1) * self.cycle_minutes, self.cycle_minutes)
        return range(0, 1)


class TransferRuleKind(Enum):
    """Transfer rule sources, most specific first."""

    JOURNEY_PAIR = 0  # UMSTEIGZ
    LINE_AT_STOP = 1  # UMSTEIGL with a stop
    LINE_GLOBAL = 2  # UMSTEIGL for all stops
    ADMINISTRATION_AT_STOP = 3  # UMSTEIGV with a stop
    ADMINISTRATION_GLOBAL = 4  # UMSTEIGV for all stops
    STOP_DEFAULT = 5  # UMSTEIGB per stop
    DATASET_DEFAULT = 6  # UMSTEIGB 9999999


@dataclass(frozen=True)
class TransferRule:
    kind: TransferRuleKind
    minutes: int
    stop: int | None = None
    guaranteed: bool = False
    from_administration: str | None = None
    to_administration: str | None = None
    from_category: int | None = None
    to_category: int | None = None
    from_line: str | None = None
    to_line: str | None = None
    from_direction: str | None = None
    to_direction: str | None = None
    from_journey: int | None = None
    to_journey: int | None = None
    bitfield: int | None = None
    intercity_minutes: int | None = None


@dataclass(frozen=True)
class KeyDates:
    start: date
    end: date
    name: str | None = None
    created_at: str | None = None
    version: str | None = None
    provider: str | None = None

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class Departure:
    """One boarding opportunity at a stop."""

    minutes: int
    journey: int
    visit_index: int
    occurrence: int = 0


@dataclass
class ValidationReport:
    """Report from validation process."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    stats: dict[str, int] = field(default_factory=dict)


@dataclass
class LoadConfig:
    """Configuration for loading a dataset."""

    input_path: str
    format_version: FormatVersion = FormatVersion.V_5_40_41_2_0_7
    strict: bool = False
    jobs: int = 0  # 0 means one worker per CPU
    encoding: str | None = None
    holiday_attributes: tuple[str, ...] = ()
    intercity_classes: tuple[int, ...] = (0, 1)


@dataclass
class LoadResult:
    """A resolved model plus every defect collected on the way."""

    model: "TimetableModel"
    errors: list[LoadError] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors
