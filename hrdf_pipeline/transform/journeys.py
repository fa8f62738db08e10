"""Resolve FPLAN journey records into journeys."""

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, replace

from hrdf_pipeline.hrdf.errors import ErrorKind
from hrdf_pipeline.hrdf.models import (
    Journey,
    Section,
    SectionRef,
    ThroughService,
    Visit,
)
from hrdf_pipeline.hrdf.records import (
    JourneyRecord,
    JourneySectionRecord,
    SectionKind,
    ThroughServiceRecord,
    VisitRecord,
)
from hrdf_pipeline.hrdf.tokenizer import TimeValue
from hrdf_pipeline.transform.context import ResolutionContext
from hrdf_pipeline.transform.interning import Interner

logger = logging.getLogger(__name__)


@dataclass
class JourneyRegistries:
    """Interners a journey's references are resolved against."""

    stops: Interner[int]
    bitfields: Interner[int]
    categories: Interner[str]
    lines: Interner[int]
    directions: Interner[str]
    attributes: Interner[str]
    info_texts: Interner[int]
    administrations: dict[str, int]


class Unresolvable(Exception):
    """Raised inside journey resolution once an error has been reported."""


def _minutes(time: TimeValue | None) -> int | None:
    return time.minutes if time is not None else None


def _usable(time: TimeValue | None) -> bool:
    return time is not None and not time.restricted


def label(record: JourneyRecord) -> str:
    return f"{record.number}/{record.administration}"


class JourneyResolver:
    """Turn one journey record at a time into a Journey.

    Any unresolved reference excludes the whole journey; the journey key is
    remembered as excluded so that platform, transfer and through-service
    rows for it are dropped without further errors.
    """

    def __init__(
        self,
        registries: JourneyRegistries,
        context: ResolutionContext,
        holiday_attributes: Sequence[str] = (),
    ) -> None:
        self.registries = registries
        self.context = context
        self.holiday_attributes = frozenset(holiday_attributes)

    def resolve_all(self, records: list[JourneyRecord]) -> tuple[Journey, ...]:
        logger.info(f"Resolving {len(records)} journeys")
        journeys: list[Journey] = []
        excluded = 0
        for record in sorted(records, key=lambda r: (r.number, r.administration, r.file, r.line)):
            try:
                journeys.append(self.resolve(len(journeys), record))
            except Unresolvable:
                excluded += 1
                self.context.exclude("journey", record.key)
        if excluded:
            logger.warning(f"Excluded {excluded} journeys with unresolved references")
        logger.info(f"Resolved {len(journeys)} journeys")
        return tuple(journeys)

    def _lookup(self, interner: Interner, record: JourneySectionRecord | VisitRecord, native_id) -> int:
        handle = self.context.lookup(interner, record, native_id)
        if handle is None:
            raise Unresolvable()
        return handle

    def _bitfield(self, record: JourneySectionRecord) -> int | None:
        if not record.bitfield_id:
            return None
        return self._lookup(self.registries.bitfields, record, record.bitfield_id)

    def _section(self, journey: JourneyRecord, stop_ids: list[int], record: JourneySectionRecord) -> Section:
        """Map a from/until stop pair to a range of visit indexes."""
        first, last = 0, len(stop_ids) - 1
        if record.from_stop is not None:
            first = self._position(journey, stop_ids, record, record.from_stop, 0)
        if record.until_stop is not None:
            last = self._position(journey, stop_ids, record, record.until_stop, first)
        return Section(first, last)

    def _position(
        self,
        journey: JourneyRecord,
        stop_ids: list[int],
        record: JourneySectionRecord,
        stop_id: int,
        start: int,
    ) -> int:
        try:
            return stop_ids.index(stop_id, start)
        except ValueError:
            self.context.report(
                ErrorKind.UNRESOLVED_REFERENCE,
                record,
                f"Stop {stop_id} is not on journey {label(journey)}",
            )
            raise Unresolvable() from None

    def resolve(self, handle: int, record: JourneyRecord) -> Journey:
        """Resolve one journey; raises Unresolvable after reporting."""
        registries = self.registries
        failed = False
        visits = []
        for visit in record.visits:
            stop = self.context.lookup(registries.stops, visit, visit.stop_id)
            if stop is None:
                failed = True
                continue
            visits.append(
                Visit(
                    stop=stop,
                    arrival=_minutes(visit.arrival),
                    departure=_minutes(visit.departure),
                    can_alight=_usable(visit.arrival),
                    can_board=_usable(visit.departure),
                )
            )

        stop_ids = [visit.stop_id for visit in record.visits]
        refs: dict[SectionKind, list[SectionRef]] = defaultdict(list)
        for section in record.sections:
            try:
                refs[section.kind].append(self._section_ref(record, stop_ids, section))
            except Unresolvable:
                failed = True
        if failed:
            raise Unresolvable()

        running_days = []
        every_day = False
        for ref in refs[SectionKind.RUNNING_DAYS]:
            if ref.bitfield is None:
                every_day = True
            elif ref.bitfield not in running_days:
                running_days.append(ref.bitfield)
        exception_days = []
        for ref in refs[SectionKind.EXCEPTION_DAYS]:
            if ref.bitfield not in exception_days:
                exception_days.append(ref.bitfield)

        attributes = []
        for ref in refs[SectionKind.ATTRIBUTE]:
            if ref.target not in attributes:
                attributes.append(ref.target)
        holiday_sensitive = any(ref.code in self.holiday_attributes for ref in refs[SectionKind.ATTRIBUTE])

        categories = refs[SectionKind.CATEGORY]
        lines = refs[SectionKind.LINE]
        directions = refs[SectionKind.DIRECTION]
        return Journey(
            handle=handle,
            number=record.number,
            administration=record.administration,
            visits=tuple(visits),
            operator=registries.administrations.get(record.administration),
            category=categories[0].target if categories else None,
            line=next((ref.target for ref in lines if ref.target is not None), None),
            line_designation=next((ref.code for ref in lines if ref.code is not None), None),
            direction=next((ref.target for ref in directions if ref.target is not None), None),
            direction_type=directions[0].code if directions else None,
            attributes=tuple(attributes),
            running_days=() if every_day else tuple(running_days),
            exception_days=tuple(exception_days),
            holiday_sensitive=holiday_sensitive,
            cycles=record.cycles,
            cycle_minutes=record.cycle_minutes,
            categories=tuple(categories),
            lines=tuple(lines),
            directions=tuple(directions),
            attribute_refs=tuple(refs[SectionKind.ATTRIBUTE]),
            info_texts=tuple(refs[SectionKind.INFO_TEXT]),
            check_in=tuple(refs[SectionKind.CHECK_IN]),
            check_out=tuple(refs[SectionKind.CHECK_OUT]),
        )

    def _section_ref(
        self,
        journey: JourneyRecord,
        stop_ids: list[int],
        record: JourneySectionRecord,
    ) -> SectionRef:
        registries = self.registries
        section = self._section(journey, stop_ids, record)
        kind = record.kind
        if kind is SectionKind.CATEGORY:
            target = self._lookup(registries.categories, record, record.code)
            return SectionRef(section, target=target, code=record.code)
        if kind is SectionKind.RUNNING_DAYS:
            return SectionRef(section, bitfield=self._bitfield(record))
        if kind is SectionKind.EXCEPTION_DAYS:
            bitfield = self._bitfield(record)
            if bitfield is None:
                self.context.report(
                    ErrorKind.MALFORMED_RECORD,
                    record,
                    f"Running-day exception of journey {label(journey)} names no bitfield",
                )
                raise Unresolvable()
            return SectionRef(section, bitfield=bitfield)
        if kind is SectionKind.ATTRIBUTE:
            target = self._lookup(registries.attributes, record, record.code)
            return SectionRef(section, target=target, code=record.code, bitfield=self._bitfield(record))
        if kind is SectionKind.INFO_TEXT:
            target = self._lookup(registries.info_texts, record, record.reference)
            return SectionRef(section, target=target, code=record.code, bitfield=self._bitfield(record))
        if kind is SectionKind.LINE:
            if record.reference is not None:
                return SectionRef(section, target=self._lookup(registries.lines, record, record.reference))
            return SectionRef(section, code=record.code)
        if kind is SectionKind.DIRECTION:
            target = None
            if record.reference:
                target = self._lookup(registries.directions, record, record.reference)
            return SectionRef(section, target=target, code=record.code)
        # Check-in and check-out times.
        return SectionRef(section, minutes=record.minutes)


def index_by_key(journeys: Sequence[Journey]) -> dict[tuple[int, str], list[int]]:
    """Journey handles per (number, administration), in handle order."""
    index: dict[tuple[int, str], list[int]] = defaultdict(list)
    for journey in journeys:
        index[journey.key].append(journey.handle)
    return dict(index)


def calling_at(journeys: Sequence[Journey], handles: list[int], stop: int) -> list[int]:
    return [handle for handle in handles if any(v.stop == stop for v in journeys[handle].visits)]


def resolve_through_services(
    records: list[ThroughServiceRecord],
    journeys: Sequence[Journey],
    journeys_by_key: dict[tuple[int, str], list[int]],
    stops: Interner[int],
    bitfields: Interner[int],
    context: ResolutionContext,
) -> tuple[ThroughService, ...]:
    """Resolve DURCHBI rows into journey-to-journey continuations."""
    services = []
    for record in sorted(records, key=lambda r: (r.file, r.line)):
        ends = []
        for number, administration in (
            (record.journey_number_1, record.administration_1),
            (record.journey_number_2, record.administration_2),
        ):
            key = (number, administration)
            handles = journeys_by_key.get(key)
            if not handles and not context.is_excluded("journey", key):
                context.unresolved(record, "journey", f"{number}/{administration}")
            ends.append(handles)
        stop = context.lookup(stops, record, record.stop_id_1)
        to_stop = None
        if record.stop_id_2 is not None:
            to_stop = context.lookup(stops, record, record.stop_id_2)
            if to_stop is None:
                continue
        bitfield = None
        if record.bitfield_id:
            bitfield = context.lookup(bitfields, record, record.bitfield_id)
            if bitfield is None:
                continue
        if stop is None or not all(ends):
            continue

        from_handles = calling_at(journeys, ends[0], stop)
        to_handles = calling_at(journeys, ends[1], to_stop if to_stop is not None else stop)
        if not from_handles or not to_handles:
            logger.warning(
                f"{record.file}:{record.line}: through service stop is not on both journeys, "
                "linking by journey number only"
            )
            from_handles = from_handles or ends[0]
            to_handles = to_handles or ends[1]
        for from_journey in from_handles:
            for to_journey in to_handles:
                services.append(
                    ThroughService(
                        from_journey=from_journey,
                        to_journey=to_journey,
                        stop=stop,
                        to_stop=to_stop,
                        bitfield=bitfield,
                    )
                )
    logger.info(f"Resolved {len(services)} through services")
    return tuple(services)


def attach(
    journeys: tuple[Journey, ...],
    through_services: tuple[ThroughService, ...],
    fixed_platforms: dict[int, dict[int, int]],
) -> tuple[Journey, ...]:
    """Return journeys with through-service indexes and fixed platforms set."""
    services: dict[int, list[int]] = defaultdict(list)
    for index, service in enumerate(through_services):
        services[service.from_journey].append(index)
        if service.to_journey != service.from_journey:
            services[service.to_journey].append(index)

    result = []
    for journey in journeys:
        changes = {}
        if journey.handle in services:
            changes["through_services"] = tuple(services[journey.handle])
        platforms = fixed_platforms.get(journey.handle)
        if platforms:
            changes["visits"] = tuple(
                replace(visit, platform=platforms[index]) if index in platforms else visit
                for index, visit in enumerate(journey.visits)
            )
        result.append(replace(journey, **changes) if changes else journey)
    return tuple(result)
