"""Entity resolver: decoded record sets in, timetable model out."""

import logging
from collections import defaultdict
from collections.abc import Iterable

from hrdf_pipeline.hrdf.calendar import CalendarEngine
from hrdf_pipeline.hrdf.errors import LoadError, LoadFailed
from hrdf_pipeline.hrdf.models import LoadConfig, LoadResult
from hrdf_pipeline.hrdf.records import (
    AdministrationTransferRecord,
    AttributeRecord,
    AttributeTextRecord,
    BitfieldRecord,
    CategoryRecord,
    CategoryTextRecord,
    CoordinateRecord,
    DirectionRecord,
    ExchangeFlagRecord,
    ExchangeTimeRecord,
    HolidayRecord,
    InfoTextRecord,
    JourneyRecord,
    JourneyTransferRecord,
    KeyDatesRecord,
    LinePropertyRecord,
    LineRecord,
    LineTransferRecord,
    OperatorAdministrationsRecord,
    OperatorNamesRecord,
    OperatorSboidRecord,
    PlatformAssignmentRecord,
    PlatformCoordinateRecord,
    PlatformRecord,
    PlatformSloidRecord,
    RecordSet,
    StopConnectionRecord,
    StopGroupRecord,
    StopPriorityRecord,
    StopPropertyRecord,
    StopRecord,
    ThroughServiceRecord,
)
from hrdf_pipeline.model import TimetableModel
from hrdf_pipeline.transform.context import ResolutionContext
from hrdf_pipeline.transform.journeys import (
    JourneyRegistries,
    JourneyResolver,
    attach,
    index_by_key,
    resolve_through_services,
)
from hrdf_pipeline.transform.platforms import build_platforms, resolve_assignments
from hrdf_pipeline.transform.registries import (
    build_attributes,
    build_bitfields,
    build_categories,
    build_directions,
    build_holidays,
    build_info_texts,
    build_key_dates,
    build_lines,
    build_operators,
)
from hrdf_pipeline.transform.stops import build_stop_connections, build_stops
from hrdf_pipeline.transform.transfers import build_transfer_rules

logger = logging.getLogger(__name__)


def sort_errors(errors: Iterable[LoadError]) -> list[LoadError]:
    """Deterministic error order: file, line, then message."""
    return sorted(errors, key=lambda e: (e.file, e.line or 0, e.kind.value, e.message))


class Resolver:
    """Build a TimetableModel from every decoded record set.

    Errors are collected, never raised one by one. Records with an
    unresolved reference are left out of the model. In strict mode any
    collected error turns into ``LoadFailed``.
    """

    def __init__(self, config: LoadConfig) -> None:
        self.config = config

    def resolve(self, record_sets: list[RecordSet]) -> LoadResult:
        records: dict[type, list] = defaultdict(list)
        decode_errors: list[LoadError] = []
        for record_set in sorted(record_sets, key=lambda rs: rs.file):
            decode_errors.extend(record_set.errors)
            for record in record_set.records:
                records[type(record)].append(record)

        context = ResolutionContext()
        key_dates = build_key_dates(records[KeyDatesRecord])
        if key_dates is None:
            # Without a validity window nothing else can be interpreted.
            raise LoadFailed(sort_errors(decode_errors))

        bitfield_interner, bitfields = build_bitfields(records[BitfieldRecord], key_dates, context)
        holidays = build_holidays(records[HolidayRecord], context)

        stop_interner, stops, default_exchange = build_stops(
            records[StopRecord],
            records[CoordinateRecord],
            records[StopPriorityRecord],
            records[ExchangeFlagRecord],
            records[ExchangeTimeRecord],
            records[StopPropertyRecord],
            records[StopGroupRecord],
            context,
        )
        operator_interner, operators, administrations = build_operators(
            records[OperatorNamesRecord],
            records[OperatorAdministrationsRecord],
            records[OperatorSboidRecord],
            context,
        )
        info_text_interner, info_texts = build_info_texts(records[InfoTextRecord], context)
        line_interner, lines = build_lines(
            records[LineRecord], records[LinePropertyRecord], info_text_interner, context
        )
        direction_interner, directions = build_directions(records[DirectionRecord], context)
        category_interner, categories, category_texts = build_categories(
            records[CategoryRecord], records[CategoryTextRecord], context
        )
        attribute_interner, attributes = build_attributes(
            records[AttributeRecord], records[AttributeTextRecord], context
        )
        connections = build_stop_connections(
            records[StopConnectionRecord], stop_interner, attribute_interner, context
        )
        platform_interner, platforms = build_platforms(
            records[PlatformRecord],
            records[PlatformSloidRecord],
            records[PlatformCoordinateRecord],
            stop_interner,
            context,
        )

        registries = JourneyRegistries(
            stops=stop_interner,
            bitfields=bitfield_interner,
            categories=category_interner,
            lines=line_interner,
            directions=direction_interner,
            attributes=attribute_interner,
            info_texts=info_text_interner,
            administrations=administrations,
        )
        journeys = JourneyResolver(registries, context, self.config.holiday_attributes).resolve_all(
            records[JourneyRecord]
        )
        journeys_by_key = index_by_key(journeys)

        assignments, fixed_platforms = resolve_assignments(
            records[PlatformAssignmentRecord],
            platform_interner,
            stop_interner,
            bitfield_interner,
            journeys,
            journeys_by_key,
            context,
        )
        through_services = resolve_through_services(
            records[ThroughServiceRecord],
            journeys,
            journeys_by_key,
            stop_interner,
            bitfield_interner,
            context,
        )
        journeys = attach(journeys, through_services, fixed_platforms)

        transfer_rules = build_transfer_rules(
            records[AdministrationTransferRecord],
            records[LineTransferRecord],
            records[JourneyTransferRecord],
            stops,
            default_exchange,
            stop_interner,
            category_interner,
            bitfield_interner,
            administrations,
            journeys,
            journeys_by_key,
            context,
        )

        calendar = CalendarEngine(key_dates, bitfields, holidays)
        model = TimetableModel(
            key_dates=key_dates,
            calendar=calendar,
            stops=stops,
            stop_ids=stop_interner.id_map,
            operators=operators,
            operator_ids=operator_interner.id_map,
            administrations=administrations,
            lines=lines,
            line_ids=line_interner.id_map,
            directions=directions,
            direction_codes=direction_interner.id_map,
            categories=categories,
            category_codes=category_interner.id_map,
            category_texts=category_texts,
            attributes=attributes,
            attribute_codes=attribute_interner.id_map,
            info_texts=info_texts,
            info_text_ids=info_text_interner.id_map,
            bitfields=bitfields,
            bitfield_ids=bitfield_interner.id_map,
            holidays=holidays,
            platforms=platforms,
            platform_keys=platform_interner.id_map,
            platform_assignments=assignments,
            journeys=journeys,
            through_services=through_services,
            transfer_rules=transfer_rules,
            stop_connections=connections,
            intercity_classes=self.config.intercity_classes,
        )

        errors = sort_errors(decode_errors + context.errors)
        if errors:
            logger.error(f"Resolution finished with {len(errors)} errors")
        else:
            logger.info("Resolution finished without errors")
        if self.config.strict and errors:
            raise LoadFailed(errors)
        return LoadResult(model=model, errors=errors, stats=model.stats())
