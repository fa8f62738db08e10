"""Stop registry, coordinates and stop-level enrichment."""

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Any

from hrdf_pipeline.hrdf.errors import ErrorKind
from hrdf_pipeline.hrdf.models import (
    ExchangeTime,
    LV95Coordinates,
    Stop,
    StopConnection,
    WGS84Coordinates,
)
from hrdf_pipeline.hrdf.records import (
    CoordinateRecord,
    CoordinateSystem,
    ExchangeFlagRecord,
    ExchangeTimeRecord,
    Record,
    StopConnectionRecord,
    StopGroupRecord,
    StopPriorityRecord,
    StopPropertyRecord,
    StopRecord,
)
from hrdf_pipeline.transform.context import ResolutionContext
from hrdf_pipeline.transform.interning import Interner

logger = logging.getLogger(__name__)

DEFAULT_EXCHANGE_STOP = 9999999


def make_coordinates(
    system: CoordinateSystem, x: float, y: float, altitude: float
) -> LV95Coordinates | WGS84Coordinates:
    """LV95 rows are easting/northing; WGS rows are longitude/latitude."""
    if system is CoordinateSystem.LV95:
        return LV95Coordinates(easting=x, northing=y, altitude=altitude)
    return WGS84Coordinates(latitude=y, longitude=x, altitude=altitude)


class CoordinateMerger:
    """Collect coordinates per (key, system); report conflicting duplicates.

    A value from a higher ``layer`` replaces one from a lower layer; two
    different values within the same layer are an inconsistent merge and
    the first one is kept.
    """

    def __init__(self, context: ResolutionContext, what: str) -> None:
        self.context = context
        self.what = what
        self.values: dict[tuple[Any, CoordinateSystem], tuple[Any, Record, int]] = {}

    def add(self, key: Any, system: CoordinateSystem, value: Any, record: Record, layer: int = 0) -> None:
        slot = (key, system)
        existing = self.values.get(slot)
        if existing is None or layer > existing[2]:
            self.values[slot] = (value, record, layer)
            return
        if existing[0] != value:
            first = existing[1]
            self.context.report(
                ErrorKind.INCONSISTENT_VARIANT_MERGE,
                record,
                f"Conflicting {system.value} coordinates for {self.what} {key} "
                f"(first given at {first.file}:{first.line})",
            )

    def get(self, key: Any, system: CoordinateSystem) -> Any:
        entry = self.values.get((key, system))
        return entry[0] if entry else None


def build_stops(
    stops: list[StopRecord],
    coordinates: list[CoordinateRecord],
    priorities: list[StopPriorityRecord],
    exchange_flags: list[ExchangeFlagRecord],
    exchange_times: list[ExchangeTimeRecord],
    properties: list[StopPropertyRecord],
    groups: list[StopGroupRecord],
    context: ResolutionContext,
) -> tuple[Interner[int], tuple[Stop, ...], ExchangeTime | None]:
    """Intern BAHNHOF and enrich every stop from the companion files.

    Returns the interner, the stops in handle order and the dataset-wide
    default exchange time (UMSTEIGB stop 9999999), if any.
    """
    logger.info("Building stops")
    interner: Interner[int] = Interner("stop")
    kept = interner.intern(stops, lambda r: r.stop_id, context)
    updates: dict[int, dict[str, Any]] = defaultdict(dict)

    merger = CoordinateMerger(context, "stop")
    for record in sorted(coordinates, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.stop_id)
        if handle is None:
            context.unresolved(record, "stop", record.stop_id)
            continue
        value = make_coordinates(record.system, record.x, record.y, record.altitude)
        merger.add(record.stop_id, record.system, value, record)

    for record in sorted(priorities, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.stop_id)
        if handle is None:
            context.unresolved(record, "stop", record.stop_id)
            continue
        updates[handle].setdefault("exchange_priority", record.priority)

    for record in sorted(exchange_flags, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.stop_id)
        if handle is None:
            context.unresolved(record, "stop", record.stop_id)
            continue
        updates[handle].setdefault("exchange_flag", record.flag)

    default_exchange: ExchangeTime | None = None
    for record in sorted(exchange_times, key=lambda r: (r.file, r.line)):
        value = ExchangeTime(record.intercity_minutes, record.other_minutes)
        if record.stop_id == DEFAULT_EXCHANGE_STOP:
            default_exchange = default_exchange or value
            continue
        handle = interner.get(record.stop_id)
        if handle is None:
            context.unresolved(record, "stop", record.stop_id)
            continue
        updates[handle].setdefault("exchange_time", value)

    boarding_areas: dict[int, list[str]] = defaultdict(list)
    for record in sorted(properties, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.stop_id)
        if handle is None:
            # The restrictions file covers the whole country; other stops are expected.
            logger.debug(f"{record.file}:{record.line}: stop {record.stop_id} not in registry")
            continue
        if record.kind == "boarding_area":
            boarding_areas[handle].append(record.value)
        elif record.kind == "restriction":
            updates[handle].setdefault("restrictions", record.value)
        else:
            updates[handle].setdefault(record.kind, record.value)

    for record in sorted(groups, key=lambda r: (r.file, r.line)):
        main = interner.get(record.main_stop)
        if main is None:
            context.unresolved(record, "stop", record.main_stop)
            continue
        missing = [stop_id for stop_id in record.members if stop_id not in interner]
        if missing:
            for stop_id in missing:
                context.unresolved(record, "stop", stop_id)
            continue
        members = [interner.get(stop_id) for stop_id in record.members]
        updates[main].setdefault("group", tuple(members))

    result = []
    for handle, record in enumerate(kept):
        stop = Stop(
            handle=handle,
            stop_id=record.stop_id,
            name=record.name,
            long_name=record.long_name,
            abbreviation=record.abbreviation,
            synonyms=record.synonyms,
            lv95=merger.get(record.stop_id, CoordinateSystem.LV95),
            wgs84=merger.get(record.stop_id, CoordinateSystem.WGS84),
            boarding_areas=tuple(boarding_areas.get(handle, ())),
        )
        if handle in updates:
            stop = replace(stop, **updates[handle])
        result.append(stop)

    logger.info(f"Built {len(result)} stops")
    return interner, tuple(result), default_exchange


def build_stop_connections(
    records: list[StopConnectionRecord],
    stops: Interner[int],
    attributes: Interner[str],
    context: ResolutionContext,
) -> tuple[StopConnection, ...]:
    """Resolve METABHF walking connections."""
    connections = []
    for record in sorted(records, key=lambda r: (r.file, r.line)):
        ok = True
        for stop_id in (record.from_stop, record.to_stop):
            if stop_id not in stops:
                context.unresolved(record, "stop", stop_id)
                ok = False
        attribute_handles = []
        for code in record.attributes:
            handle = attributes.get(code)
            if handle is None:
                context.unresolved(record, "attribute", code)
                ok = False
            else:
                attribute_handles.append(handle)
        if not ok:
            continue
        connections.append(
            StopConnection(
                from_stop=stops.get(record.from_stop),
                to_stop=stops.get(record.to_stop),
                minutes=record.minutes,
                attributes=tuple(attribute_handles),
            )
        )
    logger.info(f"Built {len(connections)} stop connections")
    return tuple(connections)
