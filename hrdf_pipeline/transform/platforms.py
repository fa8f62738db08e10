"""Overlay the legacy and extended platform files into one platform table."""

import logging
from collections import defaultdict
from typing import Any

from hrdf_pipeline.hrdf.errors import ErrorKind
from hrdf_pipeline.hrdf.models import Journey, Platform, PlatformAssignment
from hrdf_pipeline.hrdf.records import (
    CoordinateSystem,
    PlatformAssignmentRecord,
    PlatformCoordinateRecord,
    PlatformRecord,
    PlatformSloidRecord,
)
from hrdf_pipeline.transform.context import ResolutionContext
from hrdf_pipeline.transform.interning import Interner
from hrdf_pipeline.transform.stops import CoordinateMerger, make_coordinates

logger = logging.getLogger(__name__)

LEGACY_LAYER = 0
EXTENDED_LAYER = 1


def layer_of(file_name: str) -> int:
    return EXTENDED_LAYER if file_name.startswith("GLEISE") else LEGACY_LAYER


def _layered(records: list[Any]) -> list[Any]:
    return sorted(records, key=lambda r: (layer_of(r.file), r.file, r.line))


def build_platforms(
    definitions: list[PlatformRecord],
    sloids: list[PlatformSloidRecord],
    coordinates: list[PlatformCoordinateRecord],
    stops: Interner[int],
    context: ResolutionContext,
) -> tuple[Interner[tuple[int, int]], tuple[Platform, ...]]:
    """Merge platform definitions, SLOIDs and coordinates keyed by (stop, index).

    Legacy files are applied first and the extended files overlay them.
    SLOIDs and coordinates from the extended layer replace legacy values. A
    code or sector list that differs between the layers cannot be
    overridden silently: the extended value is kept and the disagreement is
    reported.
    """
    logger.info("Building platforms")
    merged: dict[tuple[int, int], tuple[PlatformRecord, int]] = {}
    for record in _layered(definitions):
        if stops.get(record.stop_id) is None:
            context.lookup(stops, record, record.stop_id)
            continue
        key = (record.stop_id, record.index)
        layer = layer_of(record.file)
        existing = merged.get(key)
        if existing is None:
            merged[key] = (record, layer)
            continue
        first, first_layer = existing
        if first_layer == layer:
            context.duplicate(record, "platform", key, first)
            continue
        if (first.code, first.sectors) != (record.code, record.sectors):
            context.report(
                ErrorKind.INCONSISTENT_VARIANT_MERGE,
                record,
                f"Platform {key} is {record.code!r}/{record.sectors!r} here but "
                f"{first.code!r}/{first.sectors!r} in {first.file}:{first.line}",
            )
        merged[key] = (record, layer)

    interner: Interner[tuple[int, int]] = Interner("platform")
    kept = interner.intern(
        [record for record, _ in merged.values()],
        lambda r: (r.stop_id, r.index),
        context,
    )

    sloid_values: dict[tuple[int, int], tuple[str, int]] = {}
    for record in _layered(sloids):
        key = (record.stop_id, record.index)
        if key not in interner:
            context.unresolved(record, "platform", key)
            continue
        layer = layer_of(record.file)
        existing = sloid_values.get(key)
        if existing is None or layer > existing[1]:
            sloid_values[key] = (record.sloid, layer)

    merger = CoordinateMerger(context, "platform")
    for record in _layered(coordinates):
        key = (record.stop_id, record.index)
        if key not in interner:
            context.unresolved(record, "platform", key)
            continue
        value = make_coordinates(record.system, record.x, record.y, record.altitude)
        merger.add(key, record.system, value, record, layer=layer_of(record.file))

    platforms = []
    for handle, record in enumerate(kept):
        key = (record.stop_id, record.index)
        sloid = sloid_values.get(key)
        platforms.append(
            Platform(
                handle=handle,
                stop=stops.get(record.stop_id),
                index=record.index,
                code=record.code,
                sectors=record.sectors,
                sloid=sloid[0] if sloid else None,
                lv95=merger.get(key, CoordinateSystem.LV95),
                wgs84=merger.get(key, CoordinateSystem.WGS84),
            )
        )
    logger.info(f"Built {len(platforms)} platforms")
    return interner, tuple(platforms)


def _assignment_key(record: PlatformAssignmentRecord) -> tuple:
    return (
        record.stop_id,
        record.journey_number,
        record.administration,
        record.index,
        record.time,
        record.bitfield_id,
    )


def resolve_assignments(
    records: list[PlatformAssignmentRecord],
    platforms: Interner[tuple[int, int]],
    stops: Interner[int],
    bitfields: Interner[int],
    journeys: tuple[Journey, ...],
    journeys_by_key: dict[tuple[int, str], list[int]],
    context: ResolutionContext,
) -> tuple[tuple[PlatformAssignment, ...], dict[int, dict[int, int]]]:
    """Attach journey platform rows to resolved journeys.

    The same row usually appears in both the legacy and the extended files;
    it is kept once. Returns the assignments plus, per journey handle, the
    visit indexes whose platform is fixed on every running day.
    """
    seen: set[tuple] = set()
    assignments = []
    fixed: dict[int, dict[int, int]] = defaultdict(dict)
    for record in _layered(records):
        key = _assignment_key(record)
        if key in seen:
            continue
        seen.add(key)

        journey_key = (record.journey_number, record.administration)
        candidates = journeys_by_key.get(journey_key)
        if not candidates:
            if not context.is_excluded("journey", journey_key):
                context.unresolved(record, "journey", f"{record.journey_number}/{record.administration}")
            continue
        stop = context.lookup(stops, record, record.stop_id)
        if stop is None:
            continue
        platform = platforms.get((record.stop_id, record.index))
        if platform is None:
            context.unresolved(record, "platform", (record.stop_id, record.index))
            continue
        bitfield = None
        if record.bitfield_id:
            bitfield = context.lookup(bitfields, record, record.bitfield_id)
            if bitfield is None:
                continue

        matched = False
        for handle in candidates:
            visit_indexes = [
                index
                for index, visit in enumerate(journeys[handle].visits)
                if visit.stop == stop
                and (record.time is None or record.time in (visit.arrival, visit.departure))
            ]
            if not visit_indexes:
                continue
            matched = True
            assignments.append(
                PlatformAssignment(
                    journey=handle,
                    stop=stop,
                    platform=platform,
                    time=record.time,
                    bitfield=bitfield,
                )
            )
            if bitfield is None:
                for index in visit_indexes:
                    fixed[handle].setdefault(index, platform)
        if not matched:
            context.report(
                ErrorKind.UNRESOLVED_REFERENCE,
                record,
                f"Journey {record.journey_number}/{record.administration} does not call at stop {record.stop_id}",
            )
    logger.info(f"Resolved {len(assignments)} platform assignments")
    return tuple(assignments), dict(fixed)
