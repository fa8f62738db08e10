"""The resolved, read-only timetable model."""

import logging
from bisect import bisect_left, bisect_right
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import date
from types import MappingProxyType
from typing import Any

from hrdf_pipeline.hrdf.calendar import CalendarEngine
from hrdf_pipeline.hrdf.models import (
    Attribute,
    Bitfield,
    Category,
    Departure,
    Direction,
    Holiday,
    InfoText,
    Journey,
    KeyDates,
    Line,
    Operator,
    Platform,
    PlatformAssignment,
    Stop,
    StopConnection,
    ThroughService,
    TransferRule,
    TransferRuleKind,
)
from hrdf_pipeline.optimization.indexing import TransferIndex, build_departure_index

logger = logging.getLogger(__name__)

_LINE_KINDS = (TransferRuleKind.LINE_AT_STOP, TransferRuleKind.LINE_GLOBAL)


class TimetableModel:
    """Every resolved entity of one dataset plus the indexes over them.

    Entities live in per-kind tuples indexed by their handle. Lookups by
    native id go through read-only maps. Nothing here changes after
    construction, so one model can serve many threads at once; loading a
    newer dataset produces a new model.
    """

    def __init__(
        self,
        *,
        key_dates: KeyDates,
        calendar: CalendarEngine,
        stops: Sequence[Stop] = (),
        stop_ids: Mapping[int, int] | None = None,
        operators: Sequence[Operator] = (),
        operator_ids: Mapping[int, int] | None = None,
        administrations: Mapping[str, int] | None = None,
        lines: Sequence[Line] = (),
        line_ids: Mapping[int, int] | None = None,
        directions: Sequence[Direction] = (),
        direction_codes: Mapping[str, int] | None = None,
        categories: Sequence[Category] = (),
        category_codes: Mapping[str, int] | None = None,
        category_texts: Mapping[str, Any] | None = None,
        attributes: Sequence[Attribute] = (),
        attribute_codes: Mapping[str, int] | None = None,
        info_texts: Sequence[InfoText] = (),
        info_text_ids: Mapping[int, int] | None = None,
        bitfields: Sequence[Bitfield] = (),
        bitfield_ids: Mapping[int, int] | None = None,
        holidays: Sequence[Holiday] = (),
        platforms: Sequence[Platform] = (),
        platform_keys: Mapping[tuple[int, int], int] | None = None,
        platform_assignments: Sequence[PlatformAssignment] = (),
        journeys: Sequence[Journey] = (),
        through_services: Sequence[ThroughService] = (),
        transfer_rules: Sequence[TransferRule] = (),
        stop_connections: Sequence[StopConnection] = (),
        intercity_classes: Sequence[int] = (0, 1),
    ) -> None:
        self.key_dates = key_dates
        self.calendar = calendar
        self.stops = tuple(stops)
        self.operators = tuple(operators)
        self.lines = tuple(lines)
        self.directions = tuple(directions)
        self.categories = tuple(categories)
        self.category_texts = MappingProxyType(dict(category_texts or {}))
        self.attributes = tuple(attributes)
        self.info_texts = tuple(info_texts)
        self.bitfields = tuple(bitfields)
        self.holidays = tuple(holidays)
        self.platforms = tuple(platforms)
        self.platform_assignments = tuple(platform_assignments)
        self.journeys = tuple(journeys)
        self.through_services = tuple(through_services)
        self.transfer_rules = tuple(transfer_rules)
        self.stop_connections = tuple(stop_connections)
        self.intercity_classes = frozenset(intercity_classes)

        self._stop_ids = MappingProxyType(dict(stop_ids or {}))
        self._operator_ids = MappingProxyType(dict(operator_ids or {}))
        self._administrations = MappingProxyType(dict(administrations or {}))
        self._line_ids = MappingProxyType(dict(line_ids or {}))
        self._direction_codes = MappingProxyType(dict(direction_codes or {}))
        self._category_codes = MappingProxyType(dict(category_codes or {}))
        self._attribute_codes = MappingProxyType(dict(attribute_codes or {}))
        self._info_text_ids = MappingProxyType(dict(info_text_ids or {}))
        self._bitfield_ids = MappingProxyType(dict(bitfield_ids or {}))
        self._platform_keys = MappingProxyType(dict(platform_keys or {}))

        by_number: dict[int, list[int]] = defaultdict(list)
        for journey in self.journeys:
            by_number[journey.number].append(journey.handle)
        self._journeys_by_number = MappingProxyType({k: tuple(v) for k, v in by_number.items()})

        platforms_at: dict[int, list[int]] = defaultdict(list)
        for platform in self.platforms:
            platforms_at[platform.stop].append(platform.handle)
        self._platforms_at = MappingProxyType({k: tuple(v) for k, v in platforms_at.items()})

        assignments: dict[tuple[int, int], list[PlatformAssignment]] = defaultdict(list)
        for assignment in self.platform_assignments:
            assignments[(assignment.journey, assignment.stop)].append(assignment)
        self._assignments = MappingProxyType({k: tuple(v) for k, v in assignments.items()})

        connections: dict[int, list[StopConnection]] = defaultdict(list)
        for connection in self.stop_connections:
            connections[connection.from_stop].append(connection)
        self._connections = MappingProxyType({k: tuple(v) for k, v in connections.items()})

        self._departures = tuple(tuple(d) for d in build_departure_index(self.journeys, len(self.stops)))
        self._departure_minutes = tuple(tuple(d.minutes for d in ds) for ds in self._departures)
        self._transfers = TransferIndex(self.transfer_rules)

    # Lookups by native id

    def stop(self, stop_id: int) -> Stop | None:
        handle = self._stop_ids.get(stop_id)
        return self.stops[handle] if handle is not None else None

    def operator(self, operator_id: int) -> Operator | None:
        handle = self._operator_ids.get(operator_id)
        return self.operators[handle] if handle is not None else None

    def operator_for_administration(self, administration: str) -> Operator | None:
        handle = self._administrations.get(administration)
        return self.operators[handle] if handle is not None else None

    def line(self, line_id: int) -> Line | None:
        handle = self._line_ids.get(line_id)
        return self.lines[handle] if handle is not None else None

    def direction(self, code: str) -> Direction | None:
        handle = self._direction_codes.get(code)
        return self.directions[handle] if handle is not None else None

    def category(self, code: str) -> Category | None:
        handle = self._category_codes.get(code)
        return self.categories[handle] if handle is not None else None

    def attribute(self, code: str) -> Attribute | None:
        handle = self._attribute_codes.get(code)
        return self.attributes[handle] if handle is not None else None

    def info_text(self, info_text_id: int) -> InfoText | None:
        handle = self._info_text_ids.get(info_text_id)
        return self.info_texts[handle] if handle is not None else None

    def bitfield(self, bitfield_id: int) -> Bitfield | None:
        handle = self._bitfield_ids.get(bitfield_id)
        return self.bitfields[handle] if handle is not None else None

    def platform(self, stop_id: int, index: int) -> Platform | None:
        handle = self._platform_keys.get((stop_id, index))
        return self.platforms[handle] if handle is not None else None

    # Journeys and calendar

    def journeys_for(self, number: int, administration: str | None = None) -> list[Journey]:
        """Every journey with this number, optionally limited to one administration."""
        journeys = [self.journeys[h] for h in self._journeys_by_number.get(number, ())]
        if administration is not None:
            journeys = [j for j in journeys if j.administration == administration]
        return journeys

    def journey(self, number: int, administration: str | None = None) -> Journey | None:
        """The single journey matching the key; raises ValueError when ambiguous."""
        matches = self.journeys_for(number, administration)
        if len(matches) > 1:
            raise ValueError(
                f"Journey {number} is ambiguous: {len(matches)} journeys match, "
                "use journeys_for() instead"
            )
        return matches[0] if matches else None

    def _as_journey(self, journey: Journey | int) -> Journey:
        if isinstance(journey, Journey):
            return journey
        found = self.journey(journey)
        if found is None:
            raise KeyError(f"Unknown journey {journey}")
        return found

    def runs_on(self, journey: Journey | int, day: date) -> bool:
        """Whether a journey (or the unique journey with this number) runs on ``day``.

        Raises DateOutOfRange for dates outside the validity window.
        """
        return self.calendar.runs_on(self._as_journey(journey), day)

    def operating_days(self, journey: Journey | int) -> list[date]:
        return self.calendar.operating_days(self._as_journey(journey))

    def operating_weekdays(self, journey: Journey | int) -> tuple[bool, ...]:
        """Monday..Sunday flags, True where the journey runs at least once."""
        return self.calendar.operating_weekdays(self._as_journey(journey))

    def through_services_of(self, journey: Journey) -> list[ThroughService]:
        return [self.through_services[i] for i in journey.through_services]

    # Stops, platforms and connections

    def platforms_at(self, stop_id: int) -> list[Platform]:
        handle = self._stop_ids.get(stop_id)
        if handle is None:
            return []
        return [self.platforms[h] for h in self._platforms_at.get(handle, ())]

    def platform_for(self, journey: Journey, stop_id: int, day: date | None = None) -> Platform | None:
        """Platform a journey uses at a stop, honouring day-specific assignments."""
        stop = self._stop_ids.get(stop_id)
        if stop is None:
            return None
        fallback = None
        for assignment in self._assignments.get((journey.handle, stop), ()):
            if assignment.bitfield is None:
                fallback = fallback if fallback is not None else assignment.platform
            elif day is not None and self.calendar.is_active(assignment.bitfield, day):
                return self.platforms[assignment.platform]
        return self.platforms[fallback] if fallback is not None else None

    def connections_from(self, stop_id: int) -> list[StopConnection]:
        handle = self._stop_ids.get(stop_id)
        if handle is None:
            return []
        return list(self._connections.get(handle, ()))

    def departures(
        self,
        stop_id: int,
        start: int = 0,
        end: int | None = None,
        day: date | None = None,
    ) -> list[Departure]:
        """Departures at a stop with ``start <= minutes <= end``, in time order.

        When ``day`` is given only journeys running on that day are kept.
        """
        handle = self._stop_ids.get(stop_id)
        if handle is None:
            raise KeyError(f"Unknown stop {stop_id}")
        minutes = self._departure_minutes[handle]
        low = bisect_left(minutes, start)
        high = len(minutes) if end is None else bisect_right(minutes, end)
        departures = self._departures[handle][low:high]
        if day is None:
            return list(departures)
        self.calendar.day_index(day)  # raises DateOutOfRange
        running: dict[int, bool] = {}
        result = []
        for departure in departures:
            if departure.journey not in running:
                running[departure.journey] = self.calendar.runs_on(self.journeys[departure.journey], day)
            if running[departure.journey]:
                result.append(departure)
        return result

    # Transfers

    def _line_label(self, journey: Journey) -> str | None:
        if journey.line is not None:
            return self.lines[journey.line].key
        return journey.line_designation

    def _line_rule_applies(self, rule: TransferRule, from_journey: Journey, to_journey: Journey) -> bool:
        sides = (
            (from_journey, rule.from_administration, rule.from_category, rule.from_line, rule.from_direction),
            (to_journey, rule.to_administration, rule.to_category, rule.to_line, rule.to_direction),
        )
        for journey, administration, category, line, direction in sides:
            if administration != journey.administration:
                return False
            if category is not None and category != journey.category:
                return False
            if line is not None and line != self._line_label(journey):
                return False
            if direction is not None and direction != journey.direction_type:
                return False
        return True

    def transfer_rule(
        self,
        stop_id: int,
        from_journey: Journey,
        to_journey: Journey,
        day: date | None = None,
    ) -> TransferRule | None:
        """The most specific rule for changing between two journeys at a stop."""
        stop = self._stop_ids.get(stop_id)
        if stop is None:
            raise KeyError(f"Unknown stop {stop_id}")
        for rule in self._transfers.candidates(stop, from_journey, to_journey):
            if rule.kind in _LINE_KINDS and not self._line_rule_applies(rule, from_journey, to_journey):
                continue
            if rule.bitfield is not None and day is not None and not self.calendar.is_active(rule.bitfield, day):
                continue
            return rule
        return None

    def _is_intercity(self, journey: Journey) -> bool:
        if journey.category is None:
            return False
        return self.categories[journey.category].product_class in self.intercity_classes

    def transfer_time(
        self,
        stop_id: int,
        from_journey: Journey,
        to_journey: Journey,
        day: date | None = None,
    ) -> int | None:
        """Minimum minutes to change trains, or None when no rule applies."""
        rule = self.transfer_rule(stop_id, from_journey, to_journey, day)
        if rule is None:
            return None
        if rule.intercity_minutes is not None and self._is_intercity(from_journey) and self._is_intercity(to_journey):
            return rule.intercity_minutes
        return rule.minutes

    def stats(self) -> dict[str, int]:
        return {
            "stops": len(self.stops),
            "operators": len(self.operators),
            "lines": len(self.lines),
            "directions": len(self.directions),
            "categories": len(self.categories),
            "attributes": len(self.attributes),
            "info_texts": len(self.info_texts),
            "bitfields": len(self.bitfields),
            "holidays": len(self.holidays),
            "platforms": len(self.platforms),
            "platform_assignments": len(self.platform_assignments),
            "journeys": len(self.journeys),
            "stop_visits": sum(len(j.visits) for j in self.journeys),
            "through_services": len(self.through_services),
            "transfer_rules": len(self.transfer_rules),
            "stop_connections": len(self.stop_connections),
        }
