"""Build transfer rules from UMSTEIGB, UMSTEIGV, UMSTEIGL and UMSTEIGZ."""

import logging
from collections.abc import Sequence

from hrdf_pipeline.hrdf.models import ExchangeTime, Journey, Stop, TransferRule, TransferRuleKind
from hrdf_pipeline.hrdf.records import (
    AdministrationTransferRecord,
    JourneyTransferRecord,
    LineTransferRecord,
)
from hrdf_pipeline.transform.context import ResolutionContext
from hrdf_pipeline.transform.interning import Interner
from hrdf_pipeline.transform.journeys import calling_at

logger = logging.getLogger(__name__)


def _known_administration(
    record: AdministrationTransferRecord | LineTransferRecord,
    code: str,
    administrations: dict[str, int],
    context: ResolutionContext,
) -> bool:
    if code in administrations:
        return True
    context.unresolved(record, "administration", code)
    return False


def _stop_handle(record, stops: Interner[int], context: ResolutionContext) -> tuple[bool, int | None]:
    """``(ok, handle)``; a rule without a stop applies everywhere."""
    if record.stop_id is None:
        return True, None
    handle = context.lookup(stops, record, record.stop_id)
    return handle is not None, handle


def build_exchange_rules(stops: Sequence[Stop], default: ExchangeTime | None) -> list[TransferRule]:
    """UMSTEIGB minimum times, per stop and dataset-wide."""
    rules = []
    for stop in stops:
        if stop.exchange_time is not None:
            rules.append(
                TransferRule(
                    kind=TransferRuleKind.STOP_DEFAULT,
                    minutes=stop.exchange_time.other_minutes,
                    intercity_minutes=stop.exchange_time.intercity_minutes,
                    stop=stop.handle,
                )
            )
    if default is not None:
        rules.append(
            TransferRule(
                kind=TransferRuleKind.DATASET_DEFAULT,
                minutes=default.other_minutes,
                intercity_minutes=default.intercity_minutes,
            )
        )
    return rules


def build_administration_rules(
    records: list[AdministrationTransferRecord],
    stops: Interner[int],
    administrations: dict[str, int],
    context: ResolutionContext,
) -> list[TransferRule]:
    rules = []
    for record in sorted(records, key=lambda r: (r.file, r.line)):
        ok, stop = _stop_handle(record, stops, context)
        ok = _known_administration(record, record.administration_1, administrations, context) and ok
        ok = _known_administration(record, record.administration_2, administrations, context) and ok
        if not ok:
            continue
        rules.append(
            TransferRule(
                kind=(
                    TransferRuleKind.ADMINISTRATION_GLOBAL
                    if stop is None
                    else TransferRuleKind.ADMINISTRATION_AT_STOP
                ),
                minutes=record.minutes,
                stop=stop,
                from_administration=record.administration_1,
                to_administration=record.administration_2,
            )
        )
    return rules


def build_line_rules(
    records: list[LineTransferRecord],
    stops: Interner[int],
    categories: Interner[str],
    administrations: dict[str, int],
    context: ResolutionContext,
) -> list[TransferRule]:
    rules = []
    for record in sorted(records, key=lambda r: (r.file, r.line)):
        ok, stop = _stop_handle(record, stops, context)
        ok = _known_administration(record, record.administration_1, administrations, context) and ok
        ok = _known_administration(record, record.administration_2, administrations, context) and ok
        category_handles = []
        for code in (record.category_1, record.category_2):
            handle = None
            if code is not None:
                handle = context.lookup(categories, record, code)
                ok = ok and handle is not None
            category_handles.append(handle)
        if not ok:
            continue
        rules.append(
            TransferRule(
                kind=TransferRuleKind.LINE_GLOBAL if stop is None else TransferRuleKind.LINE_AT_STOP,
                minutes=record.minutes,
                stop=stop,
                guaranteed=record.guaranteed,
                from_administration=record.administration_1,
                to_administration=record.administration_2,
                from_category=category_handles[0],
                to_category=category_handles[1],
                from_line=record.line_1,
                to_line=record.line_2,
                from_direction=record.direction_1,
                to_direction=record.direction_2,
            )
        )
    return rules


def build_journey_rules(
    records: list[JourneyTransferRecord],
    stops: Interner[int],
    bitfields: Interner[int],
    journeys: Sequence[Journey],
    journeys_by_key: dict[tuple[int, str], list[int]],
    context: ResolutionContext,
) -> list[TransferRule]:
    """UMSTEIGZ rows; one rule per pair of matching journeys calling at the stop."""
    rules = []
    for record in sorted(records, key=lambda r: (r.file, r.line)):
        stop = context.lookup(stops, record, record.stop_id)
        pairs = []
        for number, administration in (
            (record.journey_number_1, record.administration_1),
            (record.journey_number_2, record.administration_2),
        ):
            key = (number, administration)
            handles = journeys_by_key.get(key)
            if not handles and not context.is_excluded("journey", key):
                context.unresolved(record, "journey", f"{number}/{administration}")
            pairs.append(handles or [])
        bitfield = None
        if record.bitfield_id:
            bitfield = context.lookup(bitfields, record, record.bitfield_id)
            if bitfield is None:
                continue
        if stop is None or not all(pairs):
            continue
        for from_journey in calling_at(journeys, pairs[0], stop) or pairs[0]:
            for to_journey in calling_at(journeys, pairs[1], stop) or pairs[1]:
                rules.append(
                    TransferRule(
                        kind=TransferRuleKind.JOURNEY_PAIR,
                        minutes=record.minutes,
                        stop=stop,
                        guaranteed=record.guaranteed,
                        from_administration=record.administration_1,
                        to_administration=record.administration_2,
                        from_journey=from_journey,
                        to_journey=to_journey,
                        bitfield=bitfield,
                    )
                )
    return rules


def build_transfer_rules(
    administration_records: list[AdministrationTransferRecord],
    line_records: list[LineTransferRecord],
    journey_records: list[JourneyTransferRecord],
    stops: Sequence[Stop],
    default: ExchangeTime | None,
    stop_interner: Interner[int],
    categories: Interner[str],
    bitfields: Interner[int],
    administrations: dict[str, int],
    journeys: Sequence[Journey],
    journeys_by_key: dict[tuple[int, str], list[int]],
    context: ResolutionContext,
) -> tuple[TransferRule, ...]:
    """All transfer rules, most specific kind first, file order within a kind."""
    logger.info("Building transfer rules")
    rules = (
        build_journey_rules(journey_records, stop_interner, bitfields, journeys, journeys_by_key, context)
        + build_line_rules(line_records, stop_interner, categories, administrations, context)
        + build_administration_rules(administration_records, stop_interner, administrations, context)
        + build_exchange_rules(stops, default)
    )
    # Stable sort: file order is kept within each kind.
    rules.sort(key=lambda rule: rule.kind.value)
    logger.info(f"Built {len(rules)} transfer rules")
    return tuple(rules)
