"""Indexing structures for fast lookups."""

import logging
from collections import defaultdict
from collections.abc import Iterator, Sequence

from hrdf_pipeline.hrdf.models import Departure, Journey, TransferRule, TransferRuleKind

logger = logging.getLogger(__name__)


def build_departure_index(journeys: Sequence[Journey], stop_count: int) -> list[list[Departure]]:
    """Departures per stop handle, sorted by time then journey.

    Cyclic journeys contribute one departure per repetition.
    """
    logger.info("Building departure index")

    index: list[list[Departure]] = [[] for _ in range(stop_count)]
    for journey in journeys:
        for visit_index, visit in enumerate(journey.visits):
            if not visit.can_board:
                continue
            for occurrence, offset in enumerate(journey.occurrences()):
                index[visit.stop].append(
                    Departure(
                        minutes=visit.departure + offset,
                        journey=journey.handle,
                        visit_index=visit_index,
                        occurrence=occurrence,
                    )
                )

    total = 0
    for departures in index:
        departures.sort(key=lambda d: (d.minutes, d.journey, d.visit_index, d.occurrence))
        total += len(departures)

    logger.info(f"Built index with {total} departures")
    return index


class TransferIndex:
    """Transfer rules bucketed by how they are looked up.

    ``candidates`` yields rules in precedence order; the caller decides
    whether a line rule or a rule with a bitfield actually applies.
    """

    def __init__(self, rules: Sequence[TransferRule]) -> None:
        self.journey_pairs: dict[tuple[int, int, int], list[TransferRule]] = defaultdict(list)
        self.line_rules: dict[int | None, list[TransferRule]] = defaultdict(list)
        self.administration_rules: dict[tuple[int | None, str, str], list[TransferRule]] = defaultdict(list)
        self.stop_defaults: dict[int, TransferRule] = {}
        self.dataset_default: TransferRule | None = None

        for rule in rules:
            if rule.kind is TransferRuleKind.JOURNEY_PAIR:
                self.journey_pairs[(rule.stop, rule.from_journey, rule.to_journey)].append(rule)
            elif rule.kind in (TransferRuleKind.LINE_AT_STOP, TransferRuleKind.LINE_GLOBAL):
                self.line_rules[rule.stop].append(rule)
            elif rule.kind in (
                TransferRuleKind.ADMINISTRATION_AT_STOP,
                TransferRuleKind.ADMINISTRATION_GLOBAL,
            ):
                key = (rule.stop, rule.from_administration, rule.to_administration)
                self.administration_rules[key].append(rule)
            elif rule.kind is TransferRuleKind.STOP_DEFAULT:
                self.stop_defaults.setdefault(rule.stop, rule)
            elif self.dataset_default is None:
                self.dataset_default = rule

    def candidates(self, stop: int, from_journey: Journey, to_journey: Journey) -> Iterator[TransferRule]:
        yield from self.journey_pairs.get((stop, from_journey.handle, to_journey.handle), ())
        yield from self.line_rules.get(stop, ())
        yield from self.line_rules.get(None, ())
        administrations = (from_journey.administration, to_journey.administration)
        yield from self.administration_rules.get((stop, *administrations), ())
        yield from self.administration_rules.get((None, *administrations), ())
        if stop in self.stop_defaults:
            yield self.stop_defaults[stop]
        if self.dataset_default is not None:
            yield self.dataset_default
