"""Build the small reference registries: calendar, operators, lines, codes."""

import logging
from collections import defaultdict
from types import MappingProxyType
from typing import Any

from hrdf_pipeline.hrdf.errors import ErrorKind
from hrdf_pipeline.hrdf.models import (
    Attribute,
    Bitfield,
    Category,
    Direction,
    Holiday,
    InfoText,
    KeyDates,
    Line,
    Operator,
    OperatorName,
)
from hrdf_pipeline.hrdf.records import (
    AttributeRecord,
    AttributeTextRecord,
    BitfieldRecord,
    CategoryRecord,
    CategoryTextRecord,
    DirectionRecord,
    HolidayRecord,
    InfoTextRecord,
    KeyDatesRecord,
    Language,
    LinePropertyRecord,
    LineRecord,
    OperatorAdministrationsRecord,
    OperatorNamesRecord,
    OperatorSboidRecord,
)
from hrdf_pipeline.transform.context import ResolutionContext
from hrdf_pipeline.transform.interning import Interner

logger = logging.getLogger(__name__)

PRIMARY_LANGUAGE = Language.GERMAN

# Bitfield 000000 stands for every day of the window and is never registered.
EVERY_DAY = 0


def build_key_dates(records: list[KeyDatesRecord]) -> KeyDates | None:
    if not records:
        return None
    record = records[0]
    return KeyDates(
        start=record.start,
        end=record.end,
        name=record.name,
        created_at=record.created_at,
        version=record.version,
        provider=record.provider,
    )


def build_bitfields(
    records: list[BitfieldRecord],
    key_dates: KeyDates,
    context: ResolutionContext,
) -> tuple[Interner[int], tuple[Bitfield, ...]]:
    """Intern bitfields whose pattern covers the whole validity window."""
    logger.info("Building running-day bitfields")
    usable = []
    for record in records:
        if record.bitfield_id == EVERY_DAY:
            continue
        if record.length < key_dates.day_count:
            context.report(
                ErrorKind.MALFORMED_RECORD,
                record,
                f"Bitfield {record.bitfield_id} covers {record.length} days, "
                f"validity window has {key_dates.day_count}",
            )
            context.exclude("bitfield", record.bitfield_id)
            continue
        usable.append(record)

    interner: Interner[int] = Interner("bitfield")
    kept = interner.intern(usable, lambda r: r.bitfield_id, context)
    bitfields = tuple(
        Bitfield(handle=handle, bitfield_id=r.bitfield_id, mask=r.mask, length=r.length)
        for handle, r in enumerate(kept)
    )
    logger.info(f"Built {len(bitfields)} bitfields")
    return interner, bitfields


def build_holidays(records: list[HolidayRecord], context: ResolutionContext) -> tuple[Holiday, ...]:
    interner: Interner[Any] = Interner("holiday")
    kept = interner.intern(records, lambda r: r.day, context)
    return tuple(Holiday(day=r.day, names=MappingProxyType(dict(r.names))) for r in kept)


def build_operators(
    names: list[OperatorNamesRecord],
    administrations: list[OperatorAdministrationsRecord],
    sboids: list[OperatorSboidRecord],
    context: ResolutionContext,
) -> tuple[Interner[int], tuple[Operator, ...], dict[str, int]]:
    """Merge every BETRIEB language file into one operator per id.

    The German file is the registry; the other languages may only refer to
    ids it defines.
    """
    logger.info("Building operators")
    primary = [r for r in names if r.language is PRIMARY_LANGUAGE]
    interner: Interner[int] = Interner("operator")
    interner.intern(primary, lambda r: r.operator_id, context)

    localized: dict[int, dict[Language, OperatorName]] = defaultdict(dict)
    for record in sorted(names, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.operator_id)
        if handle is None:
            context.unresolved(record, "operator", record.operator_id)
            continue
        if record.language in localized[handle]:
            if record.language is not PRIMARY_LANGUAGE:
                first = localized[handle][record.language]
                if first != _operator_name(record):
                    context.report(
                        ErrorKind.DUPLICATE_KEY,
                        record,
                        f"Operator {record.operator_id} named twice in {record.file}",
                    )
            continue
        localized[handle][record.language] = _operator_name(record)

    codes: dict[int, list[str]] = defaultdict(list)
    administration_map: dict[str, int] = {}
    for record in sorted(administrations, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.operator_id)
        if handle is None:
            context.unresolved(record, "operator", record.operator_id)
            continue
        for code in record.administrations:
            owner = administration_map.get(code)
            if owner is not None and owner != handle:
                context.report(
                    ErrorKind.DUPLICATE_KEY,
                    record,
                    f"Administration {code} already belongs to operator {interner.native(owner)}",
                )
                continue
            if owner is None:
                administration_map[code] = handle
                codes[handle].append(code)

    sboid_map: dict[int, str] = {}
    for record in sorted(sboids, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.operator_id)
        if handle is None:
            context.unresolved(record, "operator", record.operator_id)
            continue
        sboid_map.setdefault(handle, record.sboid)

    operators = tuple(
        Operator(
            handle=handle,
            operator_id=interner.native(handle),
            names=MappingProxyType(localized.get(handle, {})),
            administrations=tuple(codes.get(handle, ())),
            sboid=sboid_map.get(handle),
        )
        for handle in range(len(interner))
    )
    logger.info(f"Built {len(operators)} operators covering {len(administration_map)} administrations")
    return interner, operators, administration_map


def _operator_name(record: OperatorNamesRecord) -> OperatorName:
    return OperatorName(
        short_name=record.short_name,
        abbreviation=record.abbreviation,
        long_name=record.long_name,
    )


def build_info_texts(
    records: list[InfoTextRecord],
    context: ResolutionContext,
) -> tuple[Interner[int], tuple[InfoText, ...]]:
    logger.info("Building info texts")
    primary = [r for r in records if r.language is PRIMARY_LANGUAGE]
    interner: Interner[int] = Interner("info text")
    interner.intern(primary, lambda r: r.info_text_id, context)

    texts: dict[int, dict[Language, str]] = defaultdict(dict)
    for record in sorted(records, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.info_text_id)
        if handle is None:
            context.unresolved(record, "info text", record.info_text_id)
            continue
        if record.language in texts[handle]:
            if record.language is not PRIMARY_LANGUAGE:
                context.report(
                    ErrorKind.DUPLICATE_KEY,
                    record,
                    f"Info text {record.info_text_id} defined twice in {record.file}",
                )
            continue
        texts[handle][record.language] = record.text

    info_texts = tuple(
        InfoText(
            handle=handle,
            info_text_id=interner.native(handle),
            texts=MappingProxyType(texts.get(handle, {})),
        )
        for handle in range(len(interner))
    )
    logger.info(f"Built {len(info_texts)} info texts")
    return interner, info_texts


_LINE_TEXT_FIELDS = {
    "N": "short_name",
    "L": "long_name",
    "W": "internal_designation",
    "D": "description",
    "R": "region",
    "F": "text_color",
    "B": "background_color",
}


def build_lines(
    keys: list[LineRecord],
    properties: list[LinePropertyRecord],
    info_texts: Interner[int],
    context: ResolutionContext,
) -> tuple[Interner[int], tuple[Line, ...]]:
    """Assemble LINIE rows into lines. Property rows need a ``K`` row."""
    logger.info("Building lines")
    interner: Interner[int] = Interner("line")
    kept = interner.intern(keys, lambda r: r.line_id, context)

    values: dict[int, dict[str, Any]] = defaultdict(dict)
    line_info: dict[int, list[tuple[str, int]]] = defaultdict(list)
    for record in sorted(properties, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.line_id)
        if handle is None:
            context.unresolved(record, "line", record.line_id)
            continue
        if record.code == "H":
            main = interner.get(record.value)
            if main is None:
                context.unresolved(record, "main line", record.value)
                continue
            values[handle]["main_line"] = main
        elif record.code == "I":
            code, info_text_id = record.value
            info_handle = info_texts.get(info_text_id)
            if info_handle is None:
                context.unresolved(record, "info text", info_text_id)
                continue
            line_info[handle].append((code, info_handle))
        else:
            values[handle].setdefault(_LINE_TEXT_FIELDS[record.code], record.value)

    lines = tuple(
        Line(
            handle=handle,
            line_id=record.line_id,
            key=record.key,
            info_texts=tuple(line_info.get(handle, ())),
            **values.get(handle, {}),
        )
        for handle, record in enumerate(kept)
    )
    logger.info(f"Built {len(lines)} lines")
    return interner, lines


def build_directions(
    records: list[DirectionRecord],
    context: ResolutionContext,
) -> tuple[Interner[str], tuple[Direction, ...]]:
    interner: Interner[str] = Interner("direction")
    kept = interner.intern(records, lambda r: r.code, context)
    directions = tuple(
        Direction(handle=handle, code=r.code, text=r.text) for handle, r in enumerate(kept)
    )
    logger.info(f"Built {len(directions)} directions")
    return interner, directions


def build_categories(
    records: list[CategoryRecord],
    texts: list[CategoryTextRecord],
    context: ResolutionContext,
) -> tuple[Interner[str], tuple[Category, ...], dict[str, dict[int, dict[Language, str]]]]:
    """Intern offer categories and attach their localized long names.

    Also returns the product class and option texts, keyed by kind then
    number then language.
    """
    interner: Interner[str] = Interner("category")
    kept = interner.intern(records, lambda r: r.code, context)

    catalog: dict[str, dict[int, dict[Language, str]]] = {
        "class": defaultdict(dict),
        "option": defaultdict(dict),
        "category": defaultdict(dict),
    }
    for record in texts:
        catalog[record.kind][record.number].setdefault(record.language, record.text)

    categories = tuple(
        Category(
            handle=handle,
            code=r.code,
            product_class=r.product_class,
            tariff_group=r.tariff_group,
            output_control=r.output_control,
            designation=r.designation,
            surcharge=r.surcharge,
            flag=r.flag,
            names=MappingProxyType(
                dict(catalog["category"].get(r.category_number, {}))
                if r.category_number is not None
                else {}
            ),
        )
        for handle, r in enumerate(kept)
    )
    logger.info(f"Built {len(categories)} categories")
    return interner, categories, {kind: dict(entries) for kind, entries in catalog.items()}


def build_attributes(
    records: list[AttributeRecord],
    texts: list[AttributeTextRecord],
    context: ResolutionContext,
) -> tuple[Interner[str], tuple[Attribute, ...]]:
    interner: Interner[str] = Interner("attribute")
    kept = interner.intern(records, lambda r: r.code, context)

    descriptions: dict[int, dict[Language, str]] = defaultdict(dict)
    for record in sorted(texts, key=lambda r: (r.file, r.line)):
        handle = interner.get(record.code)
        if handle is None:
            context.unresolved(record, "attribute", record.code)
            continue
        descriptions[handle].setdefault(record.language, record.text)

    attributes = tuple(
        Attribute(
            handle=handle,
            code=r.code,
            stop_scope=r.stop_scope,
            main_priority=r.main_priority,
            secondary_priority=r.secondary_priority,
            descriptions=MappingProxyType(descriptions.get(handle, {})),
        )
        for handle, r in enumerate(kept)
    )
    logger.info(f"Built {len(attributes)} attributes")
    return interner, attributes
