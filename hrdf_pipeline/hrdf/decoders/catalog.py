"""Map HRDF file names to their decoders."""

import logging
from pathlib import Path
from typing import Any

from hrdf_pipeline.hrdf.decoders.base import Decoder
from hrdf_pipeline.hrdf.decoders.calendar import BitfieldDecoder, HolidayDecoder, KeyDatesDecoder
from hrdf_pipeline.hrdf.decoders.infotext import InfoTextDecoder
from hrdf_pipeline.hrdf.decoders.journeys import JourneyDecoder
from hrdf_pipeline.hrdf.decoders.operators import OperatorDecoder
from hrdf_pipeline.hrdf.decoders.platforms import PlatformDecoder
from hrdf_pipeline.hrdf.decoders.registries import (
    AttributeDecoder,
    CategoryDecoder,
    DirectionDecoder,
    LineDecoder,
)
from hrdf_pipeline.hrdf.decoders.stops import (
    CoordinateDecoder,
    ExchangeFlagDecoder,
    ExchangeTimeDecoder,
    StopConnectionDecoder,
    StopDecoder,
    StopPriorityDecoder,
    StopPropertyDecoder,
)
from hrdf_pipeline.hrdf.decoders.transfers import (
    AdministrationTransferDecoder,
    JourneyTransferDecoder,
    LineTransferDecoder,
    ThroughServiceDecoder,
)
from hrdf_pipeline.hrdf.manifest import Presence, VariantMode, VersionManifest
from hrdf_pipeline.hrdf.records import CoordinateSystem, Language

logger = logging.getLogger(__name__)

_LANGUAGE_SUFFIXES = ("DE", "EN", "FR", "IT")

DECODERS: dict[str, tuple[type[Decoder], dict[str, Any]]] = {
    "ECKDATEN": (KeyDatesDecoder, {}),
    "BITFELD": (BitfieldDecoder, {}),
    "FEIERTAG": (HolidayDecoder, {}),
    "BAHNHOF": (StopDecoder, {}),
    "BFKOORD_LV95": (CoordinateDecoder, {"system": CoordinateSystem.LV95}),
    "BFKOORD_WGS": (CoordinateDecoder, {"system": CoordinateSystem.WGS84}),
    "BFPRIOS": (StopPriorityDecoder, {}),
    "KMINFO": (ExchangeFlagDecoder, {}),
    "UMSTEIGB": (ExchangeTimeDecoder, {}),
    "BHFART": (StopPropertyDecoder, {}),
    "BHFART_60": (StopPropertyDecoder, {}),
    "METABHF": (StopConnectionDecoder, {}),
    "LINIE": (LineDecoder, {}),
    "RICHTUNG": (DirectionDecoder, {}),
    "ZUGART": (CategoryDecoder, {}),
    "ATTRIBUT": (AttributeDecoder, {}),
    "DURCHBI": (ThroughServiceDecoder, {}),
    "UMSTEIGV": (AdministrationTransferDecoder, {}),
    "UMSTEIGL": (LineTransferDecoder, {}),
    "UMSTEIGZ": (JourneyTransferDecoder, {}),
    "FPLAN": (JourneyDecoder, {}),
}
for _suffix in _LANGUAGE_SUFFIXES:
    _language = Language.from_suffix(_suffix)
    DECODERS[f"BETRIEB_{_suffix}"] = (OperatorDecoder, {"language": _language})
    DECODERS[f"INFOTEXT_{_suffix}"] = (InfoTextDecoder, {"language": _language})


def _platform_decoders(dataset_path: Path, mode: VariantMode) -> dict[str, dict[str, Any]]:
    """Pick platform files and roles for the variant mode.

    Definitions and journey assignments are read from one file per variant
    (GLEIS, falling back to GLEIS_LV95; GLEISE_LV95 for the extended set).
    Coordinate companions only contribute coordinates and SLOIDs.
    """
    plans: dict[str, dict[str, Any]] = {}
    if mode in (VariantMode.LEGACY_ONLY, VariantMode.MERGE):
        has_plain = (dataset_path / "GLEIS").is_file()
        plans["GLEIS"] = {"definitions": True, "sloids": True}
        plans["GLEIS_LV95"] = {
            "system": CoordinateSystem.LV95,
            "definitions": not has_plain,
            "sloids": not has_plain,
        }
        plans["GLEIS_WGS"] = {"system": CoordinateSystem.WGS84, "definitions": False, "sloids": False}
    if mode in (VariantMode.EXTENDED_ONLY, VariantMode.MERGE):
        plans["GLEISE_LV95"] = {"system": CoordinateSystem.LV95, "extended": True}
        plans["GLEISE_WGS"] = {
            "system": CoordinateSystem.WGS84,
            "extended": True,
            "definitions": False,
            "sloids": False,
        }
    return plans


def build_decoders(
    dataset_path: Path,
    manifest: VersionManifest,
    mode: VariantMode,
    encoding: str | None = None,
) -> list[Decoder]:
    """Instantiate one decoder per readable file of the active version."""
    decoders: list[Decoder] = []
    platform_plans = _platform_decoders(dataset_path, mode)
    for file_name in manifest.readable_files():
        if file_name in DECODERS:
            decoder_class, options = DECODERS[file_name]
        elif file_name in platform_plans:
            decoder_class, options = PlatformDecoder, platform_plans[file_name]
        else:
            continue
        decoders.append(decoder_class(dataset_path, file_name, manifest, encoding, **options))

    for file_name, presence in sorted(manifest.files.items()):
        if presence in (Presence.UNUSED, Presence.SUPERSEDED) and (dataset_path / file_name).is_file():
            logger.info(f"{file_name} is {presence.value} in {manifest.version.value}, ignoring")
    return decoders
