"""Per-version file manifests."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class FormatVersion(Enum):
    """Supported HRDF format versions."""

    V_5_40_41_2_0_4 = "5.40.41.2.0.4"
    V_5_40_41_2_0_5 = "5.40.41.2.0.5"
    V_5_40_41_2_0_6 = "5.40.41.2.0.6"
    V_5_40_41_2_0_7 = "5.40.41.2.0.7"

    @classmethod
    def parse(cls, value: str) -> "FormatVersion":
        """Accept either the enum name or the dotted version string."""
        for version in cls:
            if value in (version.name, version.value):
                return version
        raise ValueError(f"Unsupported HRDF version: {value}")


class Presence(Enum):
    MANDATORY = "mandatory"
    OPTIONAL = "optional"
    UNUSED = "unused"
    SUPERSEDED = "superseded"


class VariantMode(Enum):
    """Which platform/coordinate file variants contribute to a load."""

    LEGACY_ONLY = "legacy-only"
    EXTENDED_ONLY = "extended-only"
    MERGE = "merge"


LEGACY_PLATFORM_FILES = ("GLEIS", "GLEIS_LV95", "GLEIS_WGS")
EXTENDED_PLATFORM_FILES = ("GLEISE_LV95", "GLEISE_WGS")

_COMMON_FILES = {
    "ECKDATEN": Presence.MANDATORY,
    "BITFELD": Presence.MANDATORY,
    "BAHNHOF": Presence.MANDATORY,
    "FPLAN": Presence.MANDATORY,
    "FEIERTAG": Presence.OPTIONAL,
    "BFKOORD_LV95": Presence.OPTIONAL,
    "BFKOORD_WGS": Presence.OPTIONAL,
    "BFPRIOS": Presence.OPTIONAL,
    "KMINFO": Presence.OPTIONAL,
    "UMSTEIGB": Presence.OPTIONAL,
    "METABHF": Presence.OPTIONAL,
    "BETRIEB_DE": Presence.OPTIONAL,
    "BETRIEB_EN": Presence.OPTIONAL,
    "BETRIEB_FR": Presence.OPTIONAL,
    "BETRIEB_IT": Presence.OPTIONAL,
    "LINIE": Presence.OPTIONAL,
    "RICHTUNG": Presence.OPTIONAL,
    "ZUGART": Presence.OPTIONAL,
    "ATTRIBUT": Presence.OPTIONAL,
    "ATTRIBUT_DE": Presence.UNUSED,
    "ATTRIBUT_EN": Presence.UNUSED,
    "ATTRIBUT_FR": Presence.UNUSED,
    "ATTRIBUT_IT": Presence.UNUSED,
    "INFOTEXT_DE": Presence.OPTIONAL,
    "INFOTEXT_EN": Presence.OPTIONAL,
    "INFOTEXT_FR": Presence.OPTIONAL,
    "INFOTEXT_IT": Presence.OPTIONAL,
    "GLEIS": Presence.OPTIONAL,
    "GLEIS_LV95": Presence.OPTIONAL,
    "GLEIS_WGS": Presence.OPTIONAL,
    "DURCHBI": Presence.OPTIONAL,
    "UMSTEIGV": Presence.OPTIONAL,
    "UMSTEIGL": Presence.OPTIONAL,
    "UMSTEIGZ": Presence.OPTIONAL,
}


@dataclass(frozen=True)
class VersionManifest:
    """File names, presence rules and layout switches for one format version."""

    version: FormatVersion
    files: dict[str, Presence]
    stop_restrictions_file: str
    attribute_text_column: int
    supports_extended_platforms: bool
    encoding: str = "utf-8-sig"

    def presence(self, file_name: str) -> Presence:
        return self.files.get(file_name, Presence.UNUSED)

    def readable_files(self) -> list[str]:
        """File names a loader should try to read, in a stable order."""
        return sorted(
            name
            for name, presence in self.files.items()
            if presence in (Presence.MANDATORY, Presence.OPTIONAL)
        )

    def check_mandatory(self, dataset_path: Path) -> None:
        """Raise if a mandatory file is missing from the dataset directory."""
        for name, presence in sorted(self.files.items()):
            if presence is Presence.MANDATORY and not (dataset_path / name).is_file():
                raise FileNotFoundError(f"Required file not found: {dataset_path / name}")

    def variant_mode(self, dataset_path: Path) -> VariantMode:
        """Pick the platform variant overlay for the files actually present."""
        has_extended = self.supports_extended_platforms and any(
            (dataset_path / name).is_file() for name in EXTENDED_PLATFORM_FILES
        )
        has_legacy = any((dataset_path / name).is_file() for name in LEGACY_PLATFORM_FILES)
        if has_extended and has_legacy:
            mode = VariantMode.MERGE
        elif has_extended:
            mode = VariantMode.EXTENDED_ONLY
        else:
            mode = VariantMode.LEGACY_ONLY
        logger.info(f"Platform variant mode: {mode.value}")
        return mode


def _legacy_manifest(version: FormatVersion) -> VersionManifest:
    files = dict(_COMMON_FILES)
    files["BHFART_60"] = Presence.OPTIONAL
    files["BHFART"] = Presence.SUPERSEDED
    return VersionManifest(
        version=version,
        files=files,
        stop_restrictions_file="BHFART_60",
        attribute_text_column=4,
        supports_extended_platforms=False,
    )


def _extended_manifest(version: FormatVersion) -> VersionManifest:
    files = dict(_COMMON_FILES)
    files["BHFART"] = Presence.OPTIONAL
    files["BHFART_60"] = Presence.SUPERSEDED
    files["GLEISE_LV95"] = Presence.OPTIONAL
    files["GLEISE_WGS"] = Presence.OPTIONAL
    return VersionManifest(
        version=version,
        files=files,
        stop_restrictions_file="BHFART",
        attribute_text_column=5,
        supports_extended_platforms=True,
    )


MANIFESTS: dict[FormatVersion, VersionManifest] = {
    FormatVersion.V_5_40_41_2_0_4: _legacy_manifest(FormatVersion.V_5_40_41_2_0_4),
    FormatVersion.V_5_40_41_2_0_5: _legacy_manifest(FormatVersion.V_5_40_41_2_0_5),
    FormatVersion.V_5_40_41_2_0_6: _legacy_manifest(FormatVersion.V_5_40_41_2_0_6),
    FormatVersion.V_5_40_41_2_0_7: _extended_manifest(FormatVersion.V_5_40_41_2_0_7),
}


def manifest_for(version: FormatVersion) -> VersionManifest:
    return MANIFESTS[version]
