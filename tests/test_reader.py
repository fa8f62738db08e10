"""Tests for the HRDF reader."""

from pathlib import Path

import pytest
from hrdf_fixtures import minimal_files, platform, write_dataset

from hrdf_pipeline import LoadConfig, load
from hrdf_pipeline.hrdf.decoders.stops import StopDecoder
from hrdf_pipeline.hrdf.manifest import FormatVersion, VariantMode
from hrdf_pipeline.hrdf.reader import HRDFReader
from hrdf_pipeline.hrdf.records import JourneyRecord, StopRecord


def test_reader_basic(hrdf_minimal: Path) -> None:
    """Test basic HRDF reading."""
    reader = HRDFReader(str(hrdf_minimal), jobs=2)
    record_sets = {rs.file: rs for rs in reader.read_all()}

    (stop,) = record_sets["BAHNHOF"].records
    assert isinstance(stop, StopRecord)
    assert stop.stop_id == 100
    (journey,) = record_sets["FPLAN"].records
    assert isinstance(journey, JourneyRecord)
    assert journey.key == (1000, "000011")
    assert all(not rs.errors for rs in record_sets.values())


def test_reader_record_sets_sorted(hrdf_minimal: Path) -> None:
    """Test record sets come back in file name order whatever the worker count."""
    names = [rs.file for rs in HRDFReader(str(hrdf_minimal), jobs=4).read_all()]

    assert names == sorted(names)
    assert names == [rs.file for rs in HRDFReader(str(hrdf_minimal), jobs=1).read_all()]


def test_reader_absent_optional_files(hrdf_minimal: Path) -> None:
    """Test optional files that are missing yield empty, absent record sets."""
    reader = HRDFReader(str(hrdf_minimal))
    record_sets = {rs.file: rs for rs in reader.read_all()}

    assert record_sets["LINIE"].present
    assert not record_sets["FEIERTAG"].present
    assert record_sets["FEIERTAG"].records == []


def test_reader_not_a_directory(tmp_path: Path) -> None:
    """Test reader with a path that is not a directory."""
    with pytest.raises(ValueError):
        HRDFReader(str(tmp_path / "missing"))

    file_path = tmp_path / "file.txt"
    file_path.write_text("x")
    with pytest.raises(ValueError):
        HRDFReader(str(file_path))


def test_reader_missing_mandatory_file(tmp_path: Path) -> None:
    """Test reader refuses a dataset without a mandatory file."""
    files = minimal_files()
    del files["BITFELD"]
    path = write_dataset(tmp_path / "hrdf", files)

    with pytest.raises(FileNotFoundError, match="BITFELD"):
        HRDFReader(str(path))


def test_reader_variant_mode(tmp_path: Path) -> None:
    """Test the platform variant mode follows the files present."""
    files = minimal_files()
    legacy = write_dataset(tmp_path / "legacy", {**files, "GLEIS": [platform(100, 1, "1")]})
    extended = write_dataset(tmp_path / "extended", {**files, "GLEISE_LV95": [platform(100, 1, "1")]})
    merged = write_dataset(
        tmp_path / "merged",
        {**files, "GLEIS": [platform(100, 1, "1")], "GLEISE_LV95": [platform(100, 1, "1")]},
    )

    def mode(path: Path, version: FormatVersion = FormatVersion.V_5_40_41_2_0_7) -> VariantMode:
        reader = HRDFReader(str(path), version=version)
        reader.read_all()
        return reader.variant_mode

    assert mode(legacy) is VariantMode.LEGACY_ONLY
    assert mode(extended) is VariantMode.EXTENDED_ONLY
    assert mode(merged) is VariantMode.MERGE
    assert mode(merged, FormatVersion.V_5_40_41_2_0_6) is VariantMode.LEGACY_ONLY


def test_reader_version_selects_restrictions_file(hrdf_minimal: Path) -> None:
    """Test the stop restrictions file name depends on the version."""
    legacy = {rs.file for rs in HRDFReader(str(hrdf_minimal), version=FormatVersion.V_5_40_41_2_0_4).read_all()}
    current = {rs.file for rs in HRDFReader(str(hrdf_minimal)).read_all()}

    assert "BHFART_60" in legacy
    assert "BHFART" not in legacy
    assert "BHFART" in current
    assert "GLEISE_LV95" not in legacy


def test_reader_io_failure_abandons_load(
    hrdf_minimal: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    """Test an I/O error in one decoder propagates out of load()."""

    def failing_lines(self):
        raise OSError("disk failure")

    monkeypatch.setattr(StopDecoder, "lines", failing_lines)

    with pytest.raises(OSError, match="disk failure"):
        load(str(hrdf_minimal), LoadConfig(input_path=str(hrdf_minimal), jobs=2))

    assert "abandoning load" in caplog.text


def test_reader_io_failure_single_worker(
    hrdf_minimal: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test the failure also surfaces from read_all with a single worker."""

    def failing_lines(self):
        raise OSError("disk failure")

    monkeypatch.setattr(StopDecoder, "lines", failing_lines)

    with pytest.raises(OSError):
        HRDFReader(str(hrdf_minimal), jobs=1).read_all()
