"""Tests for timetable validation."""

from pathlib import Path

from hrdf_fixtures import ZURICH, network_files, write_dataset

from hrdf_pipeline import LoadConfig, validate
from hrdf_pipeline.hrdf.models import LoadResult
from hrdf_pipeline.hrdf.validator import TimetableValidator


def test_validator_valid_data(network: LoadResult) -> None:
    """Test validator passes on valid data."""
    validator = TimetableValidator(network.model)
    report = validator.validate()

    assert report.valid
    assert len(report.errors) == 0
    assert report.warnings == []
    assert report.stats["stops"] == 4
    assert report.stats["journeys"] == 5


def test_validate_single_stop_journey(hrdf_minimal: Path) -> None:
    """Test a journey with one stop only warns."""
    report = validate(str(hrdf_minimal))

    assert report.valid
    assert report.warnings == ["Journey 1000/000011 has only 1 stop"]


def test_validate_no_journeys(hrdf_unresolved_line: Path) -> None:
    """Test load errors and an empty timetable both fail validation."""
    report = validate(str(hrdf_unresolved_line))

    assert not report.valid
    assert any("Unknown line" in err for err in report.errors)
    assert "No journeys found in timetable" in report.errors


def test_validate_missing_directory(tmp_path: Path) -> None:
    """Test validation of a path that does not exist."""
    report = validate(str(tmp_path / "missing"))

    assert not report.valid
    assert "not found" in report.errors[0]


def test_validate_missing_mandatory_file(tmp_path: Path) -> None:
    """Test a missing mandatory file is reported, not raised."""
    files = network_files()
    del files["FPLAN"]
    path = write_dataset(tmp_path / "hrdf", files)

    report = validate(str(path))

    assert not report.valid
    assert "FPLAN" in report.errors[0]


def test_validate_ignores_strict_mode(hrdf_unresolved_line: Path) -> None:
    """Test strict mode does not turn validation into an exception."""
    path = str(hrdf_unresolved_line)
    report = validate(path, LoadConfig(input_path=path, strict=True))

    assert not report.valid


def test_validator_plausibility_warnings(tmp_path: Path) -> None:
    """Test coordinates outside the LV95 area and long transfers warn."""
    files = network_files()
    files["BFKOORD_LV95"][0] = f"{ZURICH:07d} 1000.000 2000.000 408"
    files["UMSTEIGB"][1] = "9999999 90 03"
    path = write_dataset(tmp_path / "hrdf", files)

    report = validate(str(path))

    assert report.valid
    assert any("outside the LV95 area" in warning for warning in report.warnings)
    assert any("excessive time: 90 min" in warning for warning in report.warnings)
