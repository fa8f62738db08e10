"""End-to-end tests."""

from datetime import date
from pathlib import Path

import pytest
from hrdf_fixtures import minimal_files, write_dataset

from hrdf_pipeline import LoadConfig, load, validate
from hrdf_pipeline.hrdf.errors import DateOutOfRange, ErrorKind, LoadFailed


def test_end_to_end_minimal(hrdf_minimal: Path) -> None:
    """Test complete pipeline on minimal fixture."""
    result = load(str(hrdf_minimal))

    assert result.ok
    assert result.stats["stops"] == 1
    assert result.stats["journeys"] == 1
    assert result.model.key_dates.start == date(2025, 1, 1)

    model = result.model
    assert model.stop(100).name == "Central"
    assert model.stop(100).is_auxiliary
    assert model.runs_on(1000, date(2025, 1, 1))
    with pytest.raises(DateOutOfRange):
        model.runs_on(1000, date(2024, 12, 31))
    with pytest.raises(DateOutOfRange):
        model.runs_on(1000, date(2025, 1, 2))

    report = validate(str(hrdf_minimal))
    assert report.valid


def test_end_to_end_unresolved_line(hrdf_unresolved_line: Path) -> None:
    """Test a journey naming a missing line is reported and left out."""
    result = load(str(hrdf_unresolved_line))

    (error,) = result.errors
    assert error.kind is ErrorKind.UNRESOLVED_REFERENCE
    assert error.file == "FPLAN"
    assert result.model.journeys == ()
    assert result.model.stop(100) is not None


def test_end_to_end_unresolved_line_strict(hrdf_unresolved_line: Path) -> None:
    """Test strict mode turns the same defect into LoadFailed."""
    path = str(hrdf_unresolved_line)

    with pytest.raises(LoadFailed) as excinfo:
        load(path, LoadConfig(input_path=path, strict=True))

    assert [e.kind for e in excinfo.value.errors] == [ErrorKind.UNRESOLVED_REFERENCE]


def test_end_to_end_network(hrdf_network: Path) -> None:
    """Test complete pipeline on the network fixture."""
    path = str(hrdf_network)
    result = load(path, LoadConfig(input_path=path, holiday_attributes=("X1",)))

    assert result.ok
    model = result.model
    bern = model.departures(8507000, day=date(2025, 1, 7))
    assert [(model.journeys[d.journey].number, d.minutes) for d in bern] == [
        (2, 545),
        (300, 560),
        (300, 590),
        (300, 620),
    ]
    j1 = model.journey(1)
    j300 = model.journey(300)
    assert model.transfer_time(8507000, j1, j300) == 2
    assert model.platform_for(j1, 8503000).code == "7"
    assert not model.runs_on(4, date(2025, 1, 8))

    report = validate(path)
    assert report.valid
    assert report.warnings == []


def test_end_to_end_undecodable_stop_line(tmp_path: Path) -> None:
    """Test invalid bytes in one stop line cost that line only."""
    path = write_dataset(tmp_path / "hrdf", minimal_files())
    with open(path / "BAHNHOF", "ab") as f:
        f.write(b"0000200     Bad\xff\xfeName$<1>\n")

    result = load(str(path))

    (error,) = result.errors
    assert error.kind is ErrorKind.MALFORMED_RECORD
    assert error.file == "BAHNHOF"
    assert error.line == 2
    assert result.model.stop(100).name == "Central"
    assert result.model.stop(200) is None
    assert result.stats["journeys"] == 1
