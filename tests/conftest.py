"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest
from hrdf_fixtures import minimal_files, network_files, write_dataset

from hrdf_pipeline import LoadConfig, load
from hrdf_pipeline.hrdf.models import LoadResult


@pytest.fixture
def hrdf_minimal(tmp_path: Path) -> Path:
    """Path to a one-stop, one-journey HRDF dataset."""
    return write_dataset(tmp_path / "hrdf_minimal", minimal_files())


@pytest.fixture
def hrdf_unresolved_line(tmp_path: Path) -> Path:
    """Path to the minimal dataset whose journey names a missing line."""
    return write_dataset(tmp_path / "hrdf_unresolved_line", minimal_files(line_id=2))


@pytest.fixture
def hrdf_network(tmp_path: Path) -> Path:
    """Path to a one-week dataset using most HRDF files."""
    return write_dataset(tmp_path / "hrdf_network", network_files())


@pytest.fixture
def network(hrdf_network: Path) -> LoadResult:
    """The network dataset, loaded with holiday-sensitive attribute X1."""
    config = LoadConfig(input_path=str(hrdf_network), jobs=2, holiday_attributes=("X1",))
    return load(str(hrdf_network), config)


@pytest.fixture
def tmp_output(tmp_path: Path) -> Path:
    """Temporary output directory."""
    output_dir = tmp_path / "debug_json"
    output_dir.mkdir()
    return output_dir
