"""Tests for CLI."""

import json
import subprocess
from pathlib import Path


def run_cli(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["python", "-m", "hrdf_pipeline.cli", *args],
        capture_output=True,
        text=True,
    )


def test_cli_load_basic(hrdf_network: Path) -> None:
    """Test CLI load command."""
    result = run_cli("load", "--input", str(hrdf_network), "--jobs", "2")

    assert result.returncode == 0
    assert "Load successful" in result.stdout
    assert "'journeys': 5" in result.stdout


def test_cli_load_with_errors(hrdf_unresolved_line: Path) -> None:
    """Test CLI load reports collected errors but still succeeds."""
    result = run_cli("load", "--input", str(hrdf_unresolved_line))

    assert result.returncode == 0
    assert "Loaded with 1 errors" in result.stdout
    assert "Unknown line 2" in result.stdout


def test_cli_load_strict(hrdf_unresolved_line: Path) -> None:
    """Test CLI load fails in strict mode."""
    result = run_cli("load", "--input", str(hrdf_unresolved_line), "--strict")

    assert result.returncode == 1
    assert "Error" in result.stderr
    assert "Unknown line 2" in result.stderr


def test_cli_load_debug_json(hrdf_network: Path, tmp_path: Path) -> None:
    """Test CLI load writes debug JSON files."""
    output = tmp_path / "debug"

    result = run_cli("load", "--input", str(hrdf_network), "--debug-json", str(output))

    assert result.returncode == 0
    assert (output / "stops.json").exists()
    assert (output / "journeys.json").exists()
    with open(output / "summary.json") as f:
        summary = json.load(f)
    assert summary["stats"]["stops"] == 4


def test_cli_load_holiday_attribute(hrdf_network: Path, tmp_path: Path) -> None:
    """Test the holiday attribute option reaches the loader."""
    output = tmp_path / "debug"

    result = run_cli(
        "load",
        "--input",
        str(hrdf_network),
        "--holiday-attribute",
        "X1",
        "--debug-json",
        str(output),
    )

    assert result.returncode == 0
    with open(output / "journeys.json") as f:
        journeys = {j["number"]: j for j in json.load(f)}
    assert "2025-01-08" not in journeys[4]["operating_days"]
    assert "2025-01-08" in journeys[1]["operating_days"]


def test_cli_validate_basic(hrdf_network: Path) -> None:
    """Test CLI validate command."""
    result = run_cli("validate", "--input", str(hrdf_network))

    assert result.returncode == 0
    assert "Validation successful" in result.stdout


def test_cli_validate_failure(hrdf_unresolved_line: Path) -> None:
    """Test CLI validate exits non-zero on defects."""
    result = run_cli("validate", "--input", str(hrdf_unresolved_line))

    assert result.returncode == 1
    assert "Validation failed" in result.stdout
    assert "No journeys found in timetable" in result.stdout


def test_cli_format_version(hrdf_network: Path) -> None:
    """Test an older format version is accepted."""
    result = run_cli("load", "--input", str(hrdf_network), "--format-version", "5.40.41.2.0.4")

    assert result.returncode == 0


def test_cli_help() -> None:
    """Test CLI help output."""
    result = run_cli("--help")

    assert result.returncode == 0
    assert "load" in result.stdout
    assert "validate" in result.stdout


def test_cli_version() -> None:
    """Test CLI version output."""
    result = run_cli("--version")

    assert result.returncode == 0
    assert "0.1.0" in result.stdout


def test_cli_no_command() -> None:
    """Test CLI without a command prints help and fails."""
    result = run_cli()

    assert result.returncode == 1


def test_cli_invalid_input(tmp_path: Path) -> None:
    """Test CLI with invalid input path."""
    result = run_cli("load", "--input", str(tmp_path / "nonexistent"))

    assert result.returncode == 1
    assert "Error" in result.stderr
