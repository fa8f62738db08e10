"""Public API for hrdf-pipeline."""

import logging
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from hrdf_pipeline.hrdf.errors import LoadFailed
from hrdf_pipeline.hrdf.models import LoadConfig, LoadResult, ValidationReport
from hrdf_pipeline.hrdf.reader import HRDFReader
from hrdf_pipeline.hrdf.validator import TimetableValidator
from hrdf_pipeline.transform.resolver import Resolver

logger = logging.getLogger(__name__)


def load(input_path: str, config: LoadConfig | None = None) -> LoadResult:
    """
    Load an HRDF dataset into a timetable model.

    Args:
        input_path: Path to the HRDF directory
        config: Optional load configuration

    Returns:
        LoadResult with the model and every collected error

    Raises:
        LoadFailed: In strict mode when any error was collected, or in any
            mode when the validity window cannot be read
        FileNotFoundError: When a mandatory file is missing
    """
    if config is None:
        config = LoadConfig(input_path=input_path)

    logger.info(f"Starting load: {input_path}")
    start_time = datetime.now(UTC)

    # Decode
    reader = HRDFReader(
        input_path,
        version=config.format_version,
        jobs=config.jobs,
        encoding=config.encoding,
    )
    record_sets = reader.read_all()

    # Resolve
    result = Resolver(config).resolve(record_sets)

    elapsed = (datetime.now(UTC) - start_time).total_seconds()
    logger.info(f"Load completed in {elapsed:.2f}s: {result.stats}")

    return result


def validate(input_path: str, config: LoadConfig | None = None) -> ValidationReport:
    """
    Load an HRDF dataset leniently and check it for defects.

    Args:
        input_path: Path to the HRDF directory
        config: Optional load configuration; strict mode is ignored

    Returns:
        ValidationReport with load errors and plausibility findings
    """
    logger.info(f"Validating dataset: {input_path}")

    if config is None:
        config = LoadConfig(input_path=input_path)
    config = replace(config, strict=False)

    if not Path(input_path).is_dir():
        return ValidationReport(valid=False, errors=[f"Dataset directory not found: {input_path}"])

    try:
        result = load(input_path, config)
    except (FileNotFoundError, LoadFailed) as e:
        return ValidationReport(valid=False, errors=[str(e)])

    report = TimetableValidator(result.model).validate()
    errors = [str(error) for error in result.errors] + report.errors
    return ValidationReport(
        valid=not errors,
        errors=errors,
        warnings=report.warnings,
        stats=report.stats,
    )
