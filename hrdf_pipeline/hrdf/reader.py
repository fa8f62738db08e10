"""HRDF dataset reader: runs every file decoder on a worker pool."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from hrdf_pipeline.hrdf.decoders.catalog import build_decoders
from hrdf_pipeline.hrdf.manifest import FormatVersion, VariantMode, manifest_for
from hrdf_pipeline.hrdf.records import RecordSet

logger = logging.getLogger(__name__)


class HRDFReader:
    """Read and decode an HRDF directory.

    Decoders share nothing, so each one runs on its own worker thread. An
    I/O failure in any of them cancels the others and propagates; no partial
    result is kept.
    """

    def __init__(
        self,
        hrdf_path: str,
        version: FormatVersion = FormatVersion.V_5_40_41_2_0_7,
        jobs: int = 0,
        encoding: str | None = None,
    ) -> None:
        """Initialize reader with HRDF directory path."""
        self.hrdf_path = Path(hrdf_path)
        if not self.hrdf_path.is_dir():
            raise ValueError(f"HRDF path not found or not a directory: {hrdf_path}")

        self.manifest = manifest_for(version)
        self.manifest.check_mandatory(self.hrdf_path)
        self.jobs = jobs or os.cpu_count() or 1
        self.encoding = encoding

        self.variant_mode: VariantMode | None = None
        self.record_sets: list[RecordSet] = []

    def read_all(self) -> list[RecordSet]:
        """Decode every readable file of the active version."""
        logger.info(f"Reading HRDF data from {self.hrdf_path} ({self.manifest.version.value})")
        self.variant_mode = self.manifest.variant_mode(self.hrdf_path)
        decoders = build_decoders(self.hrdf_path, self.manifest, self.variant_mode, self.encoding)

        results: dict[str, RecordSet] = {}
        with ThreadPoolExecutor(max_workers=self.jobs) as executor:
            futures = {executor.submit(decoder.decode): decoder for decoder in decoders}
            try:
                for future in as_completed(futures):
                    record_set = future.result()
                    results[record_set.file] = record_set
            except OSError:
                for future in futures:
                    future.cancel()
                logger.error(f"Reading {self.hrdf_path} failed, abandoning load")
                raise

        self.record_sets = [results[name] for name in sorted(results)]
        records = sum(len(rs.records) for rs in self.record_sets)
        errors = sum(len(rs.errors) for rs in self.record_sets)
        present = sum(1 for rs in self.record_sets if rs.present)
        logger.info(f"Loaded {records} records from {present} files with {errors} record errors")
        return self.record_sets
