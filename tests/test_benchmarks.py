"""Benchmark tests."""

from datetime import date
from pathlib import Path

import pytest

from hrdf_pipeline import LoadConfig, load
from hrdf_pipeline.hrdf.models import LoadResult


@pytest.mark.benchmark
def test_bench_load_minimal(hrdf_minimal: Path, benchmark: object) -> None:
    """Benchmark loading of minimal fixture."""

    def do_load() -> None:
        load(str(hrdf_minimal), LoadConfig(input_path=str(hrdf_minimal), jobs=1))

    benchmark(do_load)


@pytest.mark.benchmark
def test_bench_load_network(hrdf_network: Path, benchmark: object) -> None:
    """Benchmark loading of network fixture."""

    def do_load() -> None:
        load(str(hrdf_network), LoadConfig(input_path=str(hrdf_network), jobs=2))

    benchmark(do_load)


@pytest.mark.benchmark
def test_bench_departures(network: LoadResult, benchmark: object) -> None:
    """Benchmark a day-filtered departure query."""

    def do_query() -> None:
        network.model.departures(8507000, 9 * 60, 11 * 60, day=date(2025, 1, 7))

    benchmark(do_query)
