"""HRDF Pipeline - Load Swiss HRDF timetable datasets into a queryable model."""

from hrdf_pipeline.api import load, validate
from hrdf_pipeline.hrdf.models import LoadConfig
from hrdf_pipeline.version import VERSION

__version__ = VERSION
__all__ = ["VERSION", "LoadConfig", "load", "validate"]
