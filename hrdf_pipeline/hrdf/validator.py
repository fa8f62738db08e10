"""Sanity checks on a resolved timetable."""

import logging

from hrdf_pipeline.hrdf.models import ValidationReport
from hrdf_pipeline.model import TimetableModel

logger = logging.getLogger(__name__)

# Generous LV95 bounds around Switzerland and its border stations.
LV95_EASTING = (2_400_000, 2_900_000)
LV95_NORTHING = (1_000_000, 1_350_000)
MAX_TRANSFER_MINUTES = 60


class TimetableValidator:
    """Validate a resolved timetable for plausibility."""

    def __init__(self, model: TimetableModel) -> None:
        """Initialize validator with a resolved model."""
        self.model = model
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate(self) -> ValidationReport:
        """Run all validation checks."""
        logger.info("Validating timetable")

        self._validate_stops()
        self._validate_journeys()
        self._validate_transfers()

        valid = len(self.errors) == 0
        report = ValidationReport(
            valid=valid,
            errors=self.errors.copy(),
            warnings=self.warnings.copy(),
            stats=self.model.stats(),
        )

        if not valid:
            logger.error(f"Validation failed with {len(self.errors)} errors")
        elif self.warnings:
            logger.warning(f"Validation passed with {len(self.warnings)} warnings")
        else:
            logger.info("Validation passed")

        return report

    def _validate_stops(self) -> None:
        """Validate stops have plausible coordinates and names."""
        for stop in self.model.stops:
            if stop.wgs84 is not None:
                if not (-90 <= stop.wgs84.latitude <= 90):
                    self.errors.append(f"Stop {stop.stop_id} has invalid latitude: {stop.wgs84.latitude}")
                if not (-180 <= stop.wgs84.longitude <= 180):
                    self.errors.append(f"Stop {stop.stop_id} has invalid longitude: {stop.wgs84.longitude}")
            if stop.lv95 is not None:
                easting_ok = LV95_EASTING[0] <= stop.lv95.easting <= LV95_EASTING[1]
                northing_ok = LV95_NORTHING[0] <= stop.lv95.northing <= LV95_NORTHING[1]
                if not (easting_ok and northing_ok):
                    self.warnings.append(
                        f"Stop {stop.stop_id} lies outside the LV95 area: "
                        f"{stop.lv95.easting} {stop.lv95.northing}"
                    )
            if not stop.name.strip():
                self.warnings.append(f"Stop {stop.stop_id} has empty name")

    def _validate_journeys(self) -> None:
        """Validate journeys run at least once and make sense as trips."""
        if not self.model.journeys:
            self.errors.append("No journeys found in timetable")
            return

        calendar = self.model.calendar
        for journey in self.model.journeys:
            if not calendar.operating_mask(journey):
                self.warnings.append(
                    f"Journey {journey.number}/{journey.administration} never runs in the validity window"
                )
            if len(journey.visits) < 2:
                self.warnings.append(
                    f"Journey {journey.number}/{journey.administration} has only {len(journey.visits)} stop"
                )

    def _validate_transfers(self) -> None:
        """Validate transfer rules have reasonable times."""
        for rule in self.model.transfer_rules:
            longest = max(rule.minutes, rule.intercity_minutes or 0)
            if longest > MAX_TRANSFER_MINUTES:
                where = "everywhere" if rule.stop is None else f"at {self.model.stops[rule.stop].stop_id}"
                self.warnings.append(
                    f"Transfer rule {rule.kind.name} {where} has excessive time: {longest} min"
                )
