"""JSON debug output."""

import json
import logging
from pathlib import Path

from hrdf_pipeline.hrdf.errors import LoadError
from hrdf_pipeline.model import TimetableModel

logger = logging.getLogger(__name__)

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def _coordinates(value) -> dict[str, float] | None:
    if value is None:
        return None
    return {name: getattr(value, name) for name in value.__dataclass_fields__}


def write_json_files(
    output_path: Path,
    model: TimetableModel,
    errors: list[LoadError] | None = None,
) -> dict[str, str]:
    """Write debug JSON files describing a resolved model."""
    logger.info(f"Writing debug JSON files to {output_path}")

    output_path.mkdir(parents=True, exist_ok=True)

    files_written = {}

    # Write stops.json
    stops_data = []
    for stop in model.stops:
        stops_data.append(
            {
                "handle": stop.handle,
                "stop_id": stop.stop_id,
                "name": stop.name,
                "lv95": _coordinates(stop.lv95),
                "wgs84": _coordinates(stop.wgs84),
                "platforms": [p.code for p in model.platforms_at(stop.stop_id)],
                "departures": len(model.departures(stop.stop_id)),
            }
        )

    stops_path = output_path / "stops.json"
    with open(stops_path, "w", encoding="utf-8") as f:
        json.dump(stops_data, f, indent=2, sort_keys=True)
    files_written["stops.json"] = str(stops_path)
    logger.info(f"Wrote {stops_path}")

    # Write journeys.json
    journeys_data = []
    for journey in model.journeys:
        journeys_data.append(
            {
                "handle": journey.handle,
                "number": journey.number,
                "administration": journey.administration,
                "line": model.lines[journey.line].key if journey.line is not None else journey.line_designation,
                "category": model.categories[journey.category].code if journey.category is not None else None,
                "visits": [
                    {
                        "stop_id": model.stops[visit.stop].stop_id,
                        "arrival": visit.arrival,
                        "departure": visit.departure,
                    }
                    for visit in journey.visits
                ],
                "operating_days": [day.isoformat() for day in model.operating_days(journey)],
                "weekdays": [
                    name for name, runs in zip(WEEKDAYS, model.operating_weekdays(journey), strict=True) if runs
                ],
            }
        )

    journeys_path = output_path / "journeys.json"
    with open(journeys_path, "w", encoding="utf-8") as f:
        json.dump(journeys_data, f, indent=2, sort_keys=True)
    files_written["journeys.json"] = str(journeys_path)
    logger.info(f"Wrote {journeys_path}")

    # Write summary.json
    summary = {
        "validity": {
            "start": model.key_dates.start.isoformat(),
            "end": model.key_dates.end.isoformat(),
        },
        "stats": model.stats(),
        "errors": [str(error) for error in errors or ()],
    }

    summary_path = output_path / "summary.json"
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, sort_keys=True)
    files_written["summary.json"] = str(summary_path)
    logger.info(f"Wrote {summary_path}")

    return files_written
