"""Tests for timetable model queries."""

from datetime import date
from pathlib import Path

import pytest
from hrdf_fixtures import (
    ADMIN_BLS,
    ADMIN_SBB,
    BERN,
    BURGDORF,
    ZURICH,
    header,
    network_files,
    visit,
    write_dataset,
)

from hrdf_pipeline import LoadConfig, load
from hrdf_pipeline.hrdf.errors import DateOutOfRange
from hrdf_pipeline.hrdf.models import LoadResult, TransferRuleKind

MONDAY = date(2025, 1, 6)
TUESDAY = date(2025, 1, 7)
WEDNESDAY = date(2025, 1, 8)
SATURDAY = date(2025, 1, 11)


def test_departures_all(network: LoadResult) -> None:
    """Test every boarding opportunity at a stop, in time order."""
    departures = network.model.departures(BERN)

    assert [d.minutes for d in departures] == [545, 560, 590, 620]
    assert [d.journey for d in departures] == [1, 4, 4, 4]
    assert [d.occurrence for d in departures] == [0, 0, 1, 2]


def test_departures_window(network: LoadResult) -> None:
    """Test the time window bounds are inclusive."""
    model = network.model

    assert [d.minutes for d in model.departures(BERN, 560, 590)] == [560, 590]
    assert [d.minutes for d in model.departures(ZURICH, 0, 600)] == [482]
    assert model.departures(BERN, 700) == []


def test_departures_on_day(network: LoadResult) -> None:
    """Test day filtering keeps only journeys running that day."""
    model = network.model

    assert [d.minutes for d in model.departures(BERN, day=MONDAY)] == [545]
    assert [d.minutes for d in model.departures(BERN, day=TUESDAY)] == [545, 560, 590, 620]
    assert [d.minutes for d in model.departures(BERN, day=SATURDAY)] == [560, 590, 620]


def test_departures_unknown_stop(network: LoadResult) -> None:
    """Test an unknown stop raises KeyError."""
    with pytest.raises(KeyError):
        network.model.departures(8599999)


def test_departures_day_out_of_range(network: LoadResult) -> None:
    """Test a day outside the window raises DateOutOfRange."""
    with pytest.raises(DateOutOfRange):
        network.model.departures(BERN, day=date(2025, 2, 1))


def test_restricted_stop_not_a_departure(network: LoadResult) -> None:
    """Test a visit without boarding does not appear as a departure."""
    model = network.model
    j4 = model.journey(4)
    zurich_visit = j4.visits[1]

    assert not zurich_visit.can_alight
    assert not zurich_visit.can_board
    assert j4.handle not in {d.journey for d in model.departures(ZURICH)}


@pytest.mark.parametrize(
    ("stop_id", "from_number", "to_number", "kind", "minutes"),
    [
        (BERN, 1, 300, TransferRuleKind.JOURNEY_PAIR, 2),
        (BERN, 5, 300, TransferRuleKind.LINE_AT_STOP, 3),
        (BERN, 300, 1, TransferRuleKind.ADMINISTRATION_AT_STOP, 6),
        (BURGDORF, 300, 2, TransferRuleKind.ADMINISTRATION_GLOBAL, 4),
        (ZURICH, 4, 1, TransferRuleKind.STOP_DEFAULT, 5),
        (ZURICH, 1, 5, TransferRuleKind.STOP_DEFAULT, 7),
        (BERN, 1, 2, TransferRuleKind.DATASET_DEFAULT, 5),
        (BERN, 2, 4, TransferRuleKind.DATASET_DEFAULT, 3),
    ],
)
def test_transfer_precedence(
    network: LoadResult,
    stop_id: int,
    from_number: int,
    to_number: int,
    kind: TransferRuleKind,
    minutes: int,
) -> None:
    """Test the most specific rule wins and intercity minutes apply between intercity trains."""
    model = network.model
    from_journey = model.journey(from_number)
    to_journey = model.journey(to_number)

    rule = model.transfer_rule(stop_id, from_journey, to_journey)

    assert rule.kind is kind
    assert model.transfer_time(stop_id, from_journey, to_journey) == minutes


def test_guaranteed_transfer(network: LoadResult) -> None:
    """Test the guaranteed flag is carried on journey pair rules."""
    model = network.model

    rule = model.transfer_rule(BERN, model.journey(1), model.journey(300))

    assert rule.guaranteed


def test_transfer_unknown_stop(network: LoadResult) -> None:
    """Test transfer lookups at an unknown stop raise KeyError."""
    model = network.model
    with pytest.raises(KeyError):
        model.transfer_time(8599999, model.journey(1), model.journey(2))


def test_platform_for(network: LoadResult) -> None:
    """Test fixed and day-specific platform assignments."""
    model = network.model
    j1 = model.journey(1)
    j2 = model.journey(2)

    assert model.platform_for(j1, ZURICH).code == "7"
    assert model.platform_for(j1, BERN) is None
    assert model.platform_for(j2, BERN, MONDAY).code == "5"
    assert model.platform_for(j2, BERN, SATURDAY) is None
    assert model.platform_for(j2, BERN) is None
    assert model.platform_for(j2, 8599999) is None


def test_visit_platform(network: LoadResult) -> None:
    """Test unconditional assignments are attached to the visit."""
    model = network.model
    j1 = model.journey(1)

    assert j1.visits[1].platform == model.platform(ZURICH, 1).handle
    assert j1.visits[0].platform is None
    assert model.journey(2).visits[0].platform is None


def test_platforms_at(network: LoadResult) -> None:
    """Test the platforms of one stop."""
    model = network.model
    (platform,) = model.platforms_at(BERN)

    assert platform.code == "5"
    assert platform.sectors == "AB"
    assert model.platforms_at(8599999) == []
    assert model.platforms_at(BURGDORF) == []


def test_through_services_of(network: LoadResult) -> None:
    """Test a through service is reachable from both journeys."""
    model = network.model
    j1 = model.journey(1)
    j2 = model.journey(2)

    (service,) = model.through_services_of(j1)
    assert service.from_journey == j1.handle
    assert service.to_journey == j2.handle
    assert service.stop == model.stop(BERN).handle
    assert model.through_services_of(j2) == [service]
    assert model.through_services_of(model.journey(300)) == []


def test_journeys_for(network: LoadResult) -> None:
    """Test lookups by number and administration."""
    model = network.model

    assert [j.number for j in model.journeys_for(300)] == [300]
    assert model.journeys_for(300, ADMIN_SBB) == []
    assert model.journey(300, ADMIN_BLS).administration == ADMIN_BLS
    assert model.journey(999) is None


def test_ambiguous_journey_number(tmp_path: Path) -> None:
    """Test a number shared by two administrations needs the administration."""
    files = network_files()
    files["FPLAN"] += [
        header(2, ADMIN_BLS),
        visit(BERN, "Bern", departure=14 * 60),
        visit(BURGDORF, "Burgdorf", 14 * 60 + 15),
    ]
    path = write_dataset(tmp_path / "hrdf", files)

    model = load(str(path), LoadConfig(input_path=str(path))).model

    assert len(model.journeys_for(2)) == 2
    with pytest.raises(ValueError, match="ambiguous"):
        model.journey(2)
    with pytest.raises(ValueError):
        model.runs_on(2, MONDAY)
    assert model.journey(2, ADMIN_SBB).administration == ADMIN_SBB


def test_runs_on(network: LoadResult) -> None:
    """Test running days by journey and by number."""
    model = network.model

    assert model.runs_on(2, MONDAY)
    assert not model.runs_on(2, SATURDAY)
    assert model.runs_on(model.journey(5), SATURDAY)
    with pytest.raises(KeyError):
        model.runs_on(999, MONDAY)
    with pytest.raises(DateOutOfRange):
        model.runs_on(1, date(2025, 1, 13))


def test_holiday_sensitive_journey(network: LoadResult) -> None:
    """Test a journey with a holiday attribute skips the holiday."""
    model = network.model

    assert model.journey(4).holiday_sensitive
    assert not model.runs_on(4, WEDNESDAY)
    assert model.runs_on(4, TUESDAY)
    assert model.runs_on(1, WEDNESDAY)


def test_operating_days(network: LoadResult) -> None:
    """Test base days minus exception days."""
    assert network.model.operating_days(300) == [TUESDAY, SATURDAY]
    assert len(network.model.operating_days(1)) == 7


def test_operating_weekdays(network: LoadResult) -> None:
    """Test weekday flags follow the operating days and skip holidays."""
    model = network.model

    assert model.operating_weekdays(300) == (False, True, False, False, False, True, False)
    assert model.operating_weekdays(1) == (True,) * 7
    assert not model.operating_weekdays(4)[2]
    assert model.operating_weekdays(4)[1]


def test_connections_from(network: LoadResult) -> None:
    """Test walking links out of a stop."""
    model = network.model
    (connection,) = model.connections_from(BERN)

    assert connection.to_stop == model.stop(BURGDORF).handle
    assert connection.minutes == 10
    assert connection.attributes == (model.attribute("VR").handle,)
    assert model.connections_from(BURGDORF) == []
    assert model.connections_from(8599999) == []


def test_model_lookups_return_none(network: LoadResult) -> None:
    """Test unknown native ids give None."""
    model = network.model

    assert model.stop(8599999) is None
    assert model.operator(99) is None
    assert model.line(99) is None
    assert model.category("XX") is None
    assert model.bitfield(99) is None
    assert model.platform(BERN, 9) is None


def test_model_stats(network: LoadResult) -> None:
    """Test counts reported by the model."""
    stats = network.model.stats()

    assert stats["stops"] == 4
    assert stats["journeys"] == 5
    assert stats["stop_visits"] == 11
    assert stats["transfer_rules"] == 6
    assert stats["stop_connections"] == 1
