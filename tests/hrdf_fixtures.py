"""Builders for small HRDF datasets used by the tests.

Every helper returns one line laid out in the fixed columns of its file.
"""

from collections.abc import Iterable
from pathlib import Path

ADMIN_SBB = "000011"
ADMIN_BLS = "000033"

BASEL = 8500010
ZURICH = 8503000
BERN = 8507000
BURGDORF = 8508005

EMPTY_STOP = " " * 7


def bitfield_hex(days: Iterable[int], day_count: int) -> str:
    """Encode day offsets as a BITFELD pattern (two padding bits first)."""
    days = set(days)
    bits = "00" + "".join("1" if i in days else "0" for i in range(day_count))
    bits += "0" * (-len(bits) % 4)
    return "".join(f"{int(bits[i : i + 4], 2):X}" for i in range(0, len(bits), 4))


def bitfield(bitfield_id: int, days: Iterable[int], day_count: int) -> str:
    return f"{bitfield_id:06d} {bitfield_hex(days, day_count)}"


def hhhmm(minutes: int | None, restricted: bool = False) -> str:
    if minutes is None:
        return " " * 6
    hours, rest = divmod(minutes, 60)
    return f"{'-' if restricted else ' '}{hours * 100 + rest:05d}"


def header(number: int, administration: str, cycles: int = 0, cycle_minutes: int = 0) -> str:
    line = f"*Z {number:06d} {administration}"
    if cycles:
        line += f" {'':3} {cycles:03d} {cycle_minutes:03d}"
    return line


def visit(
    stop_id: int,
    name: str,
    arrival: int | None = None,
    departure: int | None = None,
    no_alighting: bool = False,
    no_boarding: bool = False,
) -> str:
    line = f"{stop_id:07d} {name[:21]:<21}{hhhmm(arrival, no_alighting)}"
    if departure is not None:
        line += f" {hhhmm(departure, no_boarding)}"
    return line.rstrip()


def _range(from_stop: int | None, until_stop: int | None) -> str:
    first = EMPTY_STOP if from_stop is None else f"{from_stop:07d}"
    last = EMPTY_STOP if until_stop is None else f"{until_stop:07d}"
    return f"{first} {last}"


def category(code: str, from_stop: int | None = None, until_stop: int | None = None) -> str:
    return f"*G {code:<3} {_range(from_stop, until_stop)}".rstrip()


def running_days(bitfield_id: int, from_stop: int | None = None, until_stop: int | None = None) -> str:
    return f"*A VE {_range(from_stop, until_stop)} {bitfield_id:06d}"


def exception_days(bitfield_id: int, from_stop: int | None = None, until_stop: int | None = None) -> str:
    return f"*A NV {_range(from_stop, until_stop)} {bitfield_id:06d}"


def attribute(code: str, from_stop: int | None = None, until_stop: int | None = None) -> str:
    return f"*A {code:<2} {_range(from_stop, until_stop)}".rstrip()


def info_text(code: str, info_text_id: int) -> str:
    return f"*I {code:<2} {_range(None, None)} {'':6} {info_text_id:09d}"


def line_ref(line_id: int) -> str:
    return f"*L #{line_id:07d}"


def line_literal(designation: str) -> str:
    return f"*L {designation:<8}".rstrip()


def direction(kind: str, code: str = "") -> str:
    return f"*R {kind} {code:<7}".rstrip()


def stop(stop_id: int, name: str, abbreviation: str | None = None) -> str:
    line = f"{stop_id:07d}     {name}$<1>"
    if abbreviation:
        line += f"${abbreviation}$<3>"
    return line


def platform(stop_id: int, index: int, code: str, sectors: str | None = None) -> str:
    line = f"{stop_id:07d} #{index:07d} G '{code}'"
    if sectors:
        line += f" A '{sectors}'"
    return line


def platform_assignment(
    stop_id: int,
    number: int,
    administration: str,
    index: int,
    time: int | None = None,
    bitfield_id: int | None = None,
) -> str:
    line = f"{stop_id:07d} {number:06d} {administration} #{index:07d}"
    if time is not None or bitfield_id is not None:
        hours, minutes = divmod(time, 60) if time is not None else (0, 0)
        line += " " + (f"{hours:02d}{minutes:02d}" if time is not None else "    ")
    if bitfield_id is not None:
        line += f" {bitfield_id:06d}"
    return line


def write_dataset(path: Path, files: dict[str, list[str]]) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    for name, lines in files.items():
        (path / name).write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return path


def minimal_files(line_id: int = 1) -> dict[str, list[str]]:
    """One stop, one line, one single-day bitfield and one journey."""
    return {
        "ECKDATEN": ["01.01.2025", "01.01.2025", "Minimal$01.12.2024$5.40.41.2.0.7$test"],
        "BITFELD": [bitfield(1, {0}, 1)],
        "BAHNHOF": [stop(100, "Central")],
        "LINIE": ["0000001 K 1"],
        "FPLAN": [
            header(1000, ADMIN_SBB),
            running_days(1),
            line_ref(line_id),
            visit(100, "Central", departure=8 * 60),
        ],
    }


# The network runs for one week, Monday 06.01.2025 to Sunday 12.01.2025.
NETWORK_DAYS = 7
ALL_WEEK = 1
WEEKDAYS = 2
TUE_THU_SAT = 3
THURSDAY = 4


def network_files() -> dict[str, list[str]]:
    """Four stops, two operators and five journeys covering most files."""
    return {
        "ECKDATEN": ["06.01.2025", "12.01.2025", "Network$01.12.2024$5.40.41.2.0.7$test"],
        "BITFELD": [
            bitfield(ALL_WEEK, range(7), NETWORK_DAYS),
            bitfield(WEEKDAYS, range(5), NETWORK_DAYS),
            bitfield(TUE_THU_SAT, {1, 3, 5}, NETWORK_DAYS),
            bitfield(THURSDAY, {3}, NETWORK_DAYS),
        ],
        "FEIERTAG": ["08.01.2025 Testtag<deu>Jour de test<fra>"],
        "BAHNHOF": [
            stop(BASEL, "Basel SBB", "BS"),
            stop(ZURICH, "Zürich HB", "ZUE"),
            stop(BERN, "Bern", "BN"),
            stop(BURGDORF, "Burgdorf"),
        ],
        "BFKOORD_LV95": [
            f"{ZURICH:07d} 2683211.000 1248075.000 408",
            f"{BERN:07d} 2600036.000 1199742.000 540",
        ],
        "BFKOORD_WGS": [
            f"{ZURICH:07d} 8.540192 47.378177 408",
            f"{BERN:07d} 7.439122 46.948832 540",
        ],
        "BFPRIOS": [f"{ZURICH:07d} 16"],
        "KMINFO": [f"{BURGDORF:07d}     0"],
        "UMSTEIGB": [f"{ZURICH:07d} 07 05", "9999999 05 03"],
        "BHFART": [
            "% stop properties",
            f"{ZURICH:07d} B 3",
            f"{ZURICH:07d} G A ch:1:sloid:3000",
            f"{ZURICH:07d} L CH",
            f"{ZURICH:07d} I KT 1",
            "8599999 L CH",
        ],
        "METABHF": [
            f"{BERN:07d} {BURGDORF:07d} 010",
            "*A VR",
            f"{BERN:07d}: {BURGDORF:07d}",
        ],
        "BETRIEB_DE": [
            '00001 K "SBB" L "SBB" V "Schweizerische Bundesbahnen SBB"',
            "00001 : 000011",
            '00001 N "ch:1:sboid:100001"',
            '00002 K "BLS" L "BLS" V "BLS AG"',
            "00002 : 000033",
        ],
        "BETRIEB_FR": ['00001 K "CFF" L "CFF" V "Chemins de fer fédéraux suisses CFF"'],
        "LINIE": [
            "0000001 K IC1",
            "0000001 N T IC 1",
            "0000001 F 255 255 255",
            "0000001 B 255 0 0",
            "0000002 K S1",
        ],
        "RICHTUNG": ["R000001 Bern"],
        "ZUGART": [
            "IC  1 A 0 IC 0 #001",
            "S   5 C 0 S  0 N #002",
            "<text>",
            "<Deutsch>",
            "class01 InterCity",
            "category001 InterCity",
            "category002 S-Bahn",
            "<Franzoesisch>",
            "category001 InterCity",
        ],
        "ATTRIBUT": [
            "VR 0   5  5",
            "X1 0   5  5",
            "<text>",
            "<deu>",
            "VR  Velos: Reservierung obligatorisch",
            "X1  Verkehrt nicht an Feiertagen",
        ],
        "INFOTEXT_DE": ["000000001 Reservierung empfohlen"],
        "INFOTEXT_FR": ["000000001 Réservation recommandée"],
        "FPLAN": [
            header(1, ADMIN_SBB),
            category("IC"),
            running_days(ALL_WEEK),
            line_ref(1),
            direction("H", "R000001"),
            attribute("VR", ZURICH, BERN),
            info_text("JY", 1),
            visit(BASEL, "Basel SBB", departure=7 * 60),
            visit(ZURICH, "Zürich HB", 8 * 60, 8 * 60 + 2),
            visit(BERN, "Bern", 9 * 60),
            header(2, ADMIN_SBB),
            category("IC"),
            running_days(WEEKDAYS),
            line_ref(1),
            visit(BERN, "Bern", departure=9 * 60 + 5),
            visit(BURGDORF, "Burgdorf", 9 * 60 + 20),
            header(300, ADMIN_BLS, cycles=2, cycle_minutes=30),
            category("S"),
            running_days(TUE_THU_SAT),
            exception_days(THURSDAY),
            line_literal("S3"),
            visit(BERN, "Bern", departure=9 * 60 + 20),
            visit(BURGDORF, "Burgdorf", 9 * 60 + 35),
            header(4, ADMIN_SBB),
            running_days(ALL_WEEK),
            attribute("X1"),
            visit(BASEL, "Basel SBB", departure=10 * 60),
            visit(ZURICH, "Zürich HB", 11 * 60, no_alighting=True),
            header(5, ADMIN_SBB),
            category("IC"),
            line_ref(1),
            visit(ZURICH, "Zürich HB", departure=12 * 60),
            visit(BERN, "Bern", 13 * 60),
        ],
        "GLEIS": [
            platform(ZURICH, 1, "7"),
            platform(BERN, 2, "5", "AB"),
            platform_assignment(ZURICH, 1, ADMIN_SBB, 1),
            platform_assignment(BERN, 2, ADMIN_SBB, 2, time=9 * 60 + 5, bitfield_id=WEEKDAYS),
        ],
        "DURCHBI": [
            f"{1:06d} {ADMIN_SBB} {BERN:07d} {2:06d} {ADMIN_SBB} {ALL_WEEK:06d} {BERN:07d}",
        ],
        "UMSTEIGV": [
            f"@@@@@@@ {ADMIN_BLS} {ADMIN_SBB} 04",
            f"{BERN:07d} {ADMIN_BLS} {ADMIN_SBB} 06",
        ],
        "UMSTEIGL": [
            f"{BERN:07d} {ADMIN_SBB} IC  {'*':<8} * {ADMIN_BLS} S   {'*':<8} * 003!",
        ],
        "UMSTEIGZ": [
            f"{BERN:07d} {1:06d} {ADMIN_SBB} {300:06d} {ADMIN_BLS} 002!",
        ],
    }
