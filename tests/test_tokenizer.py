"""Tests for the line tokenizer."""

from datetime import date

import pytest

from hrdf_pipeline.hrdf.errors import MalformedRecord
from hrdf_pipeline.hrdf.tokenizer import (
    Field,
    FieldKind,
    TimeValue,
    column,
    parse_date,
    parse_int,
    parse_time,
    strip_comment,
    tokenize_delimited,
    tokenize_fixed,
)

_FIELDS = (
    Field("stop_id", 1, 7, FieldKind.INT),
    Field("administration", 9, 14, FieldKind.FIXED),
    Field("time", 16, 20, FieldKind.TIME, optional=True),
    Field("name", 22, None, FieldKind.STR, optional=True),
)


def test_tokenize_fixed_basic() -> None:
    """Test slicing a line into typed columns."""
    values = tokenize_fixed("8500010 000011 00830 Basel SBB  ", _FIELDS)

    assert values["stop_id"] == 8500010
    assert values["administration"] == "000011"
    assert values["time"] == TimeValue(minutes=510)
    assert values["name"] == "Basel SBB"


def test_tokenize_fixed_optional_beyond_line_end() -> None:
    """Test optional columns past the end of a short line are None."""
    values = tokenize_fixed("8500010 000011", _FIELDS)

    assert values["time"] is None
    assert values["name"] is None


def test_tokenize_fixed_missing_mandatory() -> None:
    """Test a blank mandatory column is malformed."""
    with pytest.raises(MalformedRecord) as excinfo:
        tokenize_fixed("        000011", _FIELDS)

    assert excinfo.value.field == "stop_id"


def test_tokenize_fixed_short_fixed_width() -> None:
    """Test a fixed-width column cut short by the line end."""
    with pytest.raises(MalformedRecord) as excinfo:
        tokenize_fixed("8500010 0000", _FIELDS)

    assert excinfo.value.field == "administration"


def test_tokenize_fixed_fixed_keeps_padding() -> None:
    """Test FIXED columns are returned untrimmed."""
    values = tokenize_fixed("8500010 SBB   ", _FIELDS)

    assert values["administration"] == "SBB   "


def test_tokenize_fixed_bad_integer() -> None:
    """Test non-numeric text in an integer column."""
    with pytest.raises(MalformedRecord):
        tokenize_fixed("85000X0 000011", _FIELDS)


def test_tokenize_fixed_hex_and_decimal() -> None:
    """Test hexadecimal and decimal columns."""
    fields = (Field("pattern", 1, 4, FieldKind.HEX), Field("x", 6, None, FieldKind.DECIMAL))

    values = tokenize_fixed("ff0a 2600000.5", fields)

    assert values["pattern"] == "FF0A"
    assert values["x"] == 2600000.5

    with pytest.raises(MalformedRecord):
        tokenize_fixed("ffzz 1", fields)
    with pytest.raises(MalformedRecord):
        tokenize_fixed("ff0a 1.2.3", fields)


def test_parse_int() -> None:
    """Test zero padded and signed integers."""
    assert parse_int("000123") == 123
    assert parse_int(" -5 ") == -5

    with pytest.raises(MalformedRecord):
        parse_int("")
    with pytest.raises(MalformedRecord):
        parse_int("12a")


def test_parse_date() -> None:
    """Test dd.mm.yyyy dates."""
    assert parse_date("13.12.2024") == date(2024, 12, 13)

    with pytest.raises(MalformedRecord):
        parse_date("2024-12-13")
    with pytest.raises(MalformedRecord):
        parse_date("31.02.2025")


def test_parse_time_normal() -> None:
    """Test HHHMM times."""
    assert parse_time("00830") == TimeValue(minutes=8 * 60 + 30)
    assert parse_time("0000") == TimeValue(minutes=0)


def test_parse_time_over_24h() -> None:
    """Test times past midnight keep counting from the service day."""
    assert parse_time("02530").minutes == 25 * 60 + 30
    assert parse_time("04800").minutes == 48 * 60


def test_parse_time_restricted() -> None:
    """Test a leading minus marks a restricted time."""
    value = parse_time("-01015")

    assert value.minutes == 10 * 60 + 15
    assert value.restricted
    assert str(value) == "-10:15"


def test_parse_time_invalid() -> None:
    """Test malformed times."""
    with pytest.raises(MalformedRecord):
        parse_time("00870")
    with pytest.raises(MalformedRecord):
        parse_time("8:30")


def test_tokenize_delimited_quotes() -> None:
    """Test quoted values keep their spaces and padding collapses."""
    tokens = tokenize_delimited('00379 K "SBB"   L "SBB" V "Schweizerische Bundesbahnen SBB"')

    assert tokens == ["00379", "K", "SBB", "L", "SBB", "V", "Schweizerische Bundesbahnen SBB"]


def test_tokenize_delimited_unterminated_quote() -> None:
    """Test an unterminated quote is malformed."""
    with pytest.raises(MalformedRecord):
        tokenize_delimited('00379 K "SBB')


def test_tokenize_delimited_blank() -> None:
    """Test a blank line has no tokens."""
    assert tokenize_delimited("   ") == []


def test_strip_comment_and_column() -> None:
    """Test comment stripping and raw column access."""
    assert strip_comment("8500010 B 3   % Basel") == "8500010 B 3"
    assert strip_comment("8500010 B 3  ") == "8500010 B 3"
    assert column("8500010 000011", 9, 14) == "000011"
    assert column("8500010", 9, 14) == ""
