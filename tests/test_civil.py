from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from brokercal.civil import InvalidDateError, civil_date, parse_timestamp

LA = ZoneInfo("America/Los_Angeles")


def test_date_only_values_are_never_shifted():
    # A UTC-midnight reading of this value would land on Dec 31 in Los Angeles.
    assert civil_date("2026-01-01", LA) == date(2026, 1, 1)


def test_utc_timestamps_convert_into_civil_timezone():
    assert civil_date("2026-01-01T05:00:00.000Z", LA) == date(2025, 12, 31)
    assert parse_timestamp("2026-07-01T17:00:00+00:00", LA) == datetime(2026, 7, 1, 10, 0, tzinfo=LA)


def test_naive_timestamps_are_wall_clock_time():
    parsed = parse_timestamp("2026-03-08T09:30:00", LA)

    assert parsed.hour == 9
    assert parsed.minute == 30
    assert parsed.tzinfo == LA


def test_date_only_timestamp_is_local_midnight():
    assert parse_timestamp("2026-11-01", LA) == datetime(2026, 11, 1, 0, 0, tzinfo=LA)


def test_blank_values_return_none():
    assert parse_timestamp(None, LA) is None
    assert civil_date("   ", LA) is None


@pytest.mark.parametrize("value", ["yesterday", "2026-13-01", "01/02/2026"])
def test_malformed_values_raise_invalid_date_error(value):
    with pytest.raises(InvalidDateError) as info:
        civil_date(value, LA)

    assert info.value.value == value
    assert isinstance(info.value, ValueError)
