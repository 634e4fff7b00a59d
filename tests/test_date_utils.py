"""
Tests for date comparison, display formatting and the ISO wire format.
"""

import re
from datetime import date, datetime, timedelta, timezone

import pytest

from scheduler.core.errors import InvalidDate
from scheduler.utils.date_utils import (
    format_for_display,
    from_iso_timestamp,
    is_same_day,
    is_same_month,
    parse_timestamp,
    shift_month,
    start_of_month,
    to_iso_timestamp,
)

SAMPLE_MOMENTS = [
    datetime(2024, 3, 5, 0, 0),
    datetime(2024, 3, 5, 23, 59, 59),
    datetime(2024, 3, 6, 0, 0),
    datetime(2024, 2, 29, 12, 0),
    datetime(2023, 3, 5, 10, 0),
    datetime(2024, 12, 31, 23, 0),
    datetime(2025, 1, 1, 1, 0),
]


def test_is_same_day_reflexive_and_symmetric():
    for first in SAMPLE_MOMENTS:
        assert is_same_day(first, first)
        for second in SAMPLE_MOMENTS:
            assert is_same_day(first, second) == is_same_day(second, first)


def test_is_same_day_matches_calendar_day_only():
    assert is_same_day(datetime(2024, 3, 5, 0, 0), datetime(2024, 3, 5, 23, 59))
    assert is_same_day(datetime(2024, 3, 5, 10, 0), date(2024, 3, 5))
    assert not is_same_day(datetime(2024, 3, 5), datetime(2024, 3, 6))
    assert not is_same_day(datetime(2024, 3, 5), datetime(2023, 3, 5))


@pytest.mark.parametrize("bad", [None, "", "not a date", 42, object()])
def test_is_same_day_never_raises_on_invalid_input(bad):
    assert is_same_day(bad, datetime(2024, 3, 5)) is False
    assert is_same_day(datetime(2024, 3, 5), bad) is False


def test_is_same_month_ignores_day():
    assert is_same_month(datetime(2024, 3, 1), datetime(2024, 3, 31, 23, 0))
    assert not is_same_month(datetime(2024, 3, 1), datetime(2024, 4, 1))
    assert not is_same_month(datetime(2024, 3, 1), datetime(2023, 3, 1))
    assert not is_same_month(None, datetime(2024, 3, 1))


def test_parse_timestamp_accepts_datetime_local_text():
    assert parse_timestamp("2024-03-05T10:00") == datetime(2024, 3, 5, 10, 0)
    assert parse_timestamp(date(2024, 3, 5)) == datetime(2024, 3, 5)
    assert parse_timestamp("garbage") is None
    assert parse_timestamp("   ") is None


def test_parse_timestamp_converts_aware_values_to_local_time():
    expected = (
        datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    )
    assert parse_timestamp("2024-03-05T10:00:00.000Z") == expected
    assert parse_timestamp("2024-03-05T10:00:00+00:00") == expected


def test_format_for_display_default_fields():
    assert format_for_display(datetime(2024, 3, 5, 10, 0)) == "Mar 5, 10:00 AM"
    assert format_for_display(datetime(2024, 3, 5, 14, 30)) == "Mar 5, 02:30 PM"


def test_format_for_display_field_subsets():
    moment = datetime(2024, 3, 5, 10, 0)
    assert (
        format_for_display(moment, fields=("month", "day", "year"), month_style="long")
        == "March 5, 2024"
    )
    assert format_for_display(moment, fields=("month", "year"), month_style="long") == "March 2024"
    assert format_for_display(moment, fields=("month", "day", "year")) == "Mar 5, 2024"


def test_format_for_display_returns_sentinel_for_unparseable_input():
    assert format_for_display("not a date") == "N/A"
    assert format_for_display(None) == "N/A"


def test_format_for_display_rejects_unknown_fields():
    with pytest.raises(ValueError):
        format_for_display(datetime(2024, 3, 5), fields=("weekday",))


def test_iso_timestamp_format():
    text = to_iso_timestamp(datetime(2024, 3, 5, 10, 0))
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", text)


def test_iso_round_trip_keeps_millisecond_precision():
    moment = datetime(2024, 3, 5, 10, 0, 12, 345678)
    restored = from_iso_timestamp(to_iso_timestamp(moment))
    assert restored == moment.replace(microsecond=345000)
    assert abs(restored - moment) < timedelta(milliseconds=1)


def test_iso_conversion_rejects_invalid_dates():
    with pytest.raises(InvalidDate):
        to_iso_timestamp("2024-13-45T99:99")
    with pytest.raises(InvalidDate):
        from_iso_timestamp("")


def test_month_arithmetic():
    assert start_of_month(datetime(2024, 3, 15, 10, 0)) == date(2024, 3, 1)
    assert shift_month(date(2024, 1, 31), -1) == date(2023, 12, 1)
    assert shift_month(date(2024, 12, 5), 1) == date(2025, 1, 1)
    assert shift_month(date(2024, 3, 5), 0) == date(2024, 3, 1)
