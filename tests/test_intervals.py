from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from court_finder.errors import InvalidRangeError, ParseError
from court_finder.intervals import (
    duration_minutes,
    format_clock_time,
    format_time_range,
    merge_intervals,
    parse_clock_time,
    parse_time_range,
)

TZ = ZoneInfo("America/New_York")
DAY = date(2025, 6, 4)


def at(hour, minute=0):
    return datetime.combine(DAY, time(hour, minute), tzinfo=TZ)


def test_parse_clock_time():
    assert parse_clock_time("9:30 PM", DAY, TZ) == at(21, 30)
    assert parse_clock_time("9:30 AM", DAY, TZ) == at(9, 30)
    assert parse_clock_time("12:00 AM", DAY, TZ) == at(0)
    assert parse_clock_time("12:15 PM", DAY, TZ) == at(12, 15)


def test_parse_clock_time_lenient_forms():
    # Leading zero hours and lowercase meridiem come back from some sources
    assert parse_clock_time("08:05 am", DAY, TZ) == at(8, 5)
    assert parse_clock_time("  7:00 PM ", DAY, TZ) == at(19)


@pytest.mark.parametrize("text", ["9:30", "13:00 PM", "0:30 AM", "9:60 AM", "", "nine AM", "9:5 AM"])
def test_parse_clock_time_invalid(text):
    with pytest.raises(ParseError):
        parse_clock_time(text, DAY, TZ)


def test_format_clock_time():
    assert format_clock_time(at(21, 30), TZ) == "9:30 PM"
    assert format_clock_time(at(8), TZ) == "8:00 AM"
    assert format_clock_time(at(0), TZ) == "12:00 AM"
    assert format_clock_time(at(12), TZ) == "12:00 PM"


def test_format_clock_time_converts_to_facility_timezone():
    utc_time = datetime(2025, 6, 4, 13, 0, tzinfo=timezone.utc)
    assert format_clock_time(utc_time, TZ) == "9:00 AM"
    # Winter: EST is UTC-5
    assert format_clock_time(datetime(2025, 1, 15, 13, 0, tzinfo=timezone.utc), TZ) == "8:00 AM"


def test_parse_format_round_trip_on_half_hour_grid():
    for step in range(48):
        t = at(step // 2, 30 * (step % 2))
        assert parse_clock_time(format_clock_time(t, TZ), DAY, TZ) == t


def test_time_range_helpers():
    assert format_time_range(at(8), at(9), TZ) == "8:00 AM to 9:00 AM"
    assert parse_time_range("8:00 AM to 9:00 AM", DAY, TZ) == (at(8), at(9))
    with pytest.raises(ParseError):
        parse_time_range("8:00 AM - 9:00 AM", DAY, TZ)


def test_duration_minutes():
    assert duration_minutes(at(8), at(9, 30)) == 90
    assert duration_minutes(at(8), at(8, 31)) == 31


def test_duration_minutes_invalid_range():
    with pytest.raises(InvalidRangeError):
        duration_minutes(at(9), at(9))
    with pytest.raises(InvalidRangeError):
        duration_minutes(at(10), at(9))


def test_merge_intervals_empty():
    assert merge_intervals([]) == []


def test_merge_intervals_overlapping_abutting_unsorted():
    intervals = [
        (at(14), at(15)),
        (at(9), at(10)),
        (at(10), at(11)),  # touches the previous block
        (at(9, 30), at(10, 30)),
        (at(14), at(15)),  # duplicate
        (at(18), at(19)),
    ]
    assert merge_intervals(intervals) == [(at(9), at(11)), (at(14), at(15)), (at(18), at(19))]


def test_merge_intervals_contained():
    assert merge_intervals([(at(8), at(20)), (at(9), at(10))]) == [(at(8), at(20))]


def test_merge_intervals_idempotent():
    intervals = [(at(12), at(13)), (at(8), at(9)), (at(8, 30), at(9, 30)), (at(13), at(14))]
    merged = merge_intervals(intervals)
    assert merge_intervals(merged) == merged


def test_merge_intervals_keeps_gaps():
    gap = timedelta(minutes=1)
    merged = merge_intervals([(at(8), at(9)), (at(9) + gap, at(10))])
    assert len(merged) == 2
