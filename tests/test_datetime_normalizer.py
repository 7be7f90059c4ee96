# ============================================================================
# FILE: tests/test_datetime_normalizer.py
# ============================================================================
"""
Unit tests for time, date and duration normalisation
"""

from datetime import date

import pytest

from datetime_normalizer import (
    TimeContext,
    TimeToken,
    assign_times,
    keyword_contexts,
    parse_date,
    validate_duration,
    validate_time,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("19:45", "19:45"),
        ("9:05", "09:05"),
        ("00:00", "00:00"),
        ("1945", "19:45"),
        ("0005", "00:05"),
        ("7:45 PM", "19:45"),
        ("7:45PM", "19:45"),
        ("12:05 AM", "00:05"),
        ("12:30 pm", "12:30"),
        ("7:45 p.m.", "19:45"),
    ],
)
def test_validate_time_accepts(raw, expected):
    """Three accepted shapes, normalised to 24h HH:MM"""
    assert validate_time(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["69:46", "25:00", "1:99 PM", "2460", "13:00 PM", "12345", "noon", "", "   ", None],
)
def test_validate_time_rejects(raw):
    """Out-of-range or unshaped values are never repaired"""
    assert validate_time(raw) is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2025-11-12", date(2025, 11, 12)),
        ("12 Nov 2025", date(2025, 11, 12)),
        ("12 November 2025", date(2025, 11, 12)),
        ("Nov 12, 2025", date(2025, 11, 12)),
        ("12NOV25", date(2025, 11, 12)),
        ("11/12/2025", date(2025, 11, 12)),
        ("Wed, 12 Nov 2025", date(2025, 11, 12)),
    ],
)
def test_parse_date_full(raw, expected):
    """Dates that carry their own year"""
    assert parse_date(raw) == expected


def test_parse_date_injects_current_year():
    """A printed day and month take the current year"""
    today = date(2026, 3, 1)
    assert parse_date("12 Nov", today=today) == date(2026, 11, 12)
    assert parse_date("Nov 12", today=today) == date(2026, 11, 12)
    assert parse_date("12NOV", today=today) == date(2026, 11, 12)


@pytest.mark.parametrize("raw", ["not a date", "31 Feb 2025", "", None])
def test_parse_date_rejects(raw):
    """Unparseable dates become None"""
    assert parse_date(raw) is None


def test_validate_duration():
    """Durations are normalised to XH YYM"""
    assert validate_duration("1H 30M") == "1H 30M"
    assert validate_duration("2h 5m") == "2H 05M"
    assert validate_duration("2 hrs 15 mins") == "2H 15M"
    assert validate_duration("1H 75M") is None
    assert validate_duration("0H 00M") is None
    assert validate_duration("90 minutes") is None


def test_keyword_contexts_in_reading_order():
    """Keywords are reported left to right"""
    contexts = keyword_contexts("BOARDING DEPARTS ARRIVES")
    assert contexts == [TimeContext.BOARDING, TimeContext.DEPARTURE, TimeContext.ARRIVAL]


def test_assign_times_explicit_context():
    """Labelled times go to their own slots"""
    times = assign_times(
        [
            TimeToken("21:15", TimeContext.ARRIVAL),
            TimeToken("19:45", TimeContext.DEPARTURE),
        ]
    )
    assert times.departure == "19:45"
    assert times.arrival == "21:15"
    assert times.boarding is None


def test_assign_times_boarding_stands_in_for_departure():
    """Boarding time is kept and used as departure when none is printed"""
    times = assign_times([TimeToken("19:00", TimeContext.BOARDING)])
    assert times.boarding == "19:00"
    assert times.departure == "19:00"


def test_assign_times_free_tokens_in_order():
    """Unlabelled times fill departure then arrival, skipping repeats"""
    times = assign_times(
        [
            TimeToken("19:45", TimeContext.NONE),
            TimeToken("19:45", TimeContext.NONE),
            TimeToken("21:15", TimeContext.NONE),
        ]
    )
    assert times.departure == "19:45"
    assert times.arrival == "21:15"
