from __future__ import annotations

import time
from datetime import date, datetime

import pytest

from crew_calendar.core.dates import (
    format_date_key,
    is_date_key,
    is_valid_time,
    iter_day_keys,
    minutes_to_time,
    parse_date_key,
    parse_local_date,
    shift_key,
    time_to_minutes,
)


def test_parse_local_date_uses_calendar_components():
    assert parse_local_date("2025-06-10") == date(2025, 6, 10)
    assert parse_local_date(datetime(2025, 6, 10, 23, 59)) == date(2025, 6, 10)
    assert format_date_key(parse_local_date("2025-01-05")) == "2025-01-05"


def test_parse_local_date_falls_back_to_today(caplog):
    assert parse_local_date("not a date") == date.today()
    assert parse_local_date("2025-02-30") == date.today()
    assert "falling back to today" in caplog.text


def test_parse_date_key_is_strict():
    with pytest.raises(ValueError):
        parse_date_key("2025-6-1")
    assert parse_date_key(date(2024, 2, 29)) == date(2024, 2, 29)


def test_is_date_key_checks_real_days():
    assert is_date_key("2024-02-29")
    assert not is_date_key("2025-02-29")
    assert not is_date_key("20250610")
    assert not is_date_key(None)


def test_shift_and_iterate_across_month_end():
    assert shift_key("2025-06-30", 1) == "2025-07-01"
    assert shift_key("2025-03-01", -1) == "2025-02-28"
    assert list(iter_day_keys("2025-06-29", "2025-07-02")) == [
        "2025-06-29",
        "2025-06-30",
        "2025-07-01",
        "2025-07-02",
    ]
    assert list(iter_day_keys("2025-06-10", "2025-06-09")) == []


@pytest.mark.parametrize("text", ["00:00", "09:30", "12:05", "23:59"])
def test_time_round_trip(text):
    assert minutes_to_time(time_to_minutes(text)) == text


def test_time_helpers_handle_bad_input():
    assert time_to_minutes("9:00") == 0
    assert time_to_minutes(None) == 0
    assert minutes_to_time(-5) == "00:00"
    assert minutes_to_time(5000) == "23:59"
    assert is_valid_time("23:59")
    assert not is_valid_time("24:00")


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="time.tzset is not available on this platform")
@pytest.mark.parametrize("zone", ["Pacific/Kiritimati", "America/Adak", "UTC"])
def test_keys_survive_any_host_timezone(monkeypatch, zone):
    monkeypatch.setenv("TZ", zone)
    time.tzset()
    try:
        for key in ("2025-01-01", "2025-03-09", "2025-06-30", "2025-11-02", "2024-12-31"):
            assert format_date_key(parse_local_date(key)) == key
            assert shift_key(shift_key(key, 1), -1) == key
        assert list(iter_day_keys("2025-03-08", "2025-03-10")) == ["2025-03-08", "2025-03-09", "2025-03-10"]
    finally:
        monkeypatch.undo()
        time.tzset()
