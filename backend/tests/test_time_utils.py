from __future__ import annotations

from datetime import date, datetime

from kairos.services.time_utils import (
    end_time_for,
    format_hhmm,
    iso_week_label,
    minutes_between,
    parse_hhmm,
    seconds_since_midnight,
    weekday_index,
)


def test_parse_and_format_hhmm() -> None:
    assert parse_hhmm("09:05") == 545
    assert parse_hhmm("24:00") is None
    assert parse_hhmm("9") is None
    assert parse_hhmm(None) is None
    assert format_hhmm(545) == "09:05"
    assert format_hhmm(24 * 60 + 30) == "23:59"


def test_durations_and_end_times() -> None:
    assert end_time_for("22:30", 45) == "23:15"
    assert end_time_for(None, 45) is None
    assert minutes_between("09:00", "10:30") == 90
    assert minutes_between("10:00", "09:00") == 60


def test_calendar_helpers() -> None:
    assert weekday_index(date(2026, 10, 18)) == 0
    assert weekday_index(date(2026, 10, 19)) == 1
    assert iso_week_label(date(2026, 10, 19)) == "2026-W43"
    assert seconds_since_midnight(datetime(2026, 10, 19, 1, 2, 3)) == 3723
