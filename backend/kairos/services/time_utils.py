"""Wall-clock ``HH:mm`` helpers."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str | None) -> Optional[int]:
    """Return minutes since midnight for an ``HH:mm`` string, or None if unparsable."""
    if not value:
        return None
    parts = value.split(":")
    if len(parts) != 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if hours < 0 or hours > 23 or minutes < 0 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    """Format minutes since midnight as ``HH:mm`` (clamped to the same day)."""
    minutes = max(0, min(minutes, MINUTES_PER_DAY - 1))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def end_time_for(start: str | None, duration: int) -> Optional[str]:
    start_minutes = parse_hhmm(start)
    if start_minutes is None:
        return None
    return format_hhmm(start_minutes + duration)


def minutes_between(start: str, end: str) -> int:
    """Difference ``end - start`` in minutes; 60 when not positive or unparsable."""
    start_minutes = parse_hhmm(start)
    end_minutes = parse_hhmm(end)
    if start_minutes is None or end_minutes is None:
        return 60
    diff = end_minutes - start_minutes
    return diff if diff > 0 else 60


def seconds_since_midnight(moment: datetime) -> int:
    return moment.hour * 3600 + moment.minute * 60 + moment.second


def weekday_index(day: date) -> int:
    """Weekday with 0=Sunday..6=Saturday."""
    return (day.weekday() + 1) % 7


def iso_week_label(day: date) -> str:
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"
