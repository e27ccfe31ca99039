"""Time parsing and arithmetic helpers for shift windows."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Tuple


def parse_time_string(value: str | time) -> time:
    """
    Parse a time-of-day string in HH:MM or HH:MM:SS format.

    Args:
        value: Time string (e.g., "07:30") or an existing time

    Returns:
        datetime.time

    Raises:
        ValueError: If the string is not a valid time of day
    """
    if isinstance(value, time):
        return value
    text = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time {value!r}, expected HH:MM")


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def calculate_shift_hours(start: str | time, end: str | time) -> float:
    """Duration between two times of the same day, in hours."""
    start_t = parse_time_string(start)
    end_t = parse_time_string(end)
    return (minutes_of(end_t) - minutes_of(start_t)) / 60.0


def windows_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """Half-open overlap: back-to-back windows do not overlap."""
    return a_start < b_end and b_start < a_end


def window_contains(outer_start: time, outer_end: time, inner_start: time, inner_end: time) -> bool:
    return outer_start <= inner_start and inner_end <= outer_end


def merge_windows(windows: Iterable[Tuple[time, time]]) -> List[Tuple[time, time]]:
    """Join windows that touch or overlap, e.g. 09-12 and 12-17 become 09-17."""
    merged: List[Tuple[time, time]] = []
    for start, end in sorted(windows):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def iso_week_key(day: date) -> str:
    """ISO week identifier, e.g. 2025-W36."""
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def iso_week_bounds(start: date, end: date) -> Tuple[date, date]:
    """Expand [start, end] to whole ISO weeks (Monday .. Sunday)."""
    monday = start - timedelta(days=start.weekday())
    sunday = end + timedelta(days=6 - end.weekday())
    return monday, sunday


def daterange(start: date, end: date) -> Iterator[date]:
    """Inclusive iteration over calendar days."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)
