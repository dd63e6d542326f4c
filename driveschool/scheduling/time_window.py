"""
Utility functions for time-of-day and dashboard window math.

Times of day travel as zero-padded 'HH:MM' strings, so plain string
comparison orders them correctly.
"""
from dataclasses import dataclass
from datetime import datetime, date, timedelta


@dataclass(frozen=True)
class TimeWindow:
    yesterday: date
    today: date
    tomorrow: date
    current_time: str          # "HH:MM"


def compute_time_window(now: datetime) -> TimeWindow:
    """Yesterday/today/tomorrow boundaries plus the wall-clock 'HH:MM' of `now`."""
    today = now.date()
    return TimeWindow(
        yesterday=today - timedelta(days=1),
        today=today,
        tomorrow=today + timedelta(days=1),
        current_time=format_hhmm(now),
    )


def format_hhmm(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def parse_hhmm(t: str) -> datetime:
    """'08:00' → datetime object (date doesn't matter, just time comparison)"""
    return datetime.strptime(t, "%H:%M")


def duration_minutes(start: str, end: str) -> int:
    """'10:00', '11:30' → 90. Negative when end precedes start."""
    delta = parse_hhmm(end) - parse_hhmm(start)
    return int(delta.total_seconds() // 60)


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open interval overlap: back-to-back slots do not collide."""
    return not (end_a <= start_b or start_a >= end_b)


def retention_cutoff(now: datetime, retention_days: int) -> date:
    """Oldest lesson date still kept; anything strictly before it is purged."""
    return now.date() - timedelta(days=retention_days)
