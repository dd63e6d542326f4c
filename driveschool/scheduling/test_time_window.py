"""Tests for time window math."""
from datetime import date, datetime

from driveschool.scheduling.time_window import (
    compute_time_window, duration_minutes, overlaps, retention_cutoff
)


class TestTimeWindow:
    def test_window_boundaries(self):
        window = compute_time_window(datetime(2025, 7, 9, 10, 30, 59))
        assert window.yesterday == date(2025, 7, 8)
        assert window.today == date(2025, 7, 9)
        assert window.tomorrow == date(2025, 7, 10)
        assert window.current_time == "10:30"

    def test_window_crosses_month_and_year(self):
        window = compute_time_window(datetime(2025, 1, 1, 0, 5))
        assert window.yesterday == date(2024, 12, 31)
        assert window.tomorrow == date(2025, 1, 2)
        assert window.current_time == "00:05"

    def test_duration(self):
        assert duration_minutes("10:00", "11:00") == 60
        assert duration_minutes("09:15", "10:45") == 90
        assert duration_minutes("11:00", "11:00") == 0
        assert duration_minutes("11:00", "10:00") == -60

    def test_overlap_is_half_open(self):
        assert overlaps("10:00", "11:00", "10:30", "11:30")
        assert overlaps("10:00", "11:00", "09:00", "12:00")
        assert not overlaps("10:00", "11:00", "11:00", "12:00")
        assert not overlaps("10:00", "11:00", "08:00", "10:00")

    def test_retention_cutoff(self):
        assert retention_cutoff(datetime(2025, 7, 9, 10, 30), 30) == date(2025, 6, 9)

