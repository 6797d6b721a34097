"""Tests for slot date/time formatting."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from app.core.scheduling.formatting import (
    format_instant,
    format_slot_full,
    format_time,
    ordinal_suffix,
)

PHOENIX = ZoneInfo("America/Phoenix")


class TestOrdinalSuffix:
    """Test ordinal_suffix."""

    @pytest.mark.parametrize(
        "day,suffix",
        [(1, "st"), (2, "nd"), (3, "rd"), (4, "th"), (11, "th"), (12, "th"),
         (13, "th"), (21, "st"), (22, "nd"), (23, "rd"), (30, "th"), (31, "st")],
    )
    def test_suffix(self, day, suffix):
        assert ordinal_suffix(day) == suffix


class TestFormatTime:
    """Test format_time."""

    def test_morning(self):
        assert format_time(datetime(2026, 1, 21, 9, 5)) == "9:05 AM"

    def test_noon(self):
        assert format_time(datetime(2026, 1, 21, 12, 0)) == "12:00 PM"

    def test_midnight(self):
        assert format_time(datetime(2026, 1, 21, 0, 30)) == "12:30 AM"

    def test_evening(self):
        assert format_time(datetime(2026, 1, 21, 18, 45)) == "6:45 PM"


class TestFormatInstant:
    """Test format_instant."""

    def test_all_fields(self):
        """Test fields for Wednesday, January 21st 2026 at 10:00."""
        fields = format_instant(datetime(2026, 1, 21, 10, 0, tzinfo=PHOENIX))

        assert fields == {
            "day_of_week": "Wednesday",
            "formatted_date": "January 21st",
            "formatted_time": "10:00 AM",
            "formatted_full": "Wednesday, January 21st at 10:00 AM",
        }

    def test_slot_full(self):
        instant = datetime(2026, 3, 2, 14, 15, tzinfo=PHOENIX)

        assert format_slot_full(instant) == "Monday, March 2nd at 2:15 PM"
