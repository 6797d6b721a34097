"""
Discovery window cover.

The scan endpoint returns at most K openings per call and takes one
time-of-day range. A day is covered by fixed-width windows that advance by
less than their width, so every instant of the open day falls in at least
two windows (except the first and last step) and a run of more than K
openings cannot hide at a window seam.
"""

from datetime import time

from app.core.scheduling.models import DiscoveryWindow


def parse_clock(value: str) -> int:
    """Parse "HH:MM" into minutes since midnight.

    Raises:
        ValueError: If value is not a valid clock time
    """
    hours, _, minutes = value.strip().partition(":")
    total = int(hours) * 60 + int(minutes or 0)
    if not 0 <= total <= 24 * 60:
        raise ValueError(f"Clock time out of range: {value!r}")
    return total


def _to_time(minutes: int) -> time:
    # 24:00 is clamped to the last representable minute
    minutes = min(minutes, 24 * 60 - 1)
    return time(hour=minutes // 60, minute=minutes % 60)


def build_discovery_windows(
    day_start: str = "06:00",
    day_end: str = "22:00",
    width_hours: int = 2,
    step_hours: int = 1,
) -> list[DiscoveryWindow]:
    """Build the overlapping window cover for one business day.

    With the defaults this yields 15 windows: 06:00-08:00, 07:00-09:00, ...,
    20:00-22:00.

    Args:
        day_start: Opening time, "HH:MM"
        day_end: Closing time, "HH:MM"
        width_hours: Width of each window
        step_hours: Advance between consecutive windows

    Returns:
        Windows ordered by start time

    Raises:
        ValueError: If the parameters cannot cover the day with overlap
    """
    if width_hours <= 0 or step_hours <= 0:
        raise ValueError("Window width and step must be positive")
    if step_hours > width_hours:
        raise ValueError("Window step must not exceed window width")

    start = parse_clock(day_start)
    end = parse_clock(day_end)
    if end <= start:
        raise ValueError(f"Day end {day_end} must be after day start {day_start}")

    width = width_hours * 60
    step = step_hours * 60

    windows: list[DiscoveryWindow] = []
    cursor = start
    while True:
        window_end = min(cursor + width, end)
        windows.append(DiscoveryWindow(start=_to_time(cursor), end=_to_time(window_end)))
        if window_end >= end:
            break
        cursor += step

    return windows
