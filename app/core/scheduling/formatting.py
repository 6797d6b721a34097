"""
Human-readable date and time strings for slot instants.

Pre-formatted values let callers (voice agents, chat front ends) read a slot
out loud without doing date math. Matching never looks at these.
"""

from datetime import datetime

DAYS_OF_WEEK = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]
MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def ordinal_suffix(day: int) -> str:
    """Return the English ordinal suffix for a day of month (1st, 22nd, 13th)."""
    if 3 < day < 21:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def format_date_parts(instant: datetime) -> dict[str, str]:
    """Weekday, "January 21st" and "Wednesday, January 21st" for an instant."""
    day_of_week = DAYS_OF_WEEK[instant.weekday()]
    day = f"{instant.day}{ordinal_suffix(instant.day)}"
    formatted_date = f"{MONTHS[instant.month - 1]} {day}"
    return {
        "day_of_week": day_of_week,
        "formatted_date": formatted_date,
        "formatted_full_date": f"{day_of_week}, {formatted_date}",
    }


def format_time(instant: datetime) -> str:
    """12-hour clock string, e.g. "9:05 AM"."""
    hour = instant.hour % 12 or 12
    meridiem = "PM" if instant.hour >= 12 else "AM"
    return f"{hour}:{instant.minute:02d} {meridiem}"


def format_slot_full(instant: datetime) -> str:
    """e.g. "Wednesday, January 21st at 10:00 AM"."""
    return f"{format_date_parts(instant)['formatted_full_date']} at {format_time(instant)}"


def format_instant(instant: datetime) -> dict[str, str]:
    """All presentation fields attached to a slot in API responses."""
    parts = format_date_parts(instant)
    formatted_time = format_time(instant)
    return {
        "day_of_week": parts["day_of_week"],
        "formatted_date": parts["formatted_date"],
        "formatted_time": formatted_time,
        "formatted_full": f"{parts['formatted_full_date']} at {formatted_time}",
    }
