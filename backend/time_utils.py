"""
Weekly Rhythm - Time Utilities
Wall-clock "HH:MM" strings, minutes since midnight, and interval overlap.
"""

from datetime import datetime, time, timedelta
from typing import Optional

from models import DAYS_OF_WEEK, Weekday


MINUTES_PER_DAY = 24 * 60


def time_to_minutes(time_str: Optional[str]) -> int:
    """Convert "HH:MM" to minutes since midnight.

    Empty or unparseable strings count as midnight so the scheduler stays total.
    """
    if not time_str:
        return 0
    parts = time_str.strip().split(":")
    if len(parts) < 2:
        return 0
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return 0
    if hours < 0 or minutes < 0:
        return 0
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to zero-padded "HH:MM", wrapping at 24h."""
    minutes = minutes % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open overlap of two same-day ranges; touching endpoints don't count."""
    return (
        time_to_minutes(start_a) < time_to_minutes(end_b)
        and time_to_minutes(end_a) > time_to_minutes(start_b)
    )


def duration_minutes(start: str, end: str) -> int:
    return time_to_minutes(end) - time_to_minutes(start)


def at_time_on(base: datetime, time_str: Optional[str]) -> datetime:
    """The instant at wall-clock ``time_str`` on ``base``'s date."""
    midnight = datetime.combine(base.date(), time())
    return midnight + timedelta(minutes=time_to_minutes(time_str))


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def weekday_name(moment: datetime) -> Weekday:
    return DAYS_OF_WEEK[moment.weekday()]


def format_offset(offset_minutes: int) -> str:
    """Human phrasing of a reminder offset, e.g. "10 minutes before"."""
    if offset_minutes == 0:
        return "at the start of"
    minutes = abs(offset_minutes)
    before_or_after = "before" if offset_minutes < 0 else "after"
    return f"{minutes} minute{'s' if minutes > 1 else ''} {before_or_after}"


def format_time_for_display(time_str: str) -> str:
    """Format "13:30" as "1:30 PM" and "09:00" as "9 AM"."""
    if not time_str:
        return ""
    total = time_to_minutes(time_str)
    hour, minute = divmod(total % MINUTES_PER_DAY, 60)
    suffix = "PM" if hour >= 12 else "AM"
    hour = hour % 12 or 12
    if minute:
        return f"{hour}:{minute:02d} {suffix}"
    return f"{hour} {suffix}"
