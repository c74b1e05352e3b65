"""
Weekly Rhythm - Do-Not-Disturb Windows
Locating the DND occurrence that matters right now, shifting triggers out of it,
and the settings edits that replace windows.
"""

from datetime import datetime, timedelta
from typing import Optional, List, Tuple

from logger import get_logger
from models import DAYS_OF_WEEK, DNDWindow, Weekday
from time_utils import at_time_on, minute_of_day, time_to_minutes

logger = get_logger(__name__)

DEFAULT_DND_START = "23:00"
DEFAULT_DND_END = "07:00"
DND_SHIFTED = "DND-shifted"


def find_dnd_window(windows: List[DNDWindow], day: Weekday) -> Optional[DNDWindow]:
    """At most one window per day; lookups key by day."""
    return next((w for w in windows if w.day == day), None)


def dnd_bounds(window: Optional[DNDWindow], now: datetime) -> Optional[Tuple[datetime, datetime]]:
    """
    Absolute start/end of the window occurrence that ``now`` belongs to.

    Both boundaries are first placed on today's date. For an overnight window
    the start moves to yesterday while we are still before today's end,
    otherwise the end moves to tomorrow.

    Returns:
        (start, end) or None when the window has no times set
    """
    if not window or not window.start_time or not window.end_time:
        return None

    start = at_time_on(now, window.start_time)
    end = at_time_on(now, window.end_time)

    if end < start:
        if now < end:
            start -= timedelta(days=1)
        else:
            end += timedelta(days=1)

    return start, end


def shift_trigger(
    trigger: datetime,
    window: Optional[DNDWindow],
    now: datetime
) -> Tuple[datetime, bool]:
    """Move a trigger inside [dnd_start, dnd_end] to dnd_end. Returns (trigger, shifted)."""
    bounds = dnd_bounds(window, now)
    if bounds is None:
        return trigger, False

    start, end = bounds
    if start <= trigger <= end:
        logger.debug(f"Trigger {trigger:%a %H:%M} falls in DND, shifted to {end:%a %H:%M}")
        return end, True
    return trigger, False


def is_within_dnd(moment: datetime, window: Optional[DNDWindow]) -> bool:
    """Minute-of-day membership, end exclusive, overnight aware."""
    if not window or not window.start_time or not window.end_time:
        return False

    current = minute_of_day(moment)
    start = time_to_minutes(window.start_time)
    end = time_to_minutes(window.end_time)

    if end < start:
        return current >= start or current < end
    return start <= current < end


# ============================================
# SETTINGS EDITS
# ============================================

def update_dnd_window(
    windows: List[DNDWindow],
    day: Weekday,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None
) -> List[DNDWindow]:
    """Replace one day's times; adds the day's window if it has none yet."""
    updates = {}
    if start_time is not None:
        updates["start_time"] = start_time
    if end_time is not None:
        updates["end_time"] = end_time

    if find_dnd_window(windows, day) is None:
        return windows + [DNDWindow(day=day, **updates)]

    return [
        w.model_copy(update=updates) if w.day == day else w
        for w in windows
    ]


def apply_dnd_to_all(windows: List[DNDWindow]) -> List[DNDWindow]:
    """Broadcast Monday's window (or the first one, or 23:00-07:00) to every day."""
    representative = find_dnd_window(windows, Weekday.MONDAY) or (windows[0] if windows else None)
    start = representative.start_time if representative else DEFAULT_DND_START
    end = representative.end_time if representative else DEFAULT_DND_END

    return [DNDWindow(day=day, start_time=start, end_time=end) for day in DAYS_OF_WEEK]
