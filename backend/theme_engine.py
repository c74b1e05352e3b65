"""
Weekly Rhythm - Adaptive Theme Engine
Picks one presentation theme from the user's current situation.
"""

from datetime import datetime
from typing import Optional, List

from config import get_theme_config, ThemeConfig
from dnd import find_dnd_window, is_within_dnd
from models import ContextTag, EnergyTag, ScheduleEvent, ThemeContext, ThemeName
from time_utils import minute_of_day, time_to_minutes, weekday_name


CHUNK_THEMES = {
    EnergyTag.TEDIOUS: ThemeName.FOCUS,
    EnergyTag.ADMIN: ThemeName.FOCUS,
    EnergyTag.CREATIVE: ThemeName.CREATIVE,
    EnergyTag.SOCIAL: ThemeName.CREATIVE,
    EnergyTag.ERRAND: ThemeName.RECOVERY,
}


def get_current_events(anchors: List[ScheduleEvent], now: datetime) -> List[ScheduleEvent]:
    """Anchors on today's weekday that are running at this minute."""
    today = weekday_name(now)
    current = minute_of_day(now)
    return [
        a for a in anchors
        if a.day == today
        and time_to_minutes(a.start_time) <= current < time_to_minutes(a.end_time)
    ]


def _next_event_today(anchors: List[ScheduleEvent], now: datetime) -> Optional[ScheduleEvent]:
    today = weekday_name(now)
    current = minute_of_day(now)
    upcoming = [a for a in anchors if a.day == today and time_to_minutes(a.start_time) > current]
    return min(upcoming, key=lambda a: time_to_minutes(a.start_time), default=None)


def _theme_for_running_anchors(events: List[ScheduleEvent]) -> Optional[ThemeName]:
    # Sub-priority is by tag, never by anchor order.
    if any(e.has_tag(ContextTag.RUSHED) for e in events):
        return ThemeName.FOCUS
    if any(e.has_tag(ContextTag.HIGH_ENERGY, ContextTag.WORK) for e in events):
        return ThemeName.FOCUS
    if any(e.has_tag(ContextTag.RELAXED) for e in events):
        return ThemeName.RECOVERY
    if any(e.has_tag(ContextTag.LOW_ENERGY, ContextTag.RECOVERY) for e in events):
        return ThemeName.RECOVERY
    return None


def determine_optimal_theme(context: ThemeContext, config: Optional[ThemeConfig] = None) -> ThemeName:
    """
    Strictly prioritized, first match wins:

    1. Evening hours
    2. Inside today's DND window -> Focus
    3. Next anchor today starts soon and is Work/HighEnergy -> Focus
    4. Active, incomplete task chunk -> theme for its energy tag
    5. Running anchors' tags
    6. Creative
    """
    cfg = config or get_theme_config()
    now = context.current_time

    if now.hour >= cfg.evening_start_hour or now.hour < cfg.evening_end_hour:
        return ThemeName.EVENING

    window = find_dnd_window(context.dnd_windows, weekday_name(now))
    if is_within_dnd(now, window):
        return ThemeName.FOCUS

    next_event = _next_event_today(context.schedule_events, now)
    if next_event is not None:
        minutes_until = time_to_minutes(next_event.start_time) - minute_of_day(now)
        if minutes_until <= cfg.pre_event_window_minutes and next_event.has_tag(ContextTag.WORK, ContextTag.HIGH_ENERGY):
            return ThemeName.FOCUS

    chunk = context.active_chunk
    if chunk is not None and not chunk.is_complete:
        return CHUNK_THEMES.get(chunk.energy_tag, ThemeName.CREATIVE)

    running_theme = _theme_for_running_anchors(context.current_events)
    if running_theme is not None:
        return running_theme

    return ThemeName.CREATIVE
