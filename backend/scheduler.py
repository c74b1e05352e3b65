"""
Weekly Rhythm - Calendar Module
Anchor CRUD, onboarding preview generation and weekly views.
"""

from typing import Optional, List, Dict, Callable, Tuple

from errors import AnchorNotFoundError
from models import (
    BufferMinutes, ContextTag, DAYS_OF_WEEK, DNDWindow, ScheduleEvent, Weekday, WorkBlock,
)
from time_utils import time_to_minutes


ONBOARDING_TITLE = "Work/School"
ONBOARDING_BUFFER = BufferMinutes(prep=15, recovery=15)


# ============================================
# ANCHOR OPERATIONS
# ============================================

def add_anchors(
    anchors: List[ScheduleEvent],
    title: str,
    start_time: str,
    end_time: str,
    days: List[Weekday],
    id_factory: Callable[[Weekday], str]
) -> Tuple[List[ScheduleEvent], List[ScheduleEvent]]:
    """Create one Personal anchor per selected day. Returns (all anchors, new anchors)."""
    created = [
        ScheduleEvent(
            id=id_factory(day),
            day=day,
            title=title,
            start_time=start_time,
            end_time=end_time,
            context_tags=[ContextTag.PERSONAL],
        )
        for day in days
    ]
    return anchors + created, created


def duplicate_anchor(
    anchors: List[ScheduleEvent],
    event_id: str,
    new_id: str
) -> Tuple[List[ScheduleEvent], ScheduleEvent]:
    original = next((a for a in anchors if a.id == event_id), None)
    if original is None:
        raise AnchorNotFoundError(f"Anchor {event_id} not found")

    copy = original.model_copy(deep=True, update={"id": new_id})
    return anchors + [copy], copy


def delete_anchor(anchors: List[ScheduleEvent], event_id: str) -> Tuple[List[ScheduleEvent], ScheduleEvent]:
    """Remove an anchor. Its reminders are left as orphans and drop out of the active view."""
    target = next((a for a in anchors if a.id == event_id), None)
    if target is None:
        raise AnchorNotFoundError(f"Anchor {event_id} not found")
    return [a for a in anchors if a.id != event_id], target


# ============================================
# ONBOARDING
# ============================================

def generate_onboarding_preview(
    work_blocks: List[WorkBlock],
    sleep_start: str,
    sleep_end: str
) -> Tuple[List[ScheduleEvent], List[DNDWindow]]:
    """
    Turn the onboarding answers into anchors and DND windows.

    Incomplete blocks (missing times or no days) are skipped. Sleep becomes
    the DND window for all seven days.
    """
    anchors: List[ScheduleEvent] = []
    for index, block in enumerate(work_blocks):
        if not block.start_time or not block.end_time or not block.days:
            continue
        for day in block.days:
            anchors.append(ScheduleEvent(
                id=f"onboard-work-{index}-{day.value}",
                day=day,
                title=ONBOARDING_TITLE,
                start_time=block.start_time,
                end_time=block.end_time,
                context_tags=[ContextTag.WORK, ContextTag.HIGH_ENERGY],
                buffer_minutes=ONBOARDING_BUFFER.model_copy(),
            ))

    dnd_windows = [
        DNDWindow(day=day, start_time=sleep_start, end_time=sleep_end)
        for day in DAYS_OF_WEEK
    ]
    return anchors, dnd_windows


# ============================================
# VIEWS
# ============================================

def anchors_for_day(anchors: List[ScheduleEvent], day: Weekday) -> List[ScheduleEvent]:
    return sorted(
        (a for a in anchors if a.day == day),
        key=lambda a: time_to_minutes(a.start_time)
    )


def week_view(anchors: List[ScheduleEvent], dnd_windows: Optional[List[DNDWindow]] = None) -> List[Dict]:
    """Anchors grouped per weekday, Monday first, with each day's DND window."""
    windows = {w.day: w for w in dnd_windows or []}
    return [
        {
            "day": day.value,
            "anchors": anchors_for_day(anchors, day),
            "dnd": windows.get(day),
        }
        for day in DAYS_OF_WEEK
    ]
