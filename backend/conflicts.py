"""
Weekly Rhythm - Anchor Move Conflicts
Detects DND and overlap conflicts when an anchor is dropped on another day,
commits moves, and applies the user's chosen resolution.
"""

from typing import Optional, List, Tuple

from dnd import find_dnd_window
from errors import AnchorNotFoundError, InvalidResolutionError
from logger import get_logger
from models import (
    Conflict, ConflictType, DNDWindow, ResolutionDecision, ScheduleEvent, Weekday,
)
from time_utils import (
    MINUTES_PER_DAY, duration_minutes, format_time_for_display, minutes_to_time, overlaps, time_to_minutes,
)

logger = get_logger(__name__)


def _find_anchor(anchors: List[ScheduleEvent], event_id: str) -> ScheduleEvent:
    anchor = next((a for a in anchors if a.id == event_id), None)
    if anchor is None:
        raise AnchorNotFoundError(f"Anchor {event_id} not found")
    return anchor


def detect_conflict(
    anchors: List[ScheduleEvent],
    dnd_windows: List[DNDWindow],
    event_id: str,
    target_day: Weekday
) -> Optional[Conflict]:
    """
    Check a drop of ``event_id`` onto ``target_day`` at its current times.

    DND overlap wins over anchor overlap; for overlaps the first anchor found in
    calendar order is referenced.
    """
    moving = _find_anchor(anchors, event_id)

    dnd = find_dnd_window(dnd_windows, target_day)
    # Raw same-day minutes, so an overnight window (end before start) never flags a drop.
    if dnd and overlaps(moving.start_time, moving.end_time, dnd.start_time, dnd.end_time):
        logger.debug(f"Moving {moving.title} to {target_day.value} overlaps DND")
        return Conflict(type=ConflictType.DND, event_to_move_id=event_id, target_day=target_day)

    overlapping = next(
        (
            a for a in anchors
            if a.day == target_day
            and a.id != event_id
            and overlaps(moving.start_time, moving.end_time, a.start_time, a.end_time)
        ),
        None
    )
    if overlapping:
        logger.debug(f"Moving {moving.title} to {target_day.value} overlaps {overlapping.title}")
        return Conflict(
            type=ConflictType.OVERLAP,
            event_to_move_id=event_id,
            target_day=target_day,
            overlapping_event_id=overlapping.id,
        )

    return None


def move_anchor(
    anchors: List[ScheduleEvent],
    event_id: str,
    target_day: Weekday,
    new_start_time: Optional[str] = None
) -> Tuple[List[ScheduleEvent], str]:
    """
    Move an anchor to ``target_day``, optionally to a new start time.

    Duration is preserved and the end time recomputed. Anchors never cross
    midnight, so a start that would push the end to or past midnight is rejected.

    Returns:
        (new anchor list, history message)

    Raises:
        InvalidResolutionError: the moved anchor would end after midnight
    """
    moving = _find_anchor(anchors, event_id)

    start_time = new_start_time or moving.start_time
    duration = duration_minutes(moving.start_time, moving.end_time)
    end_minutes = time_to_minutes(start_time) + duration
    if end_minutes >= MINUTES_PER_DAY:
        raise InvalidResolutionError(
            f'"{moving.title}" would run past midnight if it started at {format_time_for_display(start_time)}.'
        )
    end_time = minutes_to_time(end_minutes)

    moved = moving.model_copy(update={"day": target_day, "start_time": start_time, "end_time": end_time})
    updated = [moved if a.id == event_id else a for a in anchors]

    time_str = f"{format_time_for_display(start_time)}-{format_time_for_display(end_time)}"
    return updated, f'Moved "{moving.title}" to {target_day.value}, {time_str}.'


def resolve_conflict(
    anchors: List[ScheduleEvent],
    dnd_windows: List[DNDWindow],
    conflict: Conflict,
    decision: ResolutionDecision
) -> Tuple[List[ScheduleEvent], str]:
    """
    Commit a conflicted move according to the user's decision.

    keep_overlap  - move as requested
    shift_overlap - start where the overlapping anchor ends
    shift_dnd     - start where the target day's DND ends (dnd conflicts only)

    Raises:
        InvalidResolutionError: decision does not apply to this conflict
        AnchorNotFoundError: an anchor the conflict references is gone
    """
    if decision == ResolutionDecision.KEEP_OVERLAP:
        return move_anchor(anchors, conflict.event_to_move_id, conflict.target_day)

    if decision == ResolutionDecision.SHIFT_OVERLAP:
        if not conflict.overlapping_event_id:
            raise InvalidResolutionError("There is no overlapping anchor to shift after.")
        overlapping = _find_anchor(anchors, conflict.overlapping_event_id)
        new_start = minutes_to_time(time_to_minutes(overlapping.end_time))
        return move_anchor(anchors, conflict.event_to_move_id, conflict.target_day, new_start)

    if decision == ResolutionDecision.SHIFT_DND:
        if conflict.type != ConflictType.DND:
            raise InvalidResolutionError("Shifting past DND only applies to DND conflicts.")
        dnd = find_dnd_window(dnd_windows, conflict.target_day)
        if dnd is None or not dnd.end_time:
            raise InvalidResolutionError(f"{conflict.target_day.value} has no DND window to shift past.")
        return move_anchor(anchors, conflict.event_to_move_id, conflict.target_day, dnd.end_time)

    raise InvalidResolutionError(f"Unknown resolution: {decision}")
