"""
Weekly Rhythm - Smart Reminder Scheduler
Derives the active reminder view from a state snapshot and applies reminder actions.

Both entry points are pure: they read an explicit snapshot plus "now" and return
new values. Nothing here is stored between calls.
"""

from datetime import datetime, timedelta
from typing import Optional, List, Dict, Callable, Iterable

from config import get_reminder_config, ReminderConfig
from dnd import DND_SHIFTED, find_dnd_window, shift_trigger
from errors import InvalidReminderActionError, ReminderValidationError
from logger import get_logger
from models import (
    ActiveReminder, AppState, DNDWindow, ParsedReminder, ReminderAction,
    ReminderActionKind, ReminderActionResult, ReminderStatus, ScheduleEvent,
    SmartReminder, SuccessState,
)
from time_utils import at_time_on, weekday_name

logger = get_logger(__name__)

# Statuses that stay in the active view; Done and Ignored are history only.
VISIBLE_STATUSES = {ReminderStatus.ACTIVE, ReminderStatus.SNOOZED, ReminderStatus.PAUSED}
DEFERRED_STATUSES = {ReminderStatus.SNOOZED, ReminderStatus.PAUSED}

HabitRecorder = Callable[[str], int]


# ============================================
# GLOBAL PAUSE
# ============================================

def is_paused(pause_until: Optional[datetime], now: datetime) -> bool:
    return pause_until is not None and now < pause_until


def pause_until_after(now: datetime, minutes: int) -> datetime:
    return now + timedelta(minutes=minutes)


# ============================================
# ACTIVE REMINDER VIEW
# ============================================

def get_active_reminders(state: AppState, now: datetime) -> List[ActiveReminder]:
    """
    Compute the reminders that are currently relevant, ordered by trigger time.

    Steps:
        1. Global pause gate
        2. Keep Active, Snoozed and Paused reminders
        3. Resolve each anchor by id, dropping orphans
        4. Nominal trigger = anchor start today + offset
        5. Snoozed/Paused use snoozed_until instead
        6. Active reminders whose trigger already passed are dropped
        7. Triggers inside today's DND occurrence move to its end
        8. Sort ascending by effective trigger

    Returns:
        List of ActiveReminder (recomputed on every call, never persisted)
    """
    if is_paused(state.pause_until, now):
        return []

    anchors: Dict[str, ScheduleEvent] = {e.id: e for e in state.schedule_events}
    dnd_window = find_dnd_window(state.dnd_windows, weekday_name(now))

    active: List[ActiveReminder] = []
    for reminder in state.smart_reminders:
        if reminder.status not in VISIBLE_STATUSES:
            continue

        event = anchors.get(reminder.event_id)
        if event is None:
            logger.debug(f"Dropping orphan reminder {reminder.id} (anchor {reminder.event_id} missing)")
            continue

        trigger = at_time_on(now, event.start_time) + timedelta(minutes=reminder.offset_minutes)
        deferred = reminder.status in DEFERRED_STATUSES
        if deferred and reminder.snoozed_until:
            trigger = reminder.snoozed_until

        if trigger < now and not deferred:
            continue

        trigger, shifted = shift_trigger(trigger, dnd_window, now)

        active.append(ActiveReminder(
            reminder=reminder,
            event=event,
            trigger_time=trigger,
            shifted_reason=DND_SHIFTED if shifted else None,
        ))

    active.sort(key=lambda item: item.trigger_time)
    return active


# ============================================
# REMINDER ACTIONS
# ============================================

def _later_time(now: datetime, dnd_windows: List[DNDWindow], cfg: ReminderConfig) -> datetime:
    """Push a few hours ahead without running into tonight's DND."""
    later = now + timedelta(hours=cfg.later_default_hours)

    window = find_dnd_window(dnd_windows, weekday_name(now))
    if window and window.start_time:
        dnd_start = at_time_on(now, window.start_time)
        if dnd_start < now:
            dnd_start += timedelta(days=1)
        dnd_cap = dnd_start - timedelta(minutes=cfg.later_dnd_margin_minutes)
        if later > dnd_cap:
            later = dnd_cap

    if later <= now:
        later = now + timedelta(hours=cfg.later_fallback_hours)
    return later


def apply_reminder_action(
    reminder: SmartReminder,
    action: ReminderAction,
    now: datetime,
    dnd_windows: Iterable[DNDWindow] = (),
    habit_recorder: Optional[HabitRecorder] = None,
    config: Optional[ReminderConfig] = None
) -> ReminderActionResult:
    """
    Apply one reminder action and return the updated reminder with a history message.

    Every status transition except pause appends exactly one outcome to
    success_history. toggle_lock never touches the history.

    Raises:
        InvalidReminderActionError: snooze without positive minutes, or
            revert_exploration on a reminder that is not exploratory
    """
    cfg = config or get_reminder_config()
    kind = action.kind
    label = reminder.message

    if kind == ReminderActionKind.DONE:
        updated = reminder.model_copy(update={
            "status": ReminderStatus.DONE,
            "success_history": reminder.success_history + [SuccessState.SUCCESS],
            "last_interaction": now,
        })
        message = f'Completed "{label}".'
        if reminder.is_stacked_habit and reminder.habit_id and habit_recorder:
            streak = habit_recorder(reminder.habit_id)
            message += f" Streak: {streak}!"
        return ReminderActionResult(reminder=updated, message=message)

    if kind == ReminderActionKind.SNOOZE:
        minutes = action.minutes
        if minutes is None or minutes <= 0:
            raise InvalidReminderActionError("Snooze needs a positive number of minutes.")
        updated = reminder.model_copy(update={
            "status": ReminderStatus.SNOOZED,
            "snoozed_until": now + timedelta(minutes=minutes),
            "snooze_history": reminder.snooze_history + [minutes],
            "success_history": reminder.success_history + [SuccessState.SNOOZED],
            "last_interaction": now,
        })
        return ReminderActionResult(reminder=updated, message=f'Snoozed "{label}" for {minutes}m.')

    if kind == ReminderActionKind.PAUSE:
        resume_at = at_time_on(now + timedelta(days=1), f"{cfg.pause_resume_hour:02d}:00")
        updated = reminder.model_copy(update={
            "status": ReminderStatus.PAUSED,
            "snoozed_until": resume_at,
        })
        return ReminderActionResult(reminder=updated, message=f'Paused "{label}" until tomorrow.')

    if kind == ReminderActionKind.IGNORE:
        updated = reminder.model_copy(update={
            "status": ReminderStatus.IGNORED,
            "success_history": reminder.success_history + [SuccessState.IGNORED],
            "last_interaction": now,
        })
        return ReminderActionResult(reminder=updated, message=f'Ignored "{label}".')

    if kind == ReminderActionKind.LATER:
        updated = reminder.model_copy(update={
            "status": ReminderStatus.SNOOZED,
            "snoozed_until": _later_time(now, list(dnd_windows), cfg),
            "success_history": reminder.success_history + [SuccessState.SNOOZED],
            "last_interaction": now,
        })
        return ReminderActionResult(reminder=updated, message=f'Rescheduled "{label}" for later.')

    if kind == ReminderActionKind.TOGGLE_LOCK:
        locked = not reminder.is_locked
        updated = reminder.model_copy(update={
            "is_locked": locked,
            "allow_exploration": not locked,
        })
        return ReminderActionResult(
            reminder=updated,
            message=f'{"Locked" if locked else "Unlocked"} "{label}".'
        )

    if kind == ReminderActionKind.REVERT_EXPLORATION:
        if not reminder.is_exploratory or reminder.original_offset_minutes is None:
            raise InvalidReminderActionError(f'"{label}" has no exploratory time to revert.')
        updated = reminder.model_copy(update={
            "offset_minutes": reminder.original_offset_minutes,
            "original_offset_minutes": None,
            "is_exploratory": False,
        })
        return ReminderActionResult(reminder=updated, message=f'Reverted exploratory time for "{label}".')

    raise InvalidReminderActionError(f"Unknown reminder action: {kind}")


# ============================================
# REMINDER CREATION
# ============================================

def build_reminders_from_parsed(
    parsed: ParsedReminder,
    anchors: List[ScheduleEvent],
    id_factory: Callable[[ScheduleEvent], str]
) -> List[SmartReminder]:
    """
    One Active reminder per anchor carrying the parsed title (an anchor
    repeated on several weekdays gets one reminder for each day).

    Raises:
        ReminderValidationError: no anchor has that title
    """
    matching = [a for a in anchors if a.title == parsed.anchor_title]
    if not matching:
        raise ReminderValidationError(
            f'I couldn\'t find an anchor named "{parsed.anchor_title}". '
            "Please check the name and try again."
        )

    return [
        SmartReminder(
            id=id_factory(anchor),
            event_id=anchor.id,
            offset_minutes=parsed.offset_minutes,
            message=parsed.message,
            why=parsed.why,
        )
        for anchor in matching
    ]
