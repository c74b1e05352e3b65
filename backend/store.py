"""
Weekly Rhythm - State Store
Caller-held owner of the app state. Every mutation is a pure transform applied
by a single assignment and records an undo snapshot taken just before it.
"""

import copy
from datetime import datetime
from typing import Optional, List, Any, Callable, Dict

from conflicts import detect_conflict, move_anchor, resolve_conflict as resolve_move
from dnd import apply_dnd_to_all, update_dnd_window
from errors import (
    ConflictPendingError, InvalidResolutionError, NothingToUndoError, ReminderNotFoundError,
)
from habit_stacking import suggest_habit_stack
from habits import HabitCatalog, HabitTracker
from history import ChangeHistory
from logger import logger
from models import (
    ActiveReminder, AppState, Chunk, Conflict, DropResult, HabitStackSuggestion,
    ParsedReminder, ReminderAction, ReminderActionResult, ResolutionDecision,
    ScheduleEvent, SmartReminder, ThemeContext, ThemeName, UndoEntry, Weekday, WorkBlock,
)
from reminders import apply_reminder_action, build_reminders_from_parsed, get_active_reminders, pause_until_after
from scheduler import add_anchors, delete_anchor, duplicate_anchor, generate_onboarding_preview
from theme_engine import determine_optimal_theme, get_current_events
from time_utils import format_offset

Clock = Callable[[], datetime]


class RhythmStore:
    """
    Holds anchors, reminders, DND windows and the global pause timestamp.

    Usage:
        store = RhythmStore(clock=lambda: datetime(2025, 3, 3, 8, 40))
        result = store.drop_anchor("gym", Weekday.TUESDAY)
        if result.conflict:
            store.resolve_conflict(ResolutionDecision.SHIFT_OVERLAP)
        store.undo()
    """

    def __init__(
        self,
        state: Optional[AppState] = None,
        clock: Clock = datetime.now,
        history: Optional[ChangeHistory] = None,
        habit_tracker: Optional[HabitTracker] = None
    ):
        self.state = state or AppState()
        self.clock = clock
        self.history = history or ChangeHistory()
        self.habit_tracker = habit_tracker or HabitTracker()
        self.pending_conflict: Optional[Conflict] = None

    def _commit(self, updates: Dict[str, Any], message: str) -> UndoEntry:
        previous = {name: copy.deepcopy(getattr(self.state, name)) for name in updates}
        self.state = self.state.model_copy(update=updates)
        entry = self.history.record(message, previous)
        logger.info(message)
        return entry

    def replace_state(self, state: AppState):
        """Swap in a loaded state. Not undoable; clears history and any pending conflict."""
        self.state = state
        self.history.clear()
        self.pending_conflict = None

    # ============================================
    # ANCHOR MOVES & CONFLICTS
    # ============================================

    def drop_anchor(self, event_id: str, target_day: Weekday) -> DropResult:
        """Commit the move right away, or hold a conflict for the user to resolve."""
        if self.pending_conflict is not None:
            raise ConflictPendingError("Resolve the pending conflict before moving another anchor.")

        anchors = self.state.schedule_events
        moving = next((a for a in anchors if a.id == event_id), None)
        if moving is not None and moving.day == target_day:
            return DropResult()

        conflict = detect_conflict(anchors, self.state.dnd_windows, event_id, target_day)
        if conflict is not None:
            self.pending_conflict = conflict
            return DropResult(conflict=conflict)

        updated, message = move_anchor(anchors, event_id, target_day)
        self._commit({"schedule_events": updated}, message)
        return DropResult(moved=True, message=message)

    def resolve_conflict(self, decision: ResolutionDecision) -> DropResult:
        """Apply exactly one resolution; on error nothing changes and the conflict stays."""
        conflict = self.pending_conflict
        if conflict is None:
            raise InvalidResolutionError("No conflict is waiting for a decision.")

        updated, message = resolve_move(self.state.schedule_events, self.state.dnd_windows, conflict, decision)
        self._commit({"schedule_events": updated}, message)
        self.pending_conflict = None
        return DropResult(moved=True, message=message)

    def cancel_conflict(self) -> Optional[Conflict]:
        conflict, self.pending_conflict = self.pending_conflict, None
        return conflict

    # ============================================
    # ANCHOR CRUD
    # ============================================

    def add_anchors(
        self,
        title: str,
        start_time: str,
        end_time: str,
        days: List[Weekday],
        id_factory: Callable[[Weekday], str]
    ) -> List[ScheduleEvent]:
        updated, created = add_anchors(self.state.schedule_events, title, start_time, end_time, days, id_factory)
        day_str = ", ".join(day.value for day in days)
        self._commit({"schedule_events": updated}, f"Anchor '{title}' created for {day_str}.")
        return created

    def duplicate_anchor(self, event_id: str, new_id: str) -> ScheduleEvent:
        updated, copy_ = duplicate_anchor(self.state.schedule_events, event_id, new_id)
        self._commit({"schedule_events": updated}, f'Duplicated "{copy_.title}".')
        return copy_

    def delete_anchor(self, event_id: str) -> ScheduleEvent:
        updated, removed = delete_anchor(self.state.schedule_events, event_id)
        self._commit({"schedule_events": updated}, f'Deleted anchor "{removed.title}"')
        return removed

    def apply_onboarding(self, work_blocks: List[WorkBlock], sleep_start: str, sleep_end: str) -> List[ScheduleEvent]:
        """Add the onboarding anchors (replacing same-id ones) and set DND on every day."""
        new_anchors, dnd_windows = generate_onboarding_preview(work_blocks, sleep_start, sleep_end)
        new_ids = {a.id for a in new_anchors}
        kept = [a for a in self.state.schedule_events if a.id not in new_ids]
        self._commit(
            {"schedule_events": kept + new_anchors, "dnd_windows": dnd_windows},
            f"Set up {len(new_anchors)} anchors and DND from onboarding."
        )
        return new_anchors

    # ============================================
    # REMINDERS
    # ============================================

    def active_reminders(self) -> List[ActiveReminder]:
        return get_active_reminders(self.state, self.clock())

    def apply_reminder_action(self, reminder_id: str, action: ReminderAction) -> ReminderActionResult:
        reminders = self.state.smart_reminders
        target = next((r for r in reminders if r.id == reminder_id), None)
        if target is None:
            raise ReminderNotFoundError(f"Reminder {reminder_id} not found")

        now = self.clock()
        result = apply_reminder_action(
            target,
            action,
            now,
            self.state.dnd_windows,
            habit_recorder=lambda habit_id: self.habit_tracker.record_completion(habit_id, now.date()),
        )

        updated = [result.reminder if r.id == reminder_id else r for r in reminders]
        self._commit({"smart_reminders": updated}, result.message or f"Updated \"{target.message}\".")
        return result

    def add_reminders(self, reminders: List[SmartReminder]) -> List[SmartReminder]:
        if not reminders:
            return []
        first = reminders[0]
        anchor = next((a for a in self.state.schedule_events if a.id == first.event_id), None)
        anchor_title = anchor.title if anchor else "its anchor"
        message = f'Reminder added: "{first.message}" {format_offset(first.offset_minutes)} {anchor_title}.'
        self._commit({"smart_reminders": self.state.smart_reminders + reminders}, message)
        return reminders

    def add_parsed_reminder(
        self,
        parsed: ParsedReminder,
        id_factory: Callable[[ScheduleEvent], str]
    ) -> List[SmartReminder]:
        reminders = build_reminders_from_parsed(parsed, self.state.schedule_events, id_factory)
        return self.add_reminders(reminders)

    # ============================================
    # DND & PAUSE
    # ============================================

    def update_dnd_window(self, day: Weekday, start_time: Optional[str] = None, end_time: Optional[str] = None):
        updated = update_dnd_window(self.state.dnd_windows, day, start_time, end_time)
        self._commit({"dnd_windows": updated}, "DND times updated.")
        return updated

    def apply_dnd_to_all(self):
        updated = apply_dnd_to_all(self.state.dnd_windows)
        self._commit({"dnd_windows": updated}, "Applied Monday's DND to all days.")
        return updated

    def set_pause(self, minutes: int) -> datetime:
        until = pause_until_after(self.clock(), minutes)
        self._commit({"pause_until": until}, f"Reminders paused until {until:%H:%M}.")
        return until

    def clear_pause(self):
        self._commit({"pause_until": None}, "Reminders resumed.")

    # ============================================
    # DERIVED VIEWS
    # ============================================

    def current_theme(self, active_chunk: Optional[Chunk] = None) -> ThemeName:
        now = self.clock()
        context = ThemeContext(
            active_chunk=active_chunk,
            current_events=get_current_events(self.state.schedule_events, now),
            schedule_events=self.state.schedule_events,
            current_time=now,
            dnd_windows=self.state.dnd_windows,
        )
        return determine_optimal_theme(context)

    def habit_suggestion(self, catalog: HabitCatalog) -> Optional[HabitStackSuggestion]:
        return suggest_habit_stack(self.state.schedule_events, self.state.smart_reminders, catalog)

    # ============================================
    # UNDO
    # ============================================

    def undo(self, entry_id: Optional[int] = None) -> UndoEntry:
        """Restore the collections captured by the newest (or given) entry."""
        entry = self.history.pop(entry_id)
        if entry is None:
            raise NothingToUndoError("Nothing to undo.")

        self.state = self.state.model_copy(update=copy.deepcopy(entry.snapshot))
        logger.info(f"Undid: {entry.message}")
        return entry
