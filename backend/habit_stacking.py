"""
Weekly Rhythm - Habit Stacking Eligibility
Finds an anchor whose reminders have proven reliable enough to carry a new habit.
"""

from typing import Optional, List

from config import get_habit_config, HabitConfig
from habits import HabitCatalog
from models import EnergyTag, HabitStackSuggestion, ScheduleEvent, SmartReminder, SuccessState


def success_ratio(reminder: SmartReminder) -> float:
    history = reminder.success_history
    if not history:
        return 0.0
    return sum(1 for outcome in history if outcome == SuccessState.SUCCESS) / len(history)


def find_habit_stack_anchor(
    anchors: List[ScheduleEvent],
    reminders: List[SmartReminder],
    config: Optional[HabitConfig] = None
) -> Optional[ScheduleEvent]:
    """
    First anchor, in calendar order, where every reminder is proven and no
    recently stacked habit is still unproven.
    """
    cfg = config or get_habit_config()

    def proven(reminder: SmartReminder) -> bool:
        return (
            len(reminder.success_history) >= cfg.min_history_length
            and success_ratio(reminder) >= cfg.min_success_ratio
        )

    for anchor in anchors:
        attached = [r for r in reminders if r.event_id == anchor.id]
        if not attached or not all(proven(r) for r in attached):
            continue
        has_new_stacked_habit = any(
            r.is_stacked_habit and len(r.success_history) < cfg.min_history_length
            for r in attached
        )
        if not has_new_stacked_habit:
            return anchor

    return None


def suggest_habit_stack(
    anchors: List[ScheduleEvent],
    reminders: List[SmartReminder],
    catalog: HabitCatalog,
    config: Optional[HabitConfig] = None
) -> Optional[HabitStackSuggestion]:
    """Pair the eligible anchor with a catalog habit; Admin is the neutral transition context."""
    anchor = find_habit_stack_anchor(anchors, reminders, config)
    if anchor is None:
        return None

    habit = catalog.suggest(EnergyTag.ADMIN)
    if habit is None:
        return None

    return HabitStackSuggestion(
        anchor=anchor,
        reason=f'You\'ve built a solid routine around "{anchor.title}". This is a great time to stack a new habit!',
        habit=habit,
    )
