"""
Weekly Rhythm - Micro-Habit Catalog and Streaks
Built-in habit catalog keyed by energy context, and per-habit daily streak tracking.
"""

from datetime import date
from typing import Optional, List, Dict, Iterable

from pydantic import BaseModel

from models import EnergyTag, MicroHabit


# ============================================
# CATALOG
# ============================================

DEFAULT_HABITS: List[MicroHabit] = [
    MicroHabit(
        id="habit-inbox-zero",
        title="Two-minute inbox sweep",
        description="Archive or answer anything that takes under two minutes.",
        energy_tag=EnergyTag.ADMIN,
    ),
    MicroHabit(
        id="habit-desk-reset",
        title="Desk reset",
        description="Clear the desk and set out what the next block needs.",
        energy_tag=EnergyTag.ADMIN,
    ),
    MicroHabit(
        id="habit-stretch",
        title="Standing stretch",
        description="One minute of stretching before sitting back down.",
        energy_tag=EnergyTag.TEDIOUS,
    ),
    MicroHabit(
        id="habit-idea-note",
        title="Capture one idea",
        description="Write down one idea from the session you just finished.",
        energy_tag=EnergyTag.CREATIVE,
    ),
    MicroHabit(
        id="habit-check-in",
        title="Quick check-in message",
        description="Send one short message to someone you care about.",
        energy_tag=EnergyTag.SOCIAL,
    ),
    MicroHabit(
        id="habit-bag-pack",
        title="Pack the bag",
        description="Put keys, wallet and charger by the door.",
        energy_tag=EnergyTag.ERRAND,
    ),
]


class HabitCatalog:
    """Looks up a micro-habit that fits the energy context just completed."""

    def __init__(self, habits: Optional[Iterable[MicroHabit]] = None):
        self._habits = list(habits if habits is not None else DEFAULT_HABITS)
        self._offered: Dict[EnergyTag, int] = {}

    def suggest(self, energy_tag: EnergyTag) -> Optional[MicroHabit]:
        """Rotate through the habits for this context; None when the catalog has none."""
        matching = [h for h in self._habits if h.energy_tag == energy_tag]
        if not matching:
            return None
        index = self._offered.get(energy_tag, 0)
        self._offered[energy_tag] = index + 1
        return matching[index % len(matching)]

    def get(self, habit_id: str) -> Optional[MicroHabit]:
        return next((h for h in self._habits if h.id == habit_id), None)


# ============================================
# STREAKS
# ============================================

class HabitStreak(BaseModel):
    habit_id: str
    current_streak: int = 0
    longest_streak: int = 0
    last_completed: Optional[date] = None


class HabitTracker:
    """Per-habit daily streaks: consecutive days extend, same day keeps, a gap resets."""

    def __init__(self):
        self._streaks: Dict[str, HabitStreak] = {}

    def record_completion(self, habit_id: str, today: Optional[date] = None) -> int:
        """Record a completion and return the new streak count."""
        today = today or date.today()
        streak = self._streaks.get(habit_id) or HabitStreak(habit_id=habit_id)

        if streak.last_completed == today:
            return streak.current_streak

        if streak.last_completed is not None and (today - streak.last_completed).days == 1:
            current = streak.current_streak + 1
        else:
            current = 1

        self._streaks[habit_id] = streak.model_copy(update={
            "current_streak": current,
            "longest_streak": max(streak.longest_streak, current),
            "last_completed": today,
        })
        return current

    def get_streak(self, habit_id: str) -> HabitStreak:
        return self._streaks.get(habit_id) or HabitStreak(habit_id=habit_id)
