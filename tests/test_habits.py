import unittest
from datetime import date

from config import HabitConfig
from factories import anchor, reminder
from habit_stacking import find_habit_stack_anchor, success_ratio, suggest_habit_stack
from habits import HabitCatalog, HabitTracker
from models import EnergyTag, MicroHabit, SuccessState, Weekday

S, Z, I = SuccessState.SUCCESS, SuccessState.SNOOZED, SuccessState.IGNORED
CONFIG = HabitConfig()


class TestHabitStacking(unittest.TestCase):
    def setUp(self) -> None:
        self.anchors = [
            anchor("gym", Weekday.MONDAY, title="Gym"),
            anchor("read", Weekday.TUESDAY, title="Reading"),
        ]

    def test_success_ratio(self) -> None:
        self.assertEqual(success_ratio(reminder(success_history=[S, S, S, Z])), 0.75)
        self.assertEqual(success_ratio(reminder()), 0.0)

    def test_proven_anchor_is_eligible(self) -> None:
        reminders = [reminder(event_id="gym", success_history=[S, S, S, Z])]
        self.assertEqual(find_habit_stack_anchor(self.anchors, reminders, CONFIG).id, "gym")

    def test_low_ratio_is_not_eligible(self) -> None:
        reminders = [reminder(event_id="gym", success_history=[S, S, Z, I])]
        self.assertIsNone(find_habit_stack_anchor(self.anchors, reminders, CONFIG))

    def test_short_history_is_not_eligible(self) -> None:
        reminders = [reminder(event_id="gym", success_history=[S, S])]
        self.assertIsNone(find_habit_stack_anchor(self.anchors, reminders, CONFIG))

    def test_anchor_without_reminders_is_not_eligible(self) -> None:
        self.assertIsNone(find_habit_stack_anchor(self.anchors, [], CONFIG))

    def test_every_reminder_must_be_proven(self) -> None:
        reminders = [
            reminder("r1", event_id="gym", success_history=[S, S, S]),
            reminder("r2", event_id="gym", success_history=[S, I, I]),
        ]
        self.assertIsNone(find_habit_stack_anchor(self.anchors, reminders, CONFIG))

    def test_new_stacked_habit_blocks_anchor(self) -> None:
        reminders = [
            reminder("r1", event_id="gym", success_history=[S, S, S]),
            reminder("habit", event_id="gym", is_stacked_habit=True, habit_id="habit-desk-reset", success_history=[S]),
            reminder("r3", event_id="read", success_history=[S, S, S, S]),
        ]
        self.assertEqual(find_habit_stack_anchor(self.anchors, reminders, CONFIG).id, "read")

    def test_suggestion_pairs_anchor_with_admin_habit(self) -> None:
        reminders = [reminder(event_id="gym", success_history=[S, S, S])]
        suggestion = suggest_habit_stack(self.anchors, reminders, HabitCatalog(), CONFIG)
        self.assertEqual(suggestion.anchor.id, "gym")
        self.assertEqual(suggestion.habit.energy_tag, EnergyTag.ADMIN)
        self.assertIn('"Gym"', suggestion.reason)

    def test_no_suggestion_without_catalog_match(self) -> None:
        reminders = [reminder(event_id="gym", success_history=[S, S, S])]
        self.assertIsNone(suggest_habit_stack(self.anchors, reminders, HabitCatalog([]), CONFIG))


class TestHabitCatalog(unittest.TestCase):
    def test_rotates_through_matching_habits(self) -> None:
        catalog = HabitCatalog()
        picks = [catalog.suggest(EnergyTag.ADMIN).id for _ in range(3)]
        self.assertEqual(picks, ["habit-inbox-zero", "habit-desk-reset", "habit-inbox-zero"])

    def test_lookup(self) -> None:
        habit = MicroHabit(id="h", title="Water", energy_tag=EnergyTag.OTHER)
        catalog = HabitCatalog([habit])
        self.assertEqual(catalog.get("h"), habit)
        self.assertIsNone(catalog.get("missing"))
        self.assertIsNone(catalog.suggest(EnergyTag.SOCIAL))


class TestHabitTracker(unittest.TestCase):
    def test_streaks(self) -> None:
        tracker = HabitTracker()
        self.assertEqual(tracker.record_completion("h", date(2025, 3, 3)), 1)
        self.assertEqual(tracker.record_completion("h", date(2025, 3, 3)), 1)
        self.assertEqual(tracker.record_completion("h", date(2025, 3, 4)), 2)
        self.assertEqual(tracker.record_completion("h", date(2025, 3, 6)), 1)

        streak = tracker.get_streak("h")
        self.assertEqual(streak.current_streak, 1)
        self.assertEqual(streak.longest_streak, 2)
        self.assertEqual(streak.last_completed, date(2025, 3, 6))

    def test_unknown_habit_has_empty_streak(self) -> None:
        self.assertEqual(HabitTracker().get_streak("x").current_streak, 0)


if __name__ == "__main__":
    unittest.main()
