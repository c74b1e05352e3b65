import unittest
from datetime import timedelta

from dnd import DND_SHIFTED
from factories import WORK, anchor, at, dnd, reminder
from models import AppState, ReminderStatus, Weekday
from reminders import get_active_reminders, is_paused


class TestActiveReminders(unittest.TestCase):
    def test_trigger_is_anchor_start_plus_offset(self) -> None:
        state = AppState(
            schedule_events=[anchor(tags=[WORK])],
            smart_reminders=[reminder(offset=-10)],
        )
        active = get_active_reminders(state, at(8, 40))
        self.assertEqual(len(active), 1)
        self.assertEqual(active[0].trigger_time, at(8, 50))
        self.assertIsNone(active[0].shifted_reason)
        self.assertEqual(active[0].event.id, "a1")

    def test_overnight_dnd_moves_trigger_to_next_morning(self) -> None:
        state = AppState(
            schedule_events=[anchor(start="23:30", end="23:45")],
            smart_reminders=[reminder(offset=0)],
            dnd_windows=[dnd(Weekday.MONDAY, "23:00", "07:00")],
        )
        active = get_active_reminders(state, at(22))
        self.assertEqual(active[0].trigger_time, at(7, days=1))
        self.assertEqual(active[0].shifted_reason, DND_SHIFTED)

    def test_dnd_without_times_is_ignored(self) -> None:
        state = AppState(
            schedule_events=[anchor()],
            smart_reminders=[reminder()],
            dnd_windows=[dnd(Weekday.MONDAY, "", "")],
        )
        self.assertIsNone(get_active_reminders(state, at(8))[0].shifted_reason)

    def test_global_pause_hides_everything(self) -> None:
        state = AppState(
            schedule_events=[anchor()],
            smart_reminders=[reminder()],
            pause_until=at(9),
        )
        self.assertEqual(get_active_reminders(state, at(8)), [])
        self.assertEqual(get_active_reminders(state, at(8, 59) + timedelta(seconds=59)), [])

    def test_expired_pause_does_not_gate(self) -> None:
        state = AppState(
            schedule_events=[anchor(start="12:00", end="13:00")],
            smart_reminders=[reminder()],
            pause_until=at(8),
        )
        self.assertFalse(is_paused(state.pause_until, at(9)))
        self.assertEqual(len(get_active_reminders(state, at(9))), 1)

    def test_done_and_ignored_are_excluded(self) -> None:
        state = AppState(
            schedule_events=[anchor()],
            smart_reminders=[
                reminder("done", status=ReminderStatus.DONE),
                reminder("ignored", status=ReminderStatus.IGNORED),
                reminder("active"),
            ],
        )
        ids = [item.reminder.id for item in get_active_reminders(state, at(8))]
        self.assertEqual(ids, ["active"])

    def test_orphan_reminders_are_dropped(self) -> None:
        state = AppState(
            schedule_events=[anchor()],
            smart_reminders=[reminder("orphan", event_id="gone"), reminder("kept")],
        )
        ids = [item.reminder.id for item in get_active_reminders(state, at(8))]
        self.assertEqual(ids, ["kept"])

    def test_passed_active_reminder_is_dropped(self) -> None:
        state = AppState(
            schedule_events=[anchor(start="08:00", end="09:00")],
            smart_reminders=[reminder(offset=0)],
        )
        self.assertEqual(get_active_reminders(state, at(8, 40)), [])

    def test_snoozed_reminder_stays_after_its_time(self) -> None:
        state = AppState(
            schedule_events=[anchor(start="08:00", end="09:00")],
            smart_reminders=[reminder(status=ReminderStatus.SNOOZED, snoozed_until=at(8, 35))],
        )
        active = get_active_reminders(state, at(8, 40))
        self.assertEqual(len(active), 1)
        self.assertEqual(active[0].trigger_time, at(8, 35))

    def test_paused_reminder_uses_resume_time(self) -> None:
        state = AppState(
            schedule_events=[anchor()],
            smart_reminders=[reminder(status=ReminderStatus.PAUSED, snoozed_until=at(9, days=1))],
        )
        self.assertEqual(get_active_reminders(state, at(8))[0].trigger_time, at(9, days=1))

    def test_sorted_by_trigger_time(self) -> None:
        state = AppState(
            schedule_events=[
                anchor("late", start="15:00", end="16:00"),
                anchor("early", start="10:00", end="11:00"),
            ],
            smart_reminders=[
                reminder("r-late", event_id="late", offset=-5),
                reminder("r-early-after", event_id="early", offset=15),
                reminder("r-early", event_id="early", offset=-30),
                reminder("r-snoozed", event_id="late", status=ReminderStatus.SNOOZED, snoozed_until=at(9)),
            ],
        )
        active = get_active_reminders(state, at(8))
        self.assertEqual(
            [item.reminder.id for item in active],
            ["r-snoozed", "r-early", "r-early-after", "r-late"],
        )
        triggers = [item.trigger_time for item in active]
        self.assertEqual(triggers, sorted(triggers))

    def test_state_is_not_mutated(self) -> None:
        state = AppState(
            schedule_events=[anchor(start="23:30", end="23:45")],
            smart_reminders=[reminder(offset=0)],
            dnd_windows=[dnd(Weekday.MONDAY, "23:00", "07:00")],
        )
        before = state.model_copy(deep=True)
        get_active_reminders(state, at(22))
        self.assertEqual(state, before)


if __name__ == "__main__":
    unittest.main()
