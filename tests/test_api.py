import os
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

import main
from config import reload_config
from factories import WORK, anchor, at, dnd, reminder
from history import ChangeHistory
from models import AppState, ParsedReminder, Weekday
from settings_manager import SettingsManager
from store import RhythmStore


class ApiTestCase(unittest.TestCase):
    now = at(8, 40)

    def setUp(self) -> None:
        state = AppState(
            schedule_events=[
                anchor("A", Weekday.MONDAY, "09:00", "10:00", tags=[WORK], title="Deep work"),
                anchor("B", Weekday.TUESDAY, "09:30", "10:30", title="Standup"),
            ],
            smart_reminders=[reminder("r1", event_id="A", offset=-10, message="Grab coffee")],
            dnd_windows=[dnd(Weekday.MONDAY, "23:00", "07:00")],
        )
        self.store = RhythmStore(state, clock=lambda: self.now, history=ChangeHistory(max_entries=5))
        patcher = mock.patch.object(main, "store", self.store)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(main.app)


class TestHealthAndState(ApiTestCase):
    def test_health(self) -> None:
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["storage"], "memory")

    def test_state_and_week(self) -> None:
        self.assertEqual(len(self.client.get("/api/state").json()["schedule_events"]), 2)
        week = self.client.get("/api/anchors/week").json()
        self.assertEqual(week[0]["day"], "Monday")
        self.assertEqual([a["id"] for a in week[0]["anchors"]], ["A"])
        self.assertEqual(week[0]["dnd"]["start_time"], "23:00")

    def test_sync_requires_storage(self) -> None:
        self.assertEqual(self.client.post("/api/sync").status_code, 400)


class TestAnchorRoutes(ApiTestCase):
    def test_move_with_conflict_then_resolve(self) -> None:
        response = self.client.post("/api/anchors/A/move", json={"target_day": "Tuesday"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["moved"])
        self.assertEqual(body["conflict"]["type"], "overlap")
        self.assertEqual(body["conflict"]["overlapping_event_id"], "B")
        self.assertEqual(self.client.get("/api/conflicts/pending").json()["event_to_move_id"], "A")

        resolved = self.client.post("/api/conflicts/resolve", json={"decision": "shift_overlap"})
        self.assertEqual(resolved.status_code, 200)
        self.assertEqual(resolved.json()["message"], 'Moved "Deep work" to Tuesday, 10:30 AM-11:30 AM.')

        moved = next(a for a in self.client.get("/api/anchors").json() if a["id"] == "A")
        self.assertEqual((moved["day"], moved["start_time"], moved["end_time"]), ("Tuesday", "10:30", "11:30"))

    def test_invalid_resolution_is_409(self) -> None:
        self.client.post("/api/anchors/A/move", json={"target_day": "Tuesday"})
        response = self.client.post("/api/conflicts/resolve", json={"decision": "shift_dnd"})
        self.assertEqual(response.status_code, 409)
        self.assertIsNotNone(self.store.pending_conflict)

    def test_unknown_anchor_is_404(self) -> None:
        response = self.client.post("/api/anchors/nope/move", json={"target_day": "Friday"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Anchor nope not found")

    def test_create_requires_days(self) -> None:
        response = self.client.post(
            "/api/anchors", json={"title": "Gym", "start_time": "18:00", "end_time": "19:00", "days": []}
        )
        self.assertEqual(response.status_code, 400)

    def test_create_and_delete(self) -> None:
        created = self.client.post(
            "/api/anchors",
            json={"title": "Gym", "start_time": "18:00", "end_time": "19:00", "days": ["Monday", "Friday"]},
        ).json()
        self.assertEqual([a["day"] for a in created], ["Monday", "Friday"])
        self.assertEqual(created[0]["context_tags"], ["Personal"])

        deleted = self.client.delete(f"/api/anchors/{created[0]['id']}")
        self.assertEqual(deleted.json()["title"], "Gym")
        self.assertEqual(len(self.store.state.schedule_events), 3)


class TestReminderRoutes(ApiTestCase):
    def test_active_reminders(self) -> None:
        active = self.client.get("/api/reminders/active").json()
        self.assertEqual(len(active), 1)
        self.assertEqual(active[0]["trigger_time"], "2025-03-03T08:50:00")
        self.assertIsNone(active[0]["shifted_reason"])

    def test_snooze_action(self) -> None:
        response = self.client.post("/api/reminders/r1/actions", json={"kind": "snooze", "minutes": 10})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["reminder"]["status"], "Snoozed")
        self.assertEqual(body["message"], 'Snoozed "Grab coffee" for 10m.')

    def test_invalid_action_is_409(self) -> None:
        response = self.client.post("/api/reminders/r1/actions", json={"kind": "revert_exploration"})
        self.assertEqual(response.status_code, 409)

    def test_unknown_reminder_is_404(self) -> None:
        response = self.client.post("/api/reminders/zzz/actions", json={"kind": "done"})
        self.assertEqual(response.status_code, 404)

    def test_create_for_missing_anchor(self) -> None:
        response = self.client.post("/api/reminders", json={"event_id": "nope", "message": "x"})
        self.assertEqual(response.status_code, 404)

    def test_parse_creates_reminders(self) -> None:
        parsed = ParsedReminder(anchor_title="Standup", offset_minutes=-5, message="Open notes")
        with mock.patch("main.parse_reminder", return_value=parsed) as parse:
            response = self.client.post("/api/reminders/parse", json={"text": "open notes 5 minutes before standup"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[0]["event_id"], "B")
        self.assertEqual(parse.call_args[0][1], ["Deep work", "Standup"])

    def test_parse_runs_off_loop_and_commits_on_loop(self) -> None:
        parsed = ParsedReminder(anchor_title="Standup", offset_minutes=-5, message="Open notes")
        threads = {}
        add_parsed = self.store.add_parsed_reminder

        def parse(text, titles):
            threads["parse"] = threading.get_ident()
            return parsed

        def add(*args):
            threads["store"] = threading.get_ident()
            return add_parsed(*args)

        with mock.patch("main.parse_reminder", side_effect=parse), \
                mock.patch.object(self.store, "add_parsed_reminder", side_effect=add):
            response = self.client.post("/api/reminders/parse", json={"text": "open notes before standup"})

        self.assertEqual(response.status_code, 200)
        self.assertNotEqual(threads["parse"], threads["store"])
        self.assertEqual(len(self.store.state.smart_reminders), 2)

    def test_pause_hides_active_reminders(self) -> None:
        self.assertEqual(self.client.post("/api/pause", json={"minutes": 30}).status_code, 200)
        self.assertEqual(self.client.get("/api/reminders/active").json(), [])
        self.client.delete("/api/pause")
        self.assertEqual(len(self.client.get("/api/reminders/active").json()), 1)

    def test_pause_needs_positive_minutes(self) -> None:
        self.assertEqual(self.client.post("/api/pause", json={"minutes": 0}).status_code, 422)


class TestDndThemeAndUndo(ApiTestCase):
    def test_dnd_update_and_apply_all(self) -> None:
        updated = self.client.put("/api/dnd/Monday", json={"start_time": "22:00"}).json()
        self.assertEqual(updated[0]["start_time"], "22:00")
        windows = self.client.post("/api/dnd/apply-all").json()
        self.assertEqual(len(windows), 7)
        self.assertTrue(all(w["start_time"] == "22:00" for w in windows))

    def test_theme(self) -> None:
        self.assertEqual(self.client.get("/api/theme").json()["theme"], "Focus")
        self.now = at(20)
        self.assertEqual(self.client.get("/api/theme").json()["theme"], "Evening")

    def test_theme_for_chunk(self) -> None:
        self.now = at(11)
        response = self.client.post("/api/theme", json={"active_chunk": {"id": "c1", "energy_tag": "Errand"}})
        self.assertEqual(response.json()["theme"], "Recovery")

    def test_undo(self) -> None:
        self.assertEqual(self.client.post("/api/undo").status_code, 409)
        self.client.post("/api/reminders/r1/actions", json={"kind": "done"})
        self.assertEqual(self.client.get("/api/history").json()[0]["collections"], ["smart_reminders"])

        response = self.client.post("/api/undo")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["undone"], 'Completed "Grab coffee".')
        self.assertEqual(self.store.state.smart_reminders[0].status, "Active")

    def test_onboarding(self) -> None:
        response = self.client.post("/api/onboarding", json={
            "work_blocks": [{"start_time": "09:00", "end_time": "17:00", "days": ["Wednesday"]}],
            "sleep_start": "23:30",
            "sleep_end": "07:30",
        })
        body = response.json()
        self.assertIn("onboard-work-0-Wednesday", [a["id"] for a in body["schedule_events"]])
        self.assertEqual(len(body["dnd_windows"]), 7)

    def test_habit_streak_route(self) -> None:
        body = self.client.get("/api/habits/habit-desk-reset/streak").json()
        self.assertEqual(body["current_streak"], 0)



class TestSettingsRoutes(ApiTestCase):
    def test_invalid_setting_leaves_reminders_working(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        env = mock.patch.dict(os.environ)
        env.start()
        self.addCleanup(env.stop)
        self.addCleanup(reload_config)

        with mock.patch.object(SettingsManager, "env_path", Path(tmp.name) / ".env"):
            response = self.client.put("/api/settings/REMINDER_LATER_DEFAULT_HOURS", json={"value": "abc"})
        self.assertEqual(response.status_code, 400)

        response = self.client.post("/api/reminders/r1/actions", json={"kind": "later"})
        self.assertEqual(response.status_code, 200)


if __name__ == "__main__":
    unittest.main()
