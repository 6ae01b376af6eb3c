from __future__ import annotations

import unittest
from datetime import datetime, timezone

from fakes import FakeClock, FakeNotifier, FakeTabHost, counter_ids, epoch_ms

from tab_snooze.adapters.json_store import MemoryStore
from tab_snooze.application.recovery import RECOVERY_NOTIFICATION_ID
from tab_snooze.application.runtime import SnoozeRuntime
from tab_snooze.application.wake_scheduler import (
    PENDING_NOTIFICATION_KEY,
    WakeAction,
    WakeState,
    notification_message,
)
from tab_snooze.ports.tabs import OpenTarget


class WakeSchedulerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock(datetime(2026, 1, 7, 10, 0, 30, tzinfo=timezone.utc))
        self.notifier = FakeNotifier()
        self.tab_host = FakeTabHost()
        self.store = MemoryStore()
        self.session = MemoryStore()
        self.runtime = SnoozeRuntime(
            store=self.store,
            session=self.session,
            notifier=self.notifier,
            tab_host=self.tab_host,
            now_provider=self.clock.now,
            id_factory=counter_ids(),
            enable_timers=False,
        )
        self.writes: list[dict] = []
        self.store.add_change_listener(self.writes.append)

    def tearDown(self) -> None:
        self.runtime.close()

    def _snooze_in(self, hours: float, url: str) -> str:
        pop_time = epoch_ms(self.clock.now()) + int(hours * 3_600_000)
        return self.runtime.snooze({"url": url}, pop_time).id

    def test_nothing_due_stays_idle(self) -> None:
        self._snooze_in(2, "https://later.example")

        self.assertIsNone(self.runtime.check_now())
        self.assertEqual(self.notifier.created, [])
        self.assertIs(self.runtime.wake.state, WakeState.IDLE)

    def test_due_items_produce_one_notification(self) -> None:
        first = self._snooze_in(1, "https://one.example")
        second = self._snooze_in(2, "https://two.example")
        self._snooze_in(5, "https://five.example")
        self.clock.advance_hours(3)

        pending = self.runtime.check_now()

        self.assertIsNotNone(pending)
        assert pending is not None
        self.assertEqual(pending.ids, (first, second))
        self.assertEqual(len(pending.bucket_keys), 2)
        self.assertEqual(len(self.notifier.created), 1)
        _, title, message, buttons = self.notifier.created[0]
        self.assertEqual(title, "Tab Snooze")
        self.assertEqual(message, "2 tabs are back")
        self.assertEqual(buttons, ("Open now", "Postpone"))
        self.assertIs(self.runtime.wake.state, WakeState.NOTIFICATION_PENDING)
        # Items stay scheduled until the user responds.
        self.assertEqual(len(self.runtime.get_snoozed_tabs()["items"]), 3)
        stored = self.session.get([PENDING_NOTIFICATION_KEY])[PENDING_NOTIFICATION_KEY]
        self.assertEqual(stored["notificationId"], pending.notification_id)

    def test_active_notification_skips_scan(self) -> None:
        self._snooze_in(1, "https://one.example")
        self.clock.advance_hours(2)
        self.runtime.check_now()

        self.assertIsNone(self.runtime.check_now())
        self.assertEqual(len(self.notifier.created), 1)

    def test_recovery_notice_does_not_block_scan(self) -> None:
        self.notifier.create("Recovered", "reset", notification_id=RECOVERY_NOTIFICATION_ID)
        self._snooze_in(1, "https://one.example")
        self.clock.advance_hours(2)

        self.assertIsNotNone(self.runtime.check_now())

    def test_open_now_removes_items_and_opens_them(self) -> None:
        item_id = self._snooze_in(1, "https://one.example")
        self.clock.advance_hours(2)
        pending = self.runtime.check_now()
        assert pending is not None
        self.writes.clear()

        self.notifier.click(pending.notification_id, 0)

        self.assertEqual(self.runtime.get_snoozed_tabs(), {"items": {}, "schedule": {}})
        self.assertEqual(self.tab_host.opened, [("https://one.example", OpenTarget.CURRENT_WINDOW)])
        self.assertEqual(self.notifier.cleared, [pending.notification_id])
        self.assertNotIn(PENDING_NOTIFICATION_KEY, self.session.get())
        self.assertIs(self.runtime.wake.state, WakeState.IDLE)
        self.assertEqual(len(self.writes), 1)
        self.assertNotIn(item_id, self.writes[0]["items"][1])

    def test_open_in_new_window_when_configured(self) -> None:
        self.runtime.set_settings({"open-new-tab": "false"})
        self._snooze_in(1, "https://one.example")
        self.clock.advance_hours(2)
        pending = self.runtime.check_now()
        assert pending is not None

        resolution = self.runtime.respond(pending.notification_id, 0)

        assert resolution is not None
        self.assertIs(resolution.action, WakeAction.OPEN)
        self.assertEqual(self.tab_host.opened, [("https://one.example", OpenTarget.NEW_WINDOW)])

    def test_postpone_moves_every_candidate_in_one_write(self) -> None:
        first = self._snooze_in(1, "https://one.example")
        second = self._snooze_in(1.5, "https://two.example")
        self.clock.advance_hours(2)
        pending = self.runtime.check_now()
        assert pending is not None
        self.writes.clear()

        self.notifier.click(pending.notification_id, 1)

        expected = epoch_ms(datetime(2026, 1, 7, 13, 0, tzinfo=timezone.utc))
        document = self.runtime.get_snoozed_tabs()
        self.assertEqual(document["schedule"], {str(expected): [first, second]})
        self.assertEqual(document["items"][first]["popTime"], expected)
        self.assertEqual(len(self.writes), 1)
        self.assertEqual(self.tab_host.opened, [])

    def test_close_without_button_postpones(self) -> None:
        item_id = self._snooze_in(1, "https://one.example")
        self.clock.advance_hours(2)
        pending = self.runtime.check_now()
        assert pending is not None

        self.notifier.close(pending.notification_id)

        document = self.runtime.get_snoozed_tabs()
        self.assertEqual(document["items"][item_id]["popTime"], epoch_ms(datetime(2026, 1, 7, 13, 0, tzinfo=timezone.utc)))
        self.assertNotIn(PENDING_NOTIFICATION_KEY, self.session.get())

    def test_automatic_close_also_postpones(self) -> None:
        item_id = self._snooze_in(1, "https://one.example")
        self.clock.advance_hours(2)
        pending = self.runtime.check_now()
        assert pending is not None

        with self.assertLogs("tab_snooze.application.wake_scheduler", level="DEBUG") as logs:
            self.notifier.close(pending.notification_id, by_user=False)

        self.assertTrue(any("by_user=False" in line for line in logs.output))
        document = self.runtime.get_snoozed_tabs()
        self.assertEqual(document["items"][item_id]["popTime"], epoch_ms(datetime(2026, 1, 7, 13, 0, tzinfo=timezone.utc)))

    def test_unknown_notification_is_ignored(self) -> None:
        self._snooze_in(1, "https://one.example")
        self.clock.advance_hours(2)
        self.runtime.check_now()
        before = self.runtime.get_snoozed_tabs()

        self.assertIsNone(self.runtime.respond("not-ours", 0))
        self.assertEqual(self.runtime.get_snoozed_tabs(), before)
        self.assertIn(PENDING_NOTIFICATION_KEY, self.session.get())

    def test_candidates_removed_meanwhile_are_skipped(self) -> None:
        gone = self._snooze_in(1, "https://gone.example")
        kept = self._snooze_in(1, "https://kept.example")
        self.clock.advance_hours(2)
        pending = self.runtime.check_now()
        assert pending is not None
        self.runtime.remove_snoozed_tab({"id": gone})

        resolution = self.runtime.respond(pending.notification_id, 0)

        assert resolution is not None
        self.assertEqual([item.id for item in resolution.items], [kept])
        self.assertEqual(self.tab_host.opened, [("https://kept.example", OpenTarget.CURRENT_WINDOW)])

    def test_host_failure_keeps_store_write(self) -> None:
        self.tab_host.failing_urls.add("https://broken.example")
        self._snooze_in(1, "https://broken.example")
        self.clock.advance_hours(2)
        pending = self.runtime.check_now()
        assert pending is not None

        with self.assertLogs("tab_snooze.application.wake_scheduler", level="WARNING"):
            resolution = self.runtime.respond(pending.notification_id, 0)

        assert resolution is not None
        self.assertEqual(resolution.failed_urls, ["https://broken.example"])
        self.assertEqual(self.runtime.get_snoozed_tabs()["items"], {})

    def test_stale_pending_record_is_regenerated(self) -> None:
        self._snooze_in(1, "https://one.example")
        self.clock.advance_hours(2)
        self.session.set(
            {PENDING_NOTIFICATION_KEY: {"notificationId": "old", "ids": ["x"], "bucketKeys": []}}
        )

        pending = self.runtime.check_now()

        assert pending is not None
        self.assertNotEqual(pending.notification_id, "old")
        self.assertIsNone(self.runtime.respond("old", 0))

    def test_message_wording(self) -> None:
        self.assertEqual(notification_message(1), "1 tab is back")
        self.assertEqual(notification_message(4), "4 tabs are back")


if __name__ == "__main__":
    unittest.main()
