"""
Integration tests for a full reminder run.

Wires run_reminders to the real SupabaseBirthdayStore (over a mocked
Supabase client), a fake transport and a fake clock, and checks end-to-end
behaviour: repeated runs on the same day, failure isolation with rate
limiting, and the execution log.
"""

import tempfile
import unittest
from datetime import date, datetime
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

from reminders.process_reminders import run_reminders
from reminders.run_log import read_run_log
from reminders.store import SupabaseBirthdayStore
from tests.fixtures.birthday_factory import create_test_birthday, create_test_settings
from tests.fixtures.mock_helpers import FakeClock, FakeTransport, InMemoryBirthdayStore

SAO_PAULO = ZoneInfo("America/Sao_Paulo")


class TestReminderRun(unittest.TestCase):
    """End-to-end reminder runs."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.settings = create_test_settings(log_dir=self.tmp.name)

    def test_second_run_same_day_sends_nothing(self):
        """Hourly runs after the send time must not repeat today's reminders."""
        store = InMemoryBirthdayStore(
            [
                create_test_birthday(id="a", name="Ana", date="1990-03-15"),
                create_test_birthday(id="b", name="Bruno", date="03-15", notification_count=4),
            ]
        )
        transport = FakeTransport()

        first = run_reminders(
            self.settings, store, transport,
            clock=FakeClock(datetime(2026, 3, 14, 9, 5, tzinfo=SAO_PAULO)),
        )
        second = run_reminders(
            self.settings, store, transport,
            clock=FakeClock(datetime(2026, 3, 14, 10, 5, tzinfo=SAO_PAULO)),
        )

        self.assertEqual(first.sent, 2)
        self.assertEqual(second.sent, 0)
        self.assertEqual(second.skipped, 2)
        self.assertEqual(len(transport.sent), 2)
        self.assertEqual(store.rows["a"]["notification_count"], 1)
        self.assertEqual(store.rows["b"]["notification_count"], 5)
        self.assertEqual(store.rows["a"]["last_execution_id"], first.execution_id)

        runs = read_run_log(self.tmp.name, date(2026, 3, 14))
        self.assertEqual([r.execution_id for r in runs], [first.execution_id, second.execution_id])

    def test_next_day_not_eligible_again(self):
        store = InMemoryBirthdayStore([create_test_birthday(id="a", date="1990-03-15")])
        transport = FakeTransport()

        run_reminders(
            self.settings, store, transport,
            clock=FakeClock(datetime(2026, 3, 14, 9, 5, tzinfo=SAO_PAULO)),
        )
        result = run_reminders(
            self.settings, store, transport,
            clock=FakeClock(datetime(2026, 3, 15, 9, 5, tzinfo=SAO_PAULO)),
        )

        self.assertEqual(result.eligible, 0)
        self.assertEqual(len(transport.sent), 1)

    @patch("reminders.dispatcher.log_reminder_error", return_value="logs/error.txt")
    def test_failure_isolation_with_rate_limit(self, mock_log):
        """3 due, 2s delay, the second fails: 2 sent, 1 failed, 2 pauses, >= 4s elapsed."""
        store = InMemoryBirthdayStore(
            [
                create_test_birthday(id="a", name="Ana", date="1990-03-15"),
                create_test_birthday(id="b", name="Bruno", date="1991-03-15"),
                create_test_birthday(id="c", name="Carla", date="1992-03-15"),
            ]
        )
        transport = FakeTransport(fail_on={"Bruno"})
        clock = FakeClock(datetime(2026, 3, 14, 9, 5, tzinfo=SAO_PAULO))

        result = run_reminders(self.settings, store, transport, clock=clock)

        self.assertEqual((result.eligible, result.sent, result.failed), (3, 2, 1))
        self.assertEqual(clock.sleeps, [2.0, 2.0])
        self.assertGreaterEqual(result.duration_ms, 4000)
        self.assertEqual(store.rows["b"]["notification_count"], 0)

        # The failed record is retried by the next run the same day
        transport.fail_on = set()
        retry = run_reminders(
            self.settings, store, transport,
            clock=FakeClock(datetime(2026, 3, 14, 10, 5, tzinfo=SAO_PAULO)),
        )
        self.assertEqual((retry.sent, retry.skipped), (1, 2))
        self.assertEqual(store.rows["b"]["notification_count"], 1)

    def test_supabase_store_round_trip(self):
        """Rows read through SupabaseBirthdayStore are written back with one update each."""
        row = create_test_birthday(id="a", name="Ana", date="1990-03-15")
        client = MagicMock()
        client.table.return_value = client
        client.select.return_value = client
        client.order.return_value = client
        client.update.return_value = client
        client.eq.return_value = client
        client.execute.side_effect = [MagicMock(data=[row]), MagicMock(data=[{"id": "a"}])]
        transport = FakeTransport()

        result = run_reminders(
            self.settings,
            SupabaseBirthdayStore(client),
            transport,
            clock=FakeClock(datetime(2026, 3, 14, 9, 5, tzinfo=SAO_PAULO)),
        )

        self.assertEqual(result.sent, 1)
        client.update.assert_called_once()
        fields = client.update.call_args[0][0]
        self.assertEqual(fields["notification_count"], 1)
        self.assertEqual(fields["last_notified_at"], "2026-03-14T09:05:00-03:00")
        client.eq.assert_called_once_with("id", "a")


if __name__ == "__main__":
    unittest.main()
