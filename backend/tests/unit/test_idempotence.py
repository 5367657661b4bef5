"""
Unit tests for reminders/idempotence.py

Tests the already-notified check (in the configured timezone), splitting due
reminders, and the write-back after a successful send.
"""

import unittest
from datetime import date, datetime, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from models import BirthdayRecord
from reminders.idempotence import already_notified, drop_already_notified, mark_sent
from tests.fixtures.birthday_factory import create_test_birthday, create_test_reminder
from tests.fixtures.mock_helpers import InMemoryBirthdayStore

SAO_PAULO = ZoneInfo("America/Sao_Paulo")


class TestAlreadyNotified(unittest.TestCase):
    """Tests for already_notified() function."""

    def test_never_notified(self):
        record = BirthdayRecord.model_validate(create_test_birthday())

        self.assertFalse(already_notified(record, date(2026, 3, 14), SAO_PAULO))

    def test_notified_today(self):
        record = BirthdayRecord.model_validate(
            create_test_birthday(last_notified_at="2026-03-14T09:00:05-03:00")
        )

        self.assertTrue(already_notified(record, date(2026, 3, 14), SAO_PAULO))

    def test_notified_yesterday(self):
        record = BirthdayRecord.model_validate(
            create_test_birthday(last_notified_at="2026-03-13T09:00:05-03:00")
        )

        self.assertFalse(already_notified(record, date(2026, 3, 14), SAO_PAULO))

    def test_compared_in_local_timezone(self):
        """01:30 UTC on March 15 is still March 14 in São Paulo."""
        record = BirthdayRecord.model_validate(
            create_test_birthday(last_notified_at="2026-03-15T01:30:00+00:00")
        )

        self.assertTrue(already_notified(record, date(2026, 3, 14), SAO_PAULO))
        self.assertFalse(already_notified(record, date(2026, 3, 15), SAO_PAULO))

    def test_naive_timestamp_treated_as_utc(self):
        record = BirthdayRecord.model_validate(
            create_test_birthday(last_notified_at="2026-03-15T01:30:00")
        )

        self.assertTrue(already_notified(record, date(2026, 3, 14), SAO_PAULO))


class TestDropAlreadyNotified(unittest.TestCase):
    """Tests for drop_already_notified() function."""

    def test_splits_pending_and_skipped(self):
        today = date(2026, 3, 14)
        fresh = create_test_reminder(today, id="fresh", date="1990-03-15")
        done = create_test_reminder(
            today, id="done", date="1990-03-15", last_notified_at="2026-03-14T09:00:00-03:00"
        )

        pending, skipped = drop_already_notified([fresh, done], today, SAO_PAULO)

        self.assertEqual([r.record.id for r in pending], ["fresh"])
        self.assertEqual([r.record.id for r in skipped], ["done"])


class TestMarkSent(unittest.TestCase):
    """Tests for mark_sent() function."""

    def setUp(self):
        self.row = create_test_birthday(id="rec_1", notification_count=2)
        self.record = BirthdayRecord.model_validate(self.row)
        self.now = datetime(2026, 3, 14, 9, 0, tzinfo=SAO_PAULO)

    def test_updates_store_and_record(self):
        store = InMemoryBirthdayStore([self.row])

        ok = mark_sent(store, self.record, self.now, execution_id="exec_1")

        self.assertTrue(ok)
        self.assertEqual(self.record.notification_count, 3)
        self.assertEqual(self.record.last_notified_at, self.now)
        self.assertEqual(self.record.last_execution_id, "exec_1")
        self.assertEqual(
            store.updates,
            [
                {
                    "id": "rec_1",
                    "last_notified_at": self.now.isoformat(),
                    "notification_count": 3,
                    "last_execution_id": "exec_1",
                }
            ],
        )

    def test_record_is_filtered_after_marking(self):
        store = InMemoryBirthdayStore([self.row])

        mark_sent(store, self.record, self.now)

        self.assertTrue(already_notified(self.record, date(2026, 3, 14), SAO_PAULO))

    @patch("reminders.idempotence.log_reminder_error", return_value="logs/error.txt")
    def test_store_failure_is_logged_not_raised(self, mock_log):
        store = InMemoryBirthdayStore([self.row], fail_updates=True)

        ok = mark_sent(store, self.record, self.now, execution_id="exec_1")

        self.assertFalse(ok)
        # The in-memory record still reflects the send
        self.assertEqual(self.record.notification_count, 3)
        mock_log.assert_called_once()
        self.assertEqual(mock_log.call_args.kwargs["error_type"], "write_back")
        self.assertEqual(mock_log.call_args.kwargs["context"]["record_id"], "rec_1")


if __name__ == "__main__":
    unittest.main()
