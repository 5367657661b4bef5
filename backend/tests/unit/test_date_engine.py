"""
Unit tests for reminders/date_engine.py

Tests date parsing, projection onto the current year, leap-day handling,
age calculation and the notification-day arithmetic.
"""

import unittest
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from models import TimingPolicy
from reminders.date_engine import (
    EventDate,
    age,
    days_until_event,
    days_until_notification,
    is_eligible_today,
    lead_days,
    local_today,
    next_notification_date,
    next_occurrence,
    occurrence_in,
    parse_event_date,
)
from shared.errors import DataError


class TestParseEventDate(unittest.TestCase):
    """Tests for parse_event_date() function."""

    def test_full_date(self):
        self.assertEqual(parse_event_date("1990-03-15"), EventDate(3, 15, 1990))

    def test_full_date_with_time_part(self):
        """Timestamps from the store keep only their date."""
        self.assertEqual(parse_event_date("1985-12-01T00:00:00+00:00"), EventDate(12, 1, 1985))

    def test_month_day_only(self):
        event = parse_event_date("07-04")

        self.assertEqual(event, EventDate(7, 4))
        self.assertIsNone(event.year)

    def test_leap_day_without_year_accepted(self):
        self.assertEqual(parse_event_date("02-29"), EventDate(2, 29))

    def test_invalid_calendar_date_rejected(self):
        with self.assertRaises(DataError):
            parse_event_date("1990-02-30")

    def test_leap_day_in_common_year_rejected(self):
        with self.assertRaises(DataError):
            parse_event_date("1991-02-29")

    def test_garbage_rejected(self):
        for value in ("", None, "15/03/1990", "March 15", "1990-3-15"):
            with self.subTest(value=value):
                with self.assertRaises(DataError):
                    parse_event_date(value)


class TestLocalToday(unittest.TestCase):
    """Tests for local_today() function."""

    def test_uses_the_datetime_zone(self):
        """23:30 in São Paulo is already tomorrow in UTC."""
        now = datetime(2026, 3, 14, 23, 30, tzinfo=ZoneInfo("America/Sao_Paulo"))

        self.assertEqual(local_today(now), date(2026, 3, 14))
        self.assertEqual(local_today(now.astimezone(timezone.utc)), date(2026, 3, 15))

    def test_naive_datetime_rejected(self):
        with self.assertRaises(ValueError):
            local_today(datetime(2026, 3, 14, 12, 0))


class TestOccurrence(unittest.TestCase):
    """Tests for occurrence_in() and next_occurrence()."""

    def test_leap_day_in_leap_year(self):
        self.assertEqual(occurrence_in(EventDate(2, 29, 2000), 2028), date(2028, 2, 29))

    def test_leap_day_in_common_year_falls_on_march_first(self):
        self.assertEqual(occurrence_in(EventDate(2, 29, 2000), 2026), date(2026, 3, 1))

    def test_later_this_year(self):
        self.assertEqual(next_occurrence(EventDate(3, 15), date(2026, 3, 14)), date(2026, 3, 15))

    def test_today_is_this_year(self):
        self.assertEqual(next_occurrence(EventDate(3, 15), date(2026, 3, 15)), date(2026, 3, 15))

    def test_already_passed_rolls_to_next_year(self):
        self.assertEqual(next_occurrence(EventDate(1, 2), date(2026, 12, 30)), date(2027, 1, 2))


class TestAge(unittest.TestCase):
    """Tests for age() function."""

    def test_on_birthday(self):
        self.assertEqual(age(EventDate(3, 15, 1990), date(2026, 3, 15)), 36)

    def test_day_before_birthday(self):
        self.assertEqual(age(EventDate(3, 15, 1990), date(2026, 3, 14)), 35)

    def test_unknown_year(self):
        self.assertIsNone(age(EventDate(3, 15), date(2026, 3, 15)))

    def test_future_birth_floored_at_zero(self):
        self.assertEqual(age(EventDate(6, 1, 2030), date(2026, 3, 15)), 0)

    def test_leap_day_birthday_counts_on_march_first(self):
        self.assertEqual(age(EventDate(2, 29, 2000), date(2026, 2, 28)), 25)
        self.assertEqual(age(EventDate(2, 29, 2000), date(2026, 3, 1)), 26)


class TestNotificationArithmetic(unittest.TestCase):
    """Tests for days_until_event(), days_until_notification() and friends."""

    def test_lead_days_per_policy(self):
        expected = {
            TimingPolicy.SAME_DAY: 0,
            TimingPolicy.ONE_DAY: 1,
            TimingPolicy.TWO_DAYS: 2,
            TimingPolicy.THREE_DAYS: 3,
            TimingPolicy.ONE_WEEK: 7,
        }
        for policy, days in expected.items():
            with self.subTest(policy=policy):
                self.assertEqual(lead_days(policy), days)

    def test_one_day_policy_eligible_the_day_before(self):
        event = parse_event_date("1990-03-15")

        self.assertTrue(is_eligible_today(event, TimingPolicy.ONE_DAY, date(2026, 3, 14)))
        self.assertFalse(is_eligible_today(event, TimingPolicy.ONE_DAY, date(2026, 3, 15)))
        self.assertFalse(is_eligible_today(event, TimingPolicy.ONE_DAY, date(2026, 3, 13)))

    def test_march_fifteenth_one_day_in_leap_year(self):
        event = parse_event_date("03-15")

        self.assertTrue(is_eligible_today(event, TimingPolicy.ONE_DAY, date(2024, 3, 14)))
        self.assertFalse(is_eligible_today(event, TimingPolicy.ONE_DAY, date(2024, 3, 13)))
        self.assertFalse(is_eligible_today(event, TimingPolicy.ONE_DAY, date(2024, 3, 15)))

    def test_january_event_checked_in_december(self):
        event = parse_event_date("01-05")
        today = date(2024, 12, 20)

        self.assertEqual(next_occurrence(event, today), date(2025, 1, 5))
        self.assertEqual(days_until_event(event, today), 16)
        self.assertFalse(is_eligible_today(event, TimingPolicy.SAME_DAY, today))

    def test_week_policy_across_year_boundary(self):
        """A January 2 birthday with a week's notice is due on December 26."""
        event = parse_event_date("01-02")

        self.assertEqual(days_until_event(event, date(2026, 12, 26)), 7)
        self.assertTrue(is_eligible_today(event, TimingPolicy.ONE_WEEK, date(2026, 12, 26)))

    def test_same_day_policy(self):
        event = parse_event_date("07-04")

        self.assertEqual(days_until_event(event, date(2026, 7, 4)), 0)
        self.assertTrue(is_eligible_today(event, TimingPolicy.SAME_DAY, date(2026, 7, 4)))

    def test_leap_day_event_in_common_year(self):
        event = parse_event_date("2000-02-29")

        self.assertEqual(days_until_event(event, date(2026, 2, 28)), 1)
        self.assertTrue(is_eligible_today(event, TimingPolicy.ONE_DAY, date(2026, 2, 28)))
        self.assertTrue(is_eligible_today(event, TimingPolicy.SAME_DAY, date(2026, 3, 1)))

    def test_days_until_notification_can_be_negative(self):
        """Event in 3 days with a week's notice: that reminder is 4 days late."""
        event = parse_event_date("03-18")

        self.assertEqual(days_until_notification(event, TimingPolicy.ONE_WEEK, date(2026, 3, 15)), -4)

    def test_next_notification_date_skips_to_next_year(self):
        event = parse_event_date("03-18")

        self.assertEqual(
            next_notification_date(event, TimingPolicy.ONE_WEEK, date(2026, 3, 15)),
            date(2027, 3, 11),
        )

    def test_next_notification_date_today(self):
        event = parse_event_date("03-18")

        self.assertEqual(
            next_notification_date(event, TimingPolicy.THREE_DAYS, date(2026, 3, 15)),
            date(2026, 3, 15),
        )

    def test_days_until_event_in_range_all_year(self):
        """Over a whole year the distance stays within 0..365 and is 0 only on the day."""
        event = parse_event_date("1990-06-10")
        day = date(2026, 1, 1)
        while day.year == 2026:
            days = days_until_event(event, day)
            self.assertGreaterEqual(days, 0)
            self.assertLessEqual(days, 365)
            self.assertEqual(days == 0, day == date(2026, 6, 10))
            day += timedelta(days=1)

    def test_exactly_one_eligible_day_per_year(self):
        """Each policy triggers on exactly one day of the year, including a leap-day event."""
        for value in ("1990-06-10", "01-03", "2000-02-29"):
            event = parse_event_date(value)
            for policy in TimingPolicy:
                with self.subTest(date=value, policy=policy):
                    day = date(2026, 1, 1)
                    hits = 0
                    while day.year == 2026:
                        hits += is_eligible_today(event, policy, day)
                        day += timedelta(days=1)
                    self.assertEqual(hits, 1)


if __name__ == "__main__":
    unittest.main()
