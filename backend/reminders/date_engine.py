"""
Calendar arithmetic for yearly events.

Every function takes "today" as a plain date that the caller derived from a
timezone-aware datetime (see local_today), so the answer never depends on the
server's own timezone. Event dates are projected onto the current year by
month/day, which keeps the January-birthday-checked-in-December case right.
"""

import re
from datetime import date, datetime, timedelta
from typing import NamedTuple

from models import TimingPolicy
from shared.errors import DataError

_FULL_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
_MONTH_DAY = re.compile(r"^(\d{2})-(\d{2})$")


class EventDate(NamedTuple):
    """Month and day of a yearly event, plus the birth year when known."""

    month: int
    day: int
    year: int | None = None


def parse_event_date(value: str | None) -> EventDate:
    """
    Parse a roster date.

    Accepts 'YYYY-MM-DD' (optionally followed by a time part, which is ignored)
    and year-agnostic 'MM-DD'.

    Raises:
        DataError: If the value is empty or not a real calendar date
    """
    text = (value or "").strip()
    full = _FULL_DATE.match(text)
    month_day = _MONTH_DAY.match(text)

    if full:
        year, month, day = (int(part) for part in full.groups())
    elif month_day:
        year = None
        month, day = (int(part) for part in month_day.groups())
    else:
        raise DataError(f"Unrecognised date {value!r} (expected YYYY-MM-DD or MM-DD)")

    try:
        # 2000 is a leap year, so 02-29 is accepted for year-less dates
        date(year or 2000, month, day)
    except ValueError as e:
        raise DataError(f"Invalid date {value!r}: {e}") from e

    return EventDate(month, day, year)


def local_today(now: datetime) -> date:
    """Calendar date of a timezone-aware datetime, in that datetime's zone."""
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("local_today() needs a timezone-aware datetime")
    return now.date()


def lead_days(policy: TimingPolicy) -> int:
    return policy.lead_days


def occurrence_in(event: EventDate, year: int) -> date:
    """The event's date in a given year. Feb 29 falls on Mar 1 in common years."""
    try:
        return date(year, event.month, event.day)
    except ValueError:
        return date(year, event.month, event.day - 1) + timedelta(days=1)


def next_occurrence(event: EventDate, today: date) -> date:
    """This year's occurrence, or next year's if this year's is already behind us."""
    projected = occurrence_in(event, today.year)
    if projected < today:
        projected = occurrence_in(event, today.year + 1)
    return projected


def age(event: EventDate, today: date) -> int | None:
    """Completed years on `today`, floored at 0. None when the birth year is unknown."""
    if event.year is None:
        return None
    years = today.year - event.year
    if today < occurrence_in(event, today.year):
        years -= 1
    return max(years, 0)


def days_until_event(event: EventDate, today: date) -> int:
    """Whole days until the next occurrence; 0 on the day itself, never negative."""
    return (next_occurrence(event, today) - today).days


def days_until_notification(event: EventDate, policy: TimingPolicy, today: date) -> int:
    """
    Days until the reminder for the upcoming occurrence is due.

    Negative when that reminder date has already passed (e.g. the event is in
    3 days but the policy asks for a week's notice). Use
    next_notification_date() to get the next reminder that is still ahead.
    """
    return days_until_event(event, today) - lead_days(policy)


def next_notification_date(event: EventDate, policy: TimingPolicy, today: date) -> date:
    """The next reminder date on or after today."""
    occurrence = next_occurrence(event, today)
    notify_on = occurrence - timedelta(days=lead_days(policy))
    if notify_on < today:
        notify_on = occurrence_in(event, occurrence.year + 1) - timedelta(days=lead_days(policy))
    return notify_on


def is_eligible_today(event: EventDate, policy: TimingPolicy, today: date) -> bool:
    return days_until_notification(event, policy, today) == 0
