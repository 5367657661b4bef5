"""
Decide which roster entries should be reminded about right now.

A record is eligible when its reminder date is today (in the configured
timezone) and the local clock has reached its send time. Force-send skips the
clock check but never the date check.
"""

from datetime import date, datetime
from typing import Any, Iterable

from pydantic import BaseModel, Field, ValidationError

from config.settings import ReminderSettings, parse_send_time
from models import BirthdayRecord, RecordIssue, TimingPolicy
from reminders.date_engine import (
    EventDate,
    days_until_event,
    is_eligible_today,
    local_today,
    next_occurrence,
    parse_event_date,
)
from shared.errors import DataError


class EligibleReminder(BaseModel):
    """A record that is due, with everything the dispatcher needs to render it."""

    record: BirthdayRecord
    policy: TimingPolicy
    event: EventDate
    event_date: date
    days_until_event: int


class EligibilitySelection(BaseModel):
    eligible: list[EligibleReminder] = Field(default_factory=list)
    data_errors: list[RecordIssue] = Field(default_factory=list)


def build_records(rows: Iterable[dict[str, Any]]) -> tuple[list[BirthdayRecord], list[RecordIssue]]:
    """
    Validate raw store rows into BirthdayRecord models.

    Rows with missing required fields or invalid overrides are reported rather
    than raised, so one bad entry never stops the run.
    """
    records: list[BirthdayRecord] = []
    issues: list[RecordIssue] = []

    for row in rows:
        try:
            records.append(BirthdayRecord.model_validate(row))
        except ValidationError as e:
            problems = ", ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            record_id = row.get("id") if isinstance(row, dict) else None
            issues.append(RecordIssue(record_id=str(record_id) if record_id else None, message=problems))

    return records, issues


def resolve_policy(record: BirthdayRecord, default: TimingPolicy) -> TimingPolicy:
    return record.notification_timing or default


def resolve_send_time(record: BirthdayRecord, default: str) -> int:
    """Effective send time of a record, in minutes since midnight."""
    value = record.send_time or default
    try:
        return parse_send_time(value)
    except ValueError as e:
        raise DataError(str(e), record_id=record.id) from e


def minutes_of_day(now: datetime) -> int:
    return now.hour * 60 + now.minute


def passes_send_time(now: datetime, send_time_minutes: int) -> bool:
    """True once the local clock has reached the send time."""
    return minutes_of_day(now) >= send_time_minutes


def within_send_window(now: datetime, send_time: str, tolerance_minutes: int) -> bool:
    """True when `now` is within +/- tolerance of the configured send time."""
    return _within_minutes(now, parse_send_time(send_time), tolerance_minutes)


def _within_minutes(now: datetime, send_time_minutes: int, tolerance_minutes: int) -> bool:
    return abs(minutes_of_day(now) - send_time_minutes) <= tolerance_minutes


def select_eligible(
    records: Iterable[BirthdayRecord],
    now: datetime,
    settings: ReminderSettings,
    force_send: bool = False,
    today: date | None = None,
    send_window: int | None = None,
) -> EligibilitySelection:
    """
    Filter records down to the ones whose reminder is due now.

    Args:
        records: Roster entries
        now: Current time, timezone-aware, in the configured zone
        settings: Supplies the default timing policy and send time
        force_send: Skip the time-of-day gate (the day must still match)
        today: Evaluate as of this date instead of now's date
        send_window: For scheduled runs, also require `now` to be within this
            many minutes of the record's own send time

    Returns:
        EligibilitySelection with the due reminders and any data errors
    """
    today = today or local_today(now)
    selection = EligibilitySelection()

    for record in records:
        try:
            event = parse_event_date(record.date)
            send_time_minutes = resolve_send_time(record, settings.send_time)
        except DataError as e:
            selection.data_errors.append(RecordIssue(record_id=record.id, message=str(e)))
            continue

        policy = resolve_policy(record, settings.default_timing)

        if not is_eligible_today(event, policy, today):
            continue

        if not force_send and not passes_send_time(now, send_time_minutes):
            continue

        if (
            send_window is not None
            and not force_send
            and not _within_minutes(now, send_time_minutes, send_window)
        ):
            continue

        days = days_until_event(event, today)
        selection.eligible.append(
            EligibleReminder(
                record=record,
                policy=policy,
                event=event,
                event_date=next_occurrence(event, today),
                days_until_event=days,
            )
        )

    return selection
