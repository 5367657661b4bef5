"""
Per-record guard against sending the same reminder twice.

The only persisted marker is the time of the last successful send, so the
guarantee is: at most one successful send per record per calendar day (in the
configured timezone). Write-back happens after the transport has accepted the
message; if it fails the send stands and the next run may repeat it
(at-least-once delivery).
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Protocol, Sequence

from models import BirthdayRecord
from reminders.eligibility import EligibleReminder
from reminders.error_logger import log_reminder_error
from shared.errors import StoreError


class IdempotenceStore(Protocol):
    def update_idempotence_fields(
        self,
        record_id: str,
        last_notified_at: datetime,
        notification_count: int,
        execution_id: str | None = None,
    ) -> None: ...


def already_notified(record: BirthdayRecord, today: date, tz: tzinfo) -> bool:
    """True if the record was successfully notified on `today` (local date in tz)."""
    if record.last_notified_at is None:
        return False

    last = record.last_notified_at
    if last.tzinfo is None:
        # Timestamps without an offset are stored in UTC
        last = last.replace(tzinfo=timezone.utc)

    return last.astimezone(tz).date() == today


def drop_already_notified(
    reminders: Sequence[EligibleReminder], today: date, tz: tzinfo
) -> tuple[list[EligibleReminder], list[EligibleReminder]]:
    """Split due reminders into (still pending, already sent today)."""
    pending: list[EligibleReminder] = []
    skipped: list[EligibleReminder] = []

    for reminder in reminders:
        if already_notified(reminder.record, today, tz):
            skipped.append(reminder)
        else:
            pending.append(reminder)

    return pending, skipped


def mark_sent(
    store: IdempotenceStore,
    record: BirthdayRecord,
    now: datetime,
    execution_id: str | None = None,
    log_dir: str | None = None,
) -> bool:
    """
    Record a successful send on the record and in the store.

    The in-memory record is always updated so a repeat attempt in this process
    is filtered; the store write is a single-row update.

    Returns:
        True if the store accepted the update, False if it failed (logged)
    """
    notification_count = record.notification_count + 1
    record.last_notified_at = now
    record.notification_count = notification_count
    record.last_execution_id = execution_id

    try:
        store.update_idempotence_fields(
            record.id, now, notification_count, execution_id=execution_id
        )
        return True

    except StoreError as e:
        error_file = log_reminder_error(
            error_type="write_back",
            error_message=str(e),
            context={
                "record_id": record.id,
                "notification_count": notification_count,
                "last_notified_at": now.isoformat(),
                "execution_id": execution_id,
            },
            log_dir=log_dir,
        )
        print(f"  ⚠️  Sent, but could not mark {record.display_name} as notified: {e}")
        print("    A duplicate may go out on the next run.")
        if error_file:
            print(f"    Details logged to: {error_file}")
        return False
