"""
CLI script for checking the birthday roster and sending due reminders.

Usage:
    # On-demand run (sends once the local clock has reached NOTIFICATION_TIME)
    uv run python -m reminders.process_reminders

    # Scheduled run from an hourly cron: only sends within the send window
    # of each record's send time, and does nothing when no window is open
    uv run python -m reminders.process_reminders --scheduled

    # Send today's reminders now, ignoring the configured send time
    uv run python -m reminders.process_reminders --force

    # Dry run (render messages, don't send or mark anything)
    uv run python -m reminders.process_reminders --dry-run

    # Show who is in today's queue without sending
    uv run python -m reminders.process_reminders --preview

    # Evaluate as if it were another day
    uv run python -m reminders.process_reminders --preview --today 2026-03-14

Assumes a single run at a time: overlapping invocations are not detected and
must be prevented by whatever schedules this script.
"""

import argparse
import signal
import sys
import threading
from datetime import date
from typing import Any, Protocol

from config.settings import ReminderSettings
from models import RecordIssue, RunResult
from reminders.clock import SystemClock
from reminders.date_engine import age, local_today
from reminders.dispatcher import Clock, ReminderDispatcher, new_execution_id
from reminders.eligibility import build_records, select_eligible, within_send_window
from reminders.error_logger import log_reminder_error
from reminders.idempotence import IdempotenceStore, already_notified, drop_already_notified
from reminders.run_log import save_run_log
from reminders.store import SupabaseBirthdayStore
from reminders.transport import Transport, build_transport
from shared.db import get_supabase_client
from shared.errors import ConfigError, StoreError
from shared.utils import print_run_summary


class RecordStore(IdempotenceStore, Protocol):
    def fetch_all(self) -> list[dict[str, Any]]: ...


def run_reminders(
    settings: ReminderSettings,
    store: RecordStore,
    transport: Transport,
    clock: Clock | None = None,
    cancel_event: threading.Event | None = None,
    force_send: bool | None = None,
    dry_run: bool | None = None,
    scheduled: bool = False,
    today: date | None = None,
) -> RunResult:
    """
    Run one full reminder check: load, filter, guard, dispatch.

    Args:
        settings: Validated configuration
        store: Birthday roster
        transport: Outbound messaging channel
        clock: Time source (defaults to the real clock in settings.timezone)
        cancel_event: Set it to stop before the next send
        force_send: Ignore the time-of-day gate (defaults to settings.force_send)
        dry_run: Render without sending (defaults to settings.test_mode)
        scheduled: Only send within settings.send_window_minutes of each record's
            send time; status 'waiting' when nothing is due and the default window is closed
        today: Evaluate as of this date instead of today

    Returns:
        RunResult. Status 'failed' when the roster could not be loaded; counts
        gathered before the failure are kept.
    """
    clock = clock or SystemClock(settings.tz)
    force_send = settings.force_send if force_send is None else force_send
    dry_run = settings.test_mode if dry_run is None else dry_run

    now = clock.now()
    started = clock.monotonic()
    result = RunResult(execution_id=new_execution_id(now), started_at=now)

    print(f"[{now.isoformat(timespec='seconds')}] Birthday reminder check ({result.execution_id})")
    print(f"Timezone: {settings.timezone} | Default timing: {settings.default_timing.value} | Send time: {settings.send_time}")

    try:
        if not settings.notifications_enabled:
            print("📴 Notifications are disabled (NOTIFICATIONS_ENABLED=false)")
            result.status = "disabled"
            return result

        rows = store.fetch_all()
        result.total_records = len(rows)

        records, issues = build_records(rows)
        selection = select_eligible(
            records,
            now,
            settings,
            force_send=force_send,
            today=today,
            send_window=settings.send_window_minutes if scheduled else None,
        )

        # Records with their own send time can open a window of their own
        if (
            scheduled
            and not selection.eligible
            and not within_send_window(now, settings.send_time, settings.send_window_minutes)
        ):
            print(f"⏰ Outside the send window ({settings.send_time} ± {settings.send_window_minutes} min). Waiting...")
            result.status = "waiting"
            return result

        print(f"📋 Loaded {len(rows)} birthdays")
        result.data_errors = issues + selection.data_errors
        _report_data_errors(result.data_errors)

        pending, skipped = drop_already_notified(
            selection.eligible, today or local_today(now), settings.tz
        )
        result.skipped = len(skipped)
        for reminder in skipped:
            print(f"  ⊘ {reminder.record.display_name} was already notified today, skipping")

        if not pending:
            print("No reminders to send right now.")

        if dry_run:
            print("🧪 TEST MODE - no messages will be sent")

        dispatcher = ReminderDispatcher(
            transport=transport,
            store=store,
            destination=settings.recipient,
            inter_send_delay=settings.inter_send_delay_seconds,
            clock=clock,
            cancel_event=cancel_event,
            dry_run=dry_run,
            log_dir=settings.log_dir,
        )
        dispatcher.dispatch(pending, result)

    except StoreError as e:
        result.status = "failed"
        result.error = str(e)
        print(f"✗ Could not load the roster: {e}")
        error_file = log_reminder_error(
            error_type="fetch",
            error_message=str(e),
            context={"execution_id": result.execution_id, "table": settings.birthdays_table},
            log_dir=settings.log_dir,
        )
        if error_file:
            print(f"  Error details logged to: {error_file}")

    finally:
        result.duration_ms = int((clock.monotonic() - started) * 1000)

    print_run_summary(result)
    save_run_log(result, settings.log_dir)
    return result


def _report_data_errors(issues: list[RecordIssue]) -> None:
    for issue in issues:
        print(f"  ⚠️  Skipping record {issue.record_id or '(no id)'}: {issue.message}")


def preview_queue(
    settings: ReminderSettings,
    store: RecordStore,
    clock: Clock | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """
    List the reminders due today, regardless of the time of day.

    Raises:
        StoreError: If the roster cannot be loaded
    """
    clock = clock or SystemClock(settings.tz)
    now = clock.now()
    today = today or local_today(now)

    records, _ = build_records(store.fetch_all())
    selection = select_eligible(records, now, settings, force_send=True, today=today)

    return [
        {
            "id": reminder.record.id,
            "rank": reminder.record.rank,
            "name": reminder.record.name,
            "turning": age(reminder.event, reminder.event_date),
            "relationship": reminder.record.relationship,
            "unit": reminder.record.unit or "",
            "event_date": reminder.event_date.isoformat(),
            "timing": reminder.policy.value,
            "already_notified": already_notified(reminder.record, today, settings.tz),
        }
        for reminder in selection.eligible
    ]


def _print_preview(queue: list[dict[str, Any]]) -> None:
    print(f"\n{len(queue)} reminder(s) in today's queue")
    print("-" * 60)
    for entry in queue:
        turning = f", turning {entry['turning']}" if entry["turning"] is not None else ""
        status = " [already sent]" if entry["already_notified"] else ""
        unit = f" - {entry['unit']}" if entry["unit"] else ""
        print(f"{entry['event_date']}  {entry['rank']} {entry['name']}{turning} ({entry['relationship']}){unit}{status}")


def _install_cancel_handlers(cancel_event: threading.Event) -> None:
    def _cancel(signum, frame):
        print("\n⚠️  Cancellation requested, stopping before the next send...")
        cancel_event.set()

    signal.signal(signal.SIGINT, _cancel)
    signal.signal(signal.SIGTERM, _cancel)


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Check birthdays and send due reminders")

    parser.add_argument(
        "--scheduled",
        action="store_true",
        help=(
            "Only send within SEND_WINDOW_MINUTES of each record's send time "
            "(NOTIFICATION_TIME unless overridden); for hourly cron"
        ),
    )
    parser.add_argument(
        "--force", action="store_true", help="Send today's reminders regardless of the time of day"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Dry run mode (don't actually send messages)"
    )
    parser.add_argument(
        "--preview", action="store_true", help="List today's queue without sending"
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        help="Evaluate as of this date (YYYY-MM-DD) instead of today",
    )

    args = parser.parse_args()

    try:
        settings = ReminderSettings.from_env()
        store = SupabaseBirthdayStore(
            get_supabase_client(settings.supabase_url, settings.supabase_key),
            table=settings.birthdays_table,
        )
    except ConfigError as e:
        print(f"✗ {e}")
        sys.exit(1)

    if args.preview:
        try:
            _print_preview(preview_queue(settings, store, today=args.today))
        except StoreError as e:
            print(f"✗ Could not load the roster: {e}")
            sys.exit(1)
        return

    cancel_event = threading.Event()
    _install_cancel_handlers(cancel_event)

    result = run_reminders(
        settings,
        store,
        build_transport(settings),
        cancel_event=cancel_event,
        force_send=args.force or None,
        dry_run=args.dry_run or None,
        scheduled=args.scheduled,
        today=args.today,
    )

    if result.is_fatal:
        sys.exit(1)


if __name__ == "__main__":
    main()
