"""
Daily roster report.

Summarises who has a birthday today and in the coming weeks, how the roster
breaks down by unit and rank, and when the reminder engine last ran.

Usage:
    # Print and save today's report
    uv run python -m reminders.daily_report

    # Also deliver it through the configured transport
    uv run python -m reminders.daily_report --send
"""

import argparse
import os
import sys
from collections import Counter
from datetime import date

from pydantic import BaseModel, Field

from config.settings import ReminderSettings
from models import BirthdayRecord, TimingPolicy
from reminders.clock import SystemClock
from reminders.date_engine import (
    age,
    days_until_event,
    local_today,
    next_notification_date,
    next_occurrence,
    parse_event_date,
)
from reminders.eligibility import build_records, resolve_policy
from reminders.run_log import read_run_log
from reminders.store import SupabaseBirthdayStore
from reminders.transport import build_transport
from shared.db import get_supabase_client
from shared.errors import ConfigError, DataError, StoreError, TransportError

UNKNOWN = "Not informed"


class UpcomingBirthday(BaseModel):
    record_id: str
    display_name: str
    unit: str
    event_date: date
    days_until: int
    days_until_notification: int
    turning: int | None = None


class DailyReport(BaseModel):
    date: date
    total_birthdays: int
    today: list[UpcomingBirthday] = Field(default_factory=list)
    next_7_days: list[UpcomingBirthday] = Field(default_factory=list)
    next_15_days: list[UpcomingBirthday] = Field(default_factory=list)
    next_30_days: list[UpcomingBirthday] = Field(default_factory=list)
    this_month_count: int = 0
    this_month_average_age: float | None = None
    by_unit: dict[str, int] = Field(default_factory=dict)
    by_rank: dict[str, int] = Field(default_factory=dict)
    data_errors: int = 0
    last_execution: str | None = None


def build_daily_report(
    records: list[BirthdayRecord],
    today: date,
    default_policy: TimingPolicy,
    data_errors: int = 0,
    last_execution: str | None = None,
) -> DailyReport:
    """
    Compute the report for `today`.

    Records with unparseable dates still count towards totals and the
    unit/rank breakdown, but not towards any date-based section.
    """
    upcoming: list[UpcomingBirthday] = []
    month_ages: list[int] = []
    month_count = 0

    for record in records:
        try:
            event = parse_event_date(record.date)
        except DataError:
            data_errors += 1
            continue

        if event.month == today.month:
            month_count += 1
            current_age = age(event, today)
            if current_age is not None:
                month_ages.append(current_age)

        days = days_until_event(event, today)
        if days > 30:
            continue

        policy = resolve_policy(record, default_policy)
        occurrence = next_occurrence(event, today)
        upcoming.append(
            UpcomingBirthday(
                record_id=record.id,
                display_name=record.display_name,
                unit=record.unit or UNKNOWN,
                event_date=occurrence,
                days_until=days,
                days_until_notification=(next_notification_date(event, policy, today) - today).days,
                turning=age(event, occurrence),
            )
        )

    upcoming.sort(key=lambda b: (b.days_until, b.display_name))

    return DailyReport(
        date=today,
        total_birthdays=len(records),
        today=[b for b in upcoming if b.days_until == 0],
        next_7_days=[b for b in upcoming if b.days_until <= 7],
        next_15_days=[b for b in upcoming if b.days_until <= 15],
        next_30_days=upcoming,
        this_month_count=month_count,
        this_month_average_age=round(sum(month_ages) / len(month_ages), 1) if month_ages else None,
        by_unit=dict(Counter(r.unit or UNKNOWN for r in records).most_common()),
        by_rank=dict(Counter(r.rank or UNKNOWN for r in records).most_common()),
        data_errors=data_errors,
        last_execution=last_execution,
    )


def format_daily_report(report: DailyReport) -> str:
    """Plain-text rendering, readable in a terminal and in WhatsApp."""
    text = f"""📊 *DAILY BIRTHDAY REPORT*
{report.date.strftime('%B %d, %Y')}

Roster: {report.total_birthdays} birthdays
Today: {len(report.today)}
Next 7 days: {len(report.next_7_days)}
Next 30 days: {len(report.next_30_days)}
This month: {report.this_month_count}"""

    if report.this_month_average_age is not None:
        text += f" (average age {report.this_month_average_age})"
    text += "\n"

    if report.today:
        text += "\n🎂 *TODAY*\n"
        for b in report.today:
            turning = f", turning {b.turning}" if b.turning is not None else ""
            text += f"- {b.display_name}{turning} ({b.unit})\n"

    if report.next_7_days:
        text += "\n📅 *NEXT 7 DAYS*\n"
        for b in report.next_7_days:
            if b.days_until == 0:
                continue
            text += f"- {b.event_date.strftime('%b %d')}: {b.display_name} in {b.days_until} day(s), reminder in {b.days_until_notification} day(s)\n"

    if report.by_unit:
        text += "\n🏢 *BY UNIT*\n"
        for unit, count in list(report.by_unit.items())[:5]:
            text += f"- {unit}: {count}\n"

    if report.by_rank:
        text += "\n🎖️ *BY RANK*\n"
        for rank, count in report.by_rank.items():
            text += f"- {rank}: {count}\n"

    text += "\n---\n"
    text += f"Last reminder run: {report.last_execution or 'never'}\n"
    if report.data_errors:
        text += f"⚠️ Records with invalid data: {report.data_errors}\n"

    return text


def save_daily_report(text: str, day: date, report_dir: str | None = None) -> str:
    """Write the report to reports/daily-report-YYYY-MM-DD.txt and return its path."""
    report_dir = report_dir or os.path.join(os.getcwd(), "reports")
    os.makedirs(report_dir, exist_ok=True)
    path = os.path.join(report_dir, f"daily-report-{day.isoformat()}.txt")
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def _last_execution(log_dir: str | None, day: date) -> str | None:
    runs = read_run_log(log_dir, day)
    if not runs:
        return None
    last = runs[-1]
    return f"{last.started_at.strftime('%Y-%m-%d %H:%M')} ({last.status}, {last.sent} sent, {last.failed} failed)"


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Generate the daily birthday report")
    parser.add_argument(
        "--send", action="store_true", help="Also send the report through the configured transport"
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

    today = local_today(SystemClock(settings.tz).now())

    try:
        records, issues = build_records(store.fetch_all())
    except StoreError as e:
        print(f"✗ Could not load the roster: {e}")
        sys.exit(1)

    report = build_daily_report(
        records,
        today,
        settings.default_timing,
        data_errors=len(issues),
        last_execution=_last_execution(settings.log_dir, today),
    )
    text = format_daily_report(report)
    print(text)

    path = save_daily_report(text, today)
    print(f"💾 Report saved: {path}")

    if args.send:
        try:
            receipt = build_transport(settings).send(
                settings.recipient, text, subject=f"Daily birthday report - {today.isoformat()}"
            )
            print(f"✓ Report sent (receipt: {receipt.receipt_id})")
        except TransportError as e:
            print(f"✗ Failed to send report: {e}")
            sys.exit(1)


if __name__ == "__main__":
    main()
