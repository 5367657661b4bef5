"""Birthday reminder scheduling and dispatch."""

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
    parse_event_date,
)
from reminders.dispatcher import ReminderDispatcher
from reminders.eligibility import EligibleReminder, select_eligible
from reminders.idempotence import already_notified, mark_sent
from reminders.message_composer import compose_reminder

__all__ = [
    "EventDate",
    "parse_event_date",
    "local_today",
    "lead_days",
    "next_occurrence",
    "age",
    "days_until_event",
    "days_until_notification",
    "next_notification_date",
    "is_eligible_today",
    "EligibleReminder",
    "select_eligible",
    "already_notified",
    "mark_sent",
    "compose_reminder",
    "ReminderDispatcher",
]
