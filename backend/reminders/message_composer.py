"""
Reminder message rendering.

Turns a due reminder into a subject, a plain-text body (WhatsApp-style
*bold* markup, also used as the email text part) and an HTML body.
"""

from datetime import datetime
from html import escape
from typing import Any

from pydantic import BaseModel

from models import TimingPolicy
from reminders.date_engine import age
from reminders.eligibility import EligibleReminder

WHEN_TEXT = {
    TimingPolicy.SAME_DAY: "TODAY",
    TimingPolicy.ONE_DAY: "TOMORROW",
    TimingPolicy.TWO_DAYS: "IN 2 DAYS",
    TimingPolicy.THREE_DAYS: "IN 3 DAYS",
    TimingPolicy.ONE_WEEK: "IN 1 WEEK",
}

URGENCY_EMOJI = {
    TimingPolicy.SAME_DAY: "🚨",
    TimingPolicy.ONE_DAY: "⚠️",
}


class ReminderMessage(BaseModel):
    subject: str
    text: str
    html: str


def when_text(policy: TimingPolicy, days_until_event: int) -> str:
    """'TODAY', 'TOMORROW', 'IN 2 DAYS'... for the policy that triggered the send."""
    if days_until_event == policy.lead_days:
        return WHEN_TEXT[policy]
    # Forced or re-evaluated runs can land on a different day
    if days_until_event == 0:
        return "TODAY"
    if days_until_event == 1:
        return "TOMORROW"
    return f"IN {days_until_event} DAYS"


def _prepare_message_data(reminder: EligibleReminder, now: datetime) -> dict[str, Any]:
    """Extract and format every field once so the builders only handle layout."""
    record = reminder.record
    return {
        "emoji": URGENCY_EMOJI.get(reminder.policy, "📅"),
        "date_formatted": reminder.event_date.strftime("%B %d, %Y"),
        "when": when_text(reminder.policy, reminder.days_until_event),
        "rank": record.rank,
        "name": record.name,
        "display_name": record.display_name,
        "turning": age(reminder.event, reminder.event_date),
        "phone": record.phone,
        "relationship": record.relationship,
        "unit": record.unit,
        "generated_at": now.strftime("%Y-%m-%d %H:%M %Z").strip(),
    }


def compose_reminder(
    reminder: EligibleReminder, now: datetime, execution_id: str | None = None
) -> ReminderMessage:
    """
    Render the reminder for one record.

    Args:
        reminder: The due reminder (record, policy and upcoming event date)
        now: Time of rendering, shown in the footer
        execution_id: Run identifier, shown in the footer when given

    Returns:
        ReminderMessage with subject, text and html
    """
    data = _prepare_message_data(reminder, now)
    subject = f"🎂 Birthday reminder: {data['display_name']} ({data['when'].lower()})"
    return ReminderMessage(
        subject=subject,
        text=_build_reminder_text(data, execution_id),
        html=_build_reminder_html(data, execution_id),
    )


def _build_reminder_text(data: dict[str, Any], execution_id: str | None) -> str:
    lines = [
        f"{data['emoji']} *BIRTHDAY REMINDER* 🎂",
        "",
        f"📅 *Date:* {data['date_formatted']} ({data['when']}!)",
    ]
    if data["rank"]:
        lines.append(f"🎖️ *Rank:* {data['rank']}")
    lines.append(f"👤 *Name:* {data['name']}")
    if data["turning"] is not None:
        lines.append(f"🎈 *Turning:* {data['turning']}")
    if data["phone"]:
        lines.append(f"📞 *Phone:* {data['phone']}")
    if data["relationship"]:
        lines.append(f"👥 *Relationship:* {data['relationship']}")
    if data["unit"]:
        lines.append(f"🏢 *Unit:* {data['unit']}")

    lines += [
        "",
        "🎁 *Don't forget to congratulate them!*",
        "💐 *Ideas:* a call, a message, a gift or a visit",
        "",
        "---",
        "_Automatic birthday reminder_ 🤖",
        f"_{data['generated_at']}_",
    ]
    if execution_id:
        lines.append(f"_Run: {execution_id}_")

    return "\n".join(lines)


def _build_reminder_html(data: dict[str, Any], execution_id: str | None) -> str:
    rows = [("Date", f"{data['date_formatted']} ({data['when']}!)")]
    if data["rank"]:
        rows.append(("Rank", data["rank"]))
    rows.append(("Name", data["name"]))
    if data["turning"] is not None:
        rows.append(("Turning", str(data["turning"])))
    if data["phone"]:
        rows.append(("Phone", data["phone"]))
    if data["relationship"]:
        rows.append(("Relationship", data["relationship"]))
    if data["unit"]:
        rows.append(("Unit", data["unit"]))

    html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Birthday Reminder</title>
</head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #1e40af; font-size: 22px;">{data['emoji']} Birthday Reminder 🎂</h1>
    <table style="border-collapse: collapse;">
"""
    for label, value in rows:
        html += f"""
        <tr>
            <td style="padding: 4px 12px 4px 0; color: #6b7280;">{label}</td>
            <td style="padding: 4px 0;"><strong>{escape(value)}</strong></td>
        </tr>
"""

    run_text = f" • Run {escape(execution_id)}" if execution_id else ""
    html += f"""
    </table>
    <p style="margin-top: 20px;">🎁 Don't forget to congratulate them! A call, a message, a gift or a visit.</p>
    <p style="margin-top: 30px; font-size: 12px; color: #9ca3af;">
        Automatic birthday reminder • {escape(data['generated_at'])}{run_text}
    </p>
</body>
</html>
"""
    return html
