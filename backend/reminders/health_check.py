"""
Health check for the reminder engine.

Verifies the roster and the transport credentials, then reads today's
execution log. Critical problems are also sent as an alert through the
configured transport.

Exit codes: 0 healthy, 1 degraded, 2 unhealthy.

Usage:
    uv run python -m reminders.health_check

    # Report only, never send the alert
    uv run python -m reminders.health_check --no-alert
"""

import argparse
import os
import sys
from datetime import date, datetime, timedelta
from typing import Any, Protocol

from pydantic import BaseModel, Field

from config.settings import ReminderSettings
from reminders.clock import SystemClock
from reminders.date_engine import local_today
from reminders.dispatcher import Clock
from reminders.run_log import execution_log_path, read_run_log
from reminders.store import SupabaseBirthdayStore
from reminders.transport import Transport, WhatsAppTransport, build_transport
from shared.db import get_supabase_client
from shared.errors import ConfigError, StoreError, TransportError

HEALTHY = "HEALTHY"
DEGRADED = "DEGRADED"
UNHEALTHY = "UNHEALTHY"
UNKNOWN = "UNKNOWN"

EXIT_CODES = {HEALTHY: 0, DEGRADED: 1, UNHEALTHY: 2}

STATUS_EMOJI = {HEALTHY: "✅", DEGRADED: "⚠️", UNHEALTHY: "❌", UNKNOWN: "❓"}

SLOW_TRANSPORT_MS = 5000
STALE_RUN_AFTER = timedelta(hours=2)
MAX_LOG_BYTES = 50 * 1024 * 1024


class RosterSource(Protocol):
    def fetch_all(self) -> list[dict[str, Any]]: ...


class ServiceHealth(BaseModel):
    status: str = Field(..., pattern="^(HEALTHY|DEGRADED|UNHEALTHY|UNKNOWN)$")
    details: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class HealthAlert(BaseModel):
    level: str = Field(..., pattern="^(WARNING|CRITICAL)$")
    service: str
    message: str


class HealthReport(BaseModel):
    checked_at: datetime
    overall: str = UNKNOWN
    services: dict[str, ServiceHealth] = Field(default_factory=dict)
    alerts: list[HealthAlert] = Field(default_factory=list)

    @property
    def critical_alerts(self) -> list[HealthAlert]:
        return [a for a in self.alerts if a.level == "CRITICAL"]

    @property
    def exit_code(self) -> int:
        return EXIT_CODES.get(self.overall, 2)


def check_store(report: HealthReport, store: RosterSource | None, error: str | None = None) -> None:
    """Read the whole roster once; any failure is critical."""
    print("🗄️  Checking the birthday store...")
    if store is None:
        error = error or "store is not configured"
    else:
        try:
            rows = store.fetch_all()
            report.services["store"] = ServiceHealth(status=HEALTHY, details={"records": len(rows)})
            print(f"✓ Store OK - {len(rows)} records")
            return
        except StoreError as e:
            error = str(e)

    report.services["store"] = ServiceHealth(status=UNHEALTHY, error=error)
    report.alerts.append(HealthAlert(level="CRITICAL", service="store", message=f"Store unavailable: {error}"))
    print(f"✗ Store ERROR: {error}")


def check_transport(report: HealthReport, transport: Transport, clock: Clock) -> None:
    """
    Verify the transport credentials.

    Twilio has an account endpoint to call; for Resend the key was already
    validated as present when the settings were loaded.
    """
    print("📱 Checking the transport...")
    if not isinstance(transport, WhatsAppTransport):
        report.services["transport"] = ServiceHealth(status=HEALTHY, details={"transport": "resend"})
        print("✓ Transport OK - Resend API key configured")
        return

    started = clock.monotonic()
    try:
        account_status = transport.account_status()
    except TransportError as e:
        report.services["transport"] = ServiceHealth(status=UNHEALTHY, error=str(e))
        report.alerts.append(
            HealthAlert(level="CRITICAL", service="transport", message=f"Twilio unavailable: {e}")
        )
        print(f"✗ Transport ERROR: {e}")
        return

    response_ms = int((clock.monotonic() - started) * 1000)
    report.services["transport"] = ServiceHealth(
        status=HEALTHY,
        details={"transport": "whatsapp", "account_status": account_status, "response_ms": response_ms},
    )
    print(f"✓ Transport OK - Twilio account {account_status} ({response_ms}ms)")

    if response_ms > SLOW_TRANSPORT_MS:
        report.alerts.append(
            HealthAlert(level="WARNING", service="transport", message=f"Slow Twilio response: {response_ms}ms")
        )


def check_executions(report: HealthReport, log_dir: str | None, now: datetime) -> None:
    """Count today's runs and errors, and warn when the last run is stale."""
    print("🔍 Checking today's executions...")
    runs = read_run_log(log_dir, local_today(now))

    if not runs:
        report.services["executions"] = ServiceHealth(status=UNKNOWN, details={"runs": 0})
        report.alerts.append(
            HealthAlert(level="WARNING", service="executions", message="No runs logged today")
        )
        print("⚠️  No execution log found for today")
        return

    errors = sum(run.failed for run in runs) + sum(1 for run in runs if run.is_fatal)
    last_run = runs[-1].started_at

    if errors == 0:
        status = HEALTHY
    elif errors < 3:
        status = DEGRADED
    else:
        status = UNHEALTHY

    report.services["executions"] = ServiceHealth(
        status=status,
        details={
            "runs": len(runs),
            "errors": errors,
            "sent": sum(run.sent for run in runs),
            "last_run": last_run.isoformat(timespec="seconds"),
        },
    )
    print(f"✓ Executions checked - today: {len(runs)}, errors: {errors}")

    if errors > 5:
        report.alerts.append(
            HealthAlert(level="CRITICAL", service="executions", message=f"Too many errors today: {errors}")
        )

    since_last = now - last_run
    if since_last > STALE_RUN_AFTER:
        hours = round(since_last.total_seconds() / 3600)
        report.alerts.append(
            HealthAlert(level="WARNING", service="executions", message=f"Last run was {hours} hours ago")
        )


def check_log_storage(report: HealthReport, log_dir: str | None, today: date) -> None:
    """Count files in the log directory and flag it once it grows past 50MB."""
    log_dir = os.path.dirname(execution_log_path(log_dir, today))
    files = [
        os.path.join(log_dir, name)
        for name in (os.listdir(log_dir) if os.path.isdir(log_dir) else [])
    ]
    total_bytes = sum(os.path.getsize(path) for path in files if os.path.isfile(path))

    report.services["storage"] = ServiceHealth(
        status=HEALTHY, details={"log_files": len(files), "total_kb": round(total_bytes / 1024)}
    )

    if total_bytes > MAX_LOG_BYTES:
        report.alerts.append(
            HealthAlert(
                level="WARNING",
                service="storage",
                message=f"Logs are large: {round(total_bytes / 1024 / 1024)}MB",
            )
        )


def determine_overall(report: HealthReport) -> str:
    statuses = [service.status for service in report.services.values()]
    warnings = [a for a in report.alerts if a.level == "WARNING"]

    if report.critical_alerts or UNHEALTHY in statuses:
        return UNHEALTHY
    if DEGRADED in statuses or len(warnings) > 2:
        return DEGRADED
    return HEALTHY


def run_health_check(
    settings: ReminderSettings,
    store: RosterSource | None,
    transport: Transport,
    clock: Clock | None = None,
    store_error: str | None = None,
) -> HealthReport:
    """
    Run every check and work out the overall status.

    Args:
        settings: Validated configuration
        store: Birthday roster (None when it could not be configured)
        transport: Outbound messaging channel to verify
        clock: Time source (defaults to the real clock in settings.timezone)
        store_error: Why the store is None, for the report

    Returns:
        HealthReport with per-service status, alerts and the overall verdict
    """
    clock = clock or SystemClock(settings.tz)
    now = clock.now()
    report = HealthReport(checked_at=now)

    print("🏥 Running health check...\n")
    check_store(report, store, error=store_error)
    check_transport(report, transport, clock)
    check_executions(report, settings.log_dir, now)
    check_log_storage(report, settings.log_dir, local_today(now))

    report.overall = determine_overall(report)
    return report


def format_health_report(report: HealthReport) -> str:
    text = f"""🏥 *HEALTH CHECK* {STATUS_EMOJI[report.overall]}
Status: {report.overall}
Checked: {report.checked_at.strftime('%Y-%m-%d %H:%M %Z').strip()}

🔧 *SERVICES*
"""
    for name, service in report.services.items():
        text += f"{STATUS_EMOJI.get(service.status, '❓')} {name.upper()}: {service.status}"
        if service.error:
            text += f" ({service.error})"
        text += "\n"

    text += f"\n🔔 *ALERTS*: {len(report.alerts)}\n"
    if not report.alerts:
        text += "✅ No active alerts\n"
    for alert in report.alerts:
        icon = "🚨" if alert.level == "CRITICAL" else "⚠️"
        text += f"{icon} {alert.service}: {alert.message}\n"

    return text


def send_critical_alert(report: HealthReport, transport: Transport, recipient: str) -> bool:
    """
    Send the critical alerts, if any, through the transport.

    Returns:
        True if an alert went out
    """
    if not report.critical_alerts:
        return False

    print(f"🚨 {len(report.critical_alerts)} critical alert(s)")
    lines = [
        "🚨 *CRITICAL ALERT - BIRTHDAY REMINDERS*",
        "",
        f"Status: {report.overall}",
        f"Checked: {report.checked_at.isoformat(timespec='seconds')}",
        "",
    ]
    lines += [f"❌ {alert.service}: {alert.message}" for alert in report.critical_alerts]
    lines += ["", "Check the logs and configuration."]

    try:
        receipt = transport.send(
            recipient, "\n".join(lines), subject="🚨 Birthday reminders health check failed"
        )
    except TransportError as e:
        print(f"✗ Failed to send critical alert: {e}")
        return False

    print(f"✓ Critical alert sent (receipt: {receipt.receipt_id})")
    return True


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Check the health of the reminder engine")
    parser.add_argument(
        "--no-alert", action="store_true", help="Don't send critical alerts through the transport"
    )
    args = parser.parse_args()

    try:
        settings = ReminderSettings.from_env()
    except ConfigError as e:
        print(f"✗ {e}")
        sys.exit(2)

    store = None
    store_error = None
    try:
        store = SupabaseBirthdayStore(
            get_supabase_client(settings.supabase_url, settings.supabase_key),
            table=settings.birthdays_table,
        )
    except ConfigError as e:
        store_error = str(e)

    transport = build_transport(settings)
    report = run_health_check(settings, store, transport, store_error=store_error)
    print()
    print(format_health_report(report))

    if not args.no_alert and not settings.test_mode:
        send_critical_alert(report, transport, settings.recipient)

    sys.exit(report.exit_code)


if __name__ == "__main__":
    main()
