"""
Sequential reminder dispatch.

Reminders go out one at a time with a fixed pause between sends, which keeps
us under the messaging API's rate limit without a separate limiter. A failed
send is recorded and the loop moves on; it is not retried in the same run,
and since the record stays unmarked it is picked up again by the next run on
the same day.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Protocol, Sequence

from models import DeliveryOutcome, RunResult
from reminders.clock import SystemClock
from reminders.eligibility import EligibleReminder
from reminders.error_logger import log_reminder_error
from reminders.idempotence import IdempotenceStore, mark_sent
from reminders.message_composer import compose_reminder
from reminders.transport import Transport
from shared.errors import TransportError


class Clock(Protocol):
    def now(self) -> datetime: ...

    def monotonic(self) -> float: ...

    def sleep(self, seconds: float, cancel_event: threading.Event | None = None) -> bool: ...


def new_execution_id(now: datetime) -> str:
    return f"exec_{now.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"


class ReminderDispatcher:
    """Sends due reminders one by one and accounts for every attempt."""

    def __init__(
        self,
        transport: Transport,
        store: IdempotenceStore,
        destination: str,
        inter_send_delay: float = 2.0,
        clock: Clock | None = None,
        cancel_event: threading.Event | None = None,
        dry_run: bool = False,
        log_dir: str | None = None,
    ):
        self.transport = transport
        self.store = store
        self.destination = destination
        self.inter_send_delay = inter_send_delay
        self.clock = clock or SystemClock(timezone.utc)
        self.cancel_event = cancel_event
        self.dry_run = dry_run
        self.log_dir = log_dir

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def dispatch(
        self, reminders: Sequence[EligibleReminder], result: RunResult | None = None
    ) -> RunResult:
        """
        Send every reminder in order.

        Args:
            reminders: Due reminders that passed the idempotence guard
            result: Run result to fill in (a fresh one is created if omitted)

        Returns:
            The run result with counts, per-record outcomes and duration
        """
        started = self.clock.monotonic()
        if result is None:
            now = self.clock.now()
            result = RunResult(execution_id=new_execution_id(now), started_at=now)

        result.eligible = len(reminders)

        for index, reminder in enumerate(reminders):
            if self.cancelled:
                print(f"  ⚠️  Cancelled with {len(reminders) - index} reminder(s) left unsent")
                result.status = "cancelled"
                break

            self._deliver(reminder, result)

            is_last = index == len(reminders) - 1
            if not is_last and not self.dry_run and self.inter_send_delay > 0:
                print(f"  ⏳ Waiting {self.inter_send_delay:g}s before the next send...")
                if self.clock.sleep(self.inter_send_delay, self.cancel_event):
                    print(f"  ⚠️  Cancelled with {len(reminders) - index - 1} reminder(s) left unsent")
                    result.status = "cancelled"
                    break

        result.duration_ms += int((self.clock.monotonic() - started) * 1000)
        return result

    def _deliver(self, reminder: EligibleReminder, result: RunResult) -> None:
        record = reminder.record
        now = self.clock.now()

        if self.dry_run:
            compose_reminder(reminder, now, execution_id=result.execution_id)
            print(f"  🧪 [DRY RUN] Would send reminder for {record.display_name}")
            result.tested += 1
            result.outcomes.append(
                DeliveryOutcome(
                    record_id=record.id,
                    display_name=record.display_name,
                    status="dry_run",
                    timestamp=now,
                )
            )
            return

        print(f"  📤 Sending reminder for {record.display_name}...")
        send_started = self.clock.monotonic()

        try:
            message = compose_reminder(reminder, now, execution_id=result.execution_id)
            receipt = self.transport.send(
                self.destination, message.text, subject=message.subject, html=message.html
            )
        except TransportError as e:
            self._record_failure(result, reminder, send_started, "TransportError", e.code, e.message)
            return
        except Exception as e:
            # One bad record never aborts the batch
            self._record_failure(result, reminder, send_started, type(e).__name__, "UNKNOWN", str(e))
            return

        latency_ms = int((self.clock.monotonic() - send_started) * 1000)
        sent_at = self.clock.now()
        result.sent += 1
        result.outcomes.append(
            DeliveryOutcome(
                record_id=record.id,
                display_name=record.display_name,
                status="sent",
                receipt_id=receipt.receipt_id,
                transport_status=receipt.status,
                latency_ms=latency_ms,
                timestamp=sent_at,
            )
        )
        print(f"  ✓ Sent reminder for {record.display_name} (receipt: {receipt.receipt_id})")

        mark_sent(
            self.store,
            record,
            sent_at,
            execution_id=result.execution_id,
            log_dir=self.log_dir,
        )

    def _record_failure(
        self,
        result: RunResult,
        reminder: EligibleReminder,
        send_started: float,
        error_kind: str,
        error_code: str,
        error_message: str,
    ) -> None:
        record = reminder.record
        result.failed += 1
        result.outcomes.append(
            DeliveryOutcome(
                record_id=record.id,
                display_name=record.display_name,
                status="failed",
                error_kind=error_kind,
                error_code=error_code,
                error_message=error_message,
                latency_ms=int((self.clock.monotonic() - send_started) * 1000),
                timestamp=self.clock.now(),
            )
        )
        print(f"  ✗ Failed to send reminder for {record.display_name}: {error_message}")

        error_file = log_reminder_error(
            error_type="sending",
            error_message=error_message,
            context={
                "record_id": record.id,
                "display_name": record.display_name,
                "error_kind": error_kind,
                "error_code": error_code,
                "execution_id": result.execution_id,
            },
            log_dir=self.log_dir,
        )
        if error_file:
            print(f"    Error details logged to: {error_file}")
