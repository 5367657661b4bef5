"""Pydantic models describing the outcome of one reminder run."""

from datetime import datetime

from pydantic import BaseModel, Field

from models.types import ExecutionID, ReceiptID, RecordID


class SendReceipt(BaseModel):
    """What the transport hands back for an accepted message."""

    receipt_id: ReceiptID
    status: str = "sent"


class DeliveryOutcome(BaseModel):
    """Result of attempting to deliver a single reminder."""

    record_id: RecordID
    display_name: str
    status: str = Field(..., pattern="^(sent|failed|dry_run)$")
    receipt_id: ReceiptID | None = None
    transport_status: str | None = None
    error_kind: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    latency_ms: int = Field(0, ge=0)
    timestamp: datetime


class RecordIssue(BaseModel):
    """A roster entry that could not be evaluated (bad date, missing field...)."""

    record_id: str | None = None
    message: str


class RunResult(BaseModel):
    """Aggregate outcome of one scheduler invocation."""

    execution_id: ExecutionID
    started_at: datetime
    status: str = Field(
        "completed", pattern="^(completed|cancelled|waiting|disabled|failed)$"
    )
    error: str | None = None

    total_records: int = 0
    eligible: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0  # already notified on this eligibility day
    tested: int = 0  # dry run

    data_errors: list[RecordIssue] = Field(default_factory=list)
    outcomes: list[DeliveryOutcome] = Field(default_factory=list)
    duration_ms: int = 0

    @property
    def success_rate(self) -> float:
        if self.eligible == 0:
            return 0.0
        return self.sent / self.eligible

    @property
    def is_fatal(self) -> bool:
        return self.status == "failed"
