"""Pydantic models for data validation and type checking."""

from models.birthday import LEAD_DAYS, BirthdayRecord, TimingPolicy
from models.run import DeliveryOutcome, RecordIssue, RunResult, SendReceipt

__all__ = [
    "BirthdayRecord",
    "TimingPolicy",
    "LEAD_DAYS",
    "SendReceipt",
    "DeliveryOutcome",
    "RecordIssue",
    "RunResult",
]
