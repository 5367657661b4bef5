"""Shared type definitions for type checking.

Uses NewType for IDs to provide compile-time type safety - prevents mixing
different ID types (e.g., passing a ReceiptID where a RecordID is expected).

Uses TypeAlias for simple structural types.
"""

from typing import NewType, TypeAlias

# ID types using NewType for type safety
RecordID = NewType("RecordID", str)
ReceiptID = NewType("ReceiptID", str)
ExecutionID = NewType("ExecutionID", str)

# Structural aliases using TypeAlias
EventDateString: TypeAlias = str  # YYYY-MM-DD or MM-DD
SendTime: TypeAlias = str  # HH:MM, 24-hour clock
Destination: TypeAlias = str  # email address or E.164 phone number
