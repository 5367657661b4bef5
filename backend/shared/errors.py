"""Exception types shared across the reminder engine."""


class ReminderError(Exception):
    """Base class for every error raised by the reminder engine."""


class ConfigError(ReminderError):
    """Invalid configuration. Fatal at startup, before any record is read."""


class DataError(ReminderError):
    """A roster entry that cannot be evaluated. The record is skipped."""

    def __init__(self, message: str, record_id: str | None = None):
        super().__init__(message)
        self.record_id = record_id


class StoreError(ReminderError):
    """Record store unreachable, or the row to update does not exist."""


class TransportError(ReminderError):
    """The outbound messaging API refused the message or could not be reached."""

    def __init__(self, code: str, message: str):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
