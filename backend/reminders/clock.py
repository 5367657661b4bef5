"""Wall clock and sleeping, pinned to one timezone."""

import threading
import time
from datetime import datetime, tzinfo


class SystemClock:
    """Real time in the configured zone."""

    def __init__(self, tz: tzinfo):
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel_event: threading.Event | None = None) -> bool:
        """
        Sleep for `seconds`, waking early if `cancel_event` is set.

        Returns:
            True if the sleep was cut short by cancellation
        """
        if cancel_event is None:
            time.sleep(seconds)
            return False
        return cancel_event.wait(seconds)
