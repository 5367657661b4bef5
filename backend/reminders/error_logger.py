"""
Error report files for failed sends, failed write-backs and aborted runs.

Reports are a write-only sink: if one cannot be written, a warning is printed
and the run carries on.
"""

import os
from datetime import datetime
from typing import Any


def log_reminder_error(
    error_type: str,
    error_message: str,
    context: dict[str, Any] | None = None,
    log_dir: str | None = None,
) -> str | None:
    """
    Write a timestamped report for one reminder error.

    Args:
        error_type: 'sending', 'write_back' or 'fetch'
        error_message: The error message
        context: Extra key/value pairs (record_id, execution_id, ...)
        log_dir: Directory for the report (defaults to ./logs)

    Returns:
        Path to the report, or None if it could not be written
    """
    now = datetime.now()
    log_dir = log_dir or os.path.join(os.getcwd(), "logs")
    # Microseconds keep reports from the same second apart
    path = os.path.join(log_dir, f"reminder_error_{error_type}_{now.strftime('%Y%m%d_%H%M%S_%f')}.txt")

    lines = [
        f"Reminder Error Report - {now.isoformat(timespec='seconds')}",
        f"Error Type: {error_type}",
        f"Error Message: {error_message}",
    ]
    lines += [f"{key}: {value}" for key, value in (context or {}).items()]

    try:
        os.makedirs(log_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except OSError as e:
        print(f"  ⚠️  Could not write error report to {log_dir}: {e}")
        return None

    return path
