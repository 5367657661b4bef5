"""
Daily execution log.

Every run appends its full result as JSON to logs/execution-YYYY-MM-DD.log,
entries separated by '---'. The daily report reads it back to show when the
engine last ran.
"""

import json
import os
from datetime import date

from models import RunResult

ENTRY_SEPARATOR = "\n---\n"


def execution_log_path(log_dir: str | None, day: date) -> str:
    log_dir = log_dir or os.path.join(os.getcwd(), "logs")
    return os.path.join(log_dir, f"execution-{day.isoformat()}.log")


def save_run_log(result: RunResult, log_dir: str | None = None) -> str | None:
    """
    Append a run result to the daily execution log.

    Returns:
        Path to the log file, or None if it could not be written
    """
    path = execution_log_path(log_dir, result.started_at.date())
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(result.model_dump_json(indent=2))
            f.write(ENTRY_SEPARATOR)
    except OSError as e:
        print(f"⚠️  Could not write execution log {path}: {e}")
        return None

    return path


def read_run_log(log_dir: str | None, day: date) -> list[RunResult]:
    """Load every run recorded for a day (empty if there is no log)."""
    path = execution_log_path(log_dir, day)
    if not os.path.exists(path):
        return []

    with open(path, encoding="utf-8") as f:
        content = f.read()

    runs = []
    for chunk in content.split(ENTRY_SEPARATOR):
        if not chunk.strip():
            continue
        try:
            runs.append(RunResult.model_validate(json.loads(chunk)))
        except ValueError:
            print(f"⚠️  Skipping unreadable entry in {path}")
    return runs
