from datetime import datetime

from models import RunResult


def format_duration(duration_ms: int) -> str:
    """Render a millisecond duration as '850ms' or '4.2s'."""
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    return f"{duration_ms / 1000:.1f}s"


def print_run_summary(result: RunResult) -> None:
    """Print reminder run summary."""
    print(f"\n{'=' * 60}")
    print(f"[{datetime.now(result.started_at.tzinfo)}] Reminder Run {result.status.title()}")
    print(f"{'=' * 60}")
    print(f"Execution:    {result.execution_id}")
    print(f"Records:      {result.total_records}")
    print(f"Eligible:     {result.eligible}")
    print(f"✓ Sent:       {result.sent}")
    print(f"✗ Failed:     {result.failed}")
    print(f"⊘ Skipped:    {result.skipped} (already notified today)")
    if result.tested:
        print(f"🧪 Dry run:   {result.tested}")
    if result.data_errors:
        print(f"⚠️  Bad data:  {len(result.data_errors)}")
    print(f"Success rate: {result.success_rate * 100:.1f}%")
    print(f"Duration:     {format_duration(result.duration_ms)}")
    if result.error:
        print(f"Error:        {result.error}")
    print(f"{'=' * 60}\n")
