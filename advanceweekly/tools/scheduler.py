"""scheduler_run tool: one pass of the hourly reflection scheduler."""

from datetime import datetime

from advanceweekly.runtime import Runtime, get_runtime


async def scheduler_run(now: str | None = None, runtime: Runtime | None = None) -> dict:
    """Process every auto-generate user whose preferred time is now.

    Args:
        now: Optional ISO datetime to evaluate instead of the current time
            (naive values are UTC).

    Returns:
        dict with status and per-outcome counts.
    """
    try:
        at = datetime.fromisoformat(now) if now else None
    except ValueError:
        return {"status": "error", "reason": f"Invalid datetime: {now}"}

    runtime = runtime or get_runtime()
    summary = await runtime.scheduler.check_and_process_users(at)
    return {"status": "completed", **summary}
