"""reflection_generate tool for starting a weekly reflection draft."""

from advanceweekly.models import TriggerType
from advanceweekly.runtime import Runtime, get_runtime
from advanceweekly.tools.common import parse_date, parse_user_id


async def reflection_generate(
    user_id: str = "default",
    week_start: str | None = None,
    include_previous_context: bool = True,
    include_integrations: list[str] | None = None,
    test_mode: bool = False,
    wait: bool = False,
    runtime: Runtime | None = None,
) -> dict:
    """Start generating a weekly reflection draft.

    Args:
        user_id: User identifier (default: "default").
        week_start: ISO date of the week's first day. Defaults to the current
            week in the user's timezone.
        include_previous_context: Use last week's reflection for continuity.
        include_integrations: Integration types to draw from (default: the
            user's preferences).
        test_mode: Use sample calendar data instead of real integrations.
        wait: Block until the operation finishes.

    Returns:
        dict with operation_id and status ("queued", "already_processing",
        or the final status when wait=True).

    Example:
        >>> reflection_generate(user_id="3f0c...", test_mode=True)
        {"status": "queued", "operation_id": "9b1e...", "week_key": "2026-W42", "estimated_duration": 180}
    """
    try:
        week = parse_date(week_start)
    except ValueError:
        return {"status": "error", "reason": f"Invalid week_start: {week_start}"}

    runtime = runtime or get_runtime()
    return await runtime.generation.generate(
        user_id=parse_user_id(user_id),
        trigger_type=TriggerType.TEST if test_mode else TriggerType.MANUAL,
        include_previous_context=include_previous_context,
        include_integrations=include_integrations,
        week_start=week,
        test_mode=test_mode,
        wait=wait,
    )
