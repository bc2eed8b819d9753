"""Tool implementations exposed by the AdvanceWeekly server."""

from advanceweekly.tools.generate import reflection_generate
from advanceweekly.tools.scheduler import scheduler_run
from advanceweekly.tools.status import reflection_operations, reflection_status

__all__ = [
    "reflection_generate",
    "reflection_operations",
    "reflection_status",
    "scheduler_run",
]
