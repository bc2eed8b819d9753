"""In-process hourly trigger for the reflection scheduler.

Runs ``HourlyReflectionScheduler.check_and_process_users`` at the top of every
hour with APScheduler. Deployments that use an external cron hitting
``/internal/scheduler/run`` do not need this.

Usage:
    python -m advanceweekly.scheduler_runner
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from advanceweekly.config import settings
from advanceweekly.models import TriggerType
from advanceweekly.runtime import Runtime, get_runtime
from advanceweekly.weeks import most_recently_completed_week

logger = logging.getLogger(__name__)

REFLECTION_CHECK_JOB_ID = "hourly_reflection_check"


class ReflectionSchedulerRunner:
    """Owns the APScheduler instance that drives hourly reflection checks."""

    def __init__(self, runtime: Runtime | None = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._runtime = runtime

    @property
    def runtime(self) -> Runtime:
        if self._runtime is None:
            self._runtime = get_runtime()
        return self._runtime

    def start(self) -> None:
        """Start the scheduler. Must be called with a running event loop."""
        if self.scheduler is not None and self.scheduler.running:
            logger.info("Reflection scheduler already running")
            return

        self.scheduler = AsyncIOScheduler(timezone=pytz.utc)
        self.scheduler.add_job(
            self._reflection_check_job,
            CronTrigger(minute=settings.advanceweekly_scheduler_cron_minute, timezone=pytz.utc),
            id=REFLECTION_CHECK_JOB_ID,
            name="Hourly Reflection Check",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(
            "Reflection scheduler started (minute=%s)",
            settings.advanceweekly_scheduler_cron_minute,
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.scheduler:
            self.scheduler.shutdown()
            self.scheduler = None
            logger.info("Reflection scheduler stopped")

    async def trigger_now(self) -> dict[str, int]:
        """Run one scheduler pass immediately."""
        logger.info("Manually triggering reflection check")
        return await self.runtime.scheduler.check_and_process_users()

    async def trigger_user(self, user_id: UUID) -> dict[str, Any]:
        """Generate the user's most recently completed week right away, ignoring their preferred time."""
        logger.info("Manually triggering reflection for user %s", user_id)
        preferences = await self.runtime.profiles.get_reflection_preferences(user_id)
        today = datetime.now(pytz.timezone(preferences.timezone)).date()
        week = most_recently_completed_week(today)
        return await self.runtime.generation.generate(
            user_id=user_id,
            trigger_type=TriggerType.SCHEDULED,
            include_integrations=preferences.include_integrations,
            week_start=week.start,
            wait=True,
        )

    def status(self) -> dict[str, Any]:
        """Whether the scheduler runs and when the next check fires."""
        if not self.scheduler:
            return {"running": False, "jobs": {}}

        jobs = {}
        for job in self.scheduler.get_jobs():
            jobs[job.id] = {
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
        return {"running": self.scheduler.running, "jobs": jobs}

    async def _reflection_check_job(self) -> None:
        try:
            await self.runtime.scheduler.check_and_process_users()
        except Exception:
            logger.exception("Hourly reflection check failed")


async def _main() -> None:
    runner = ReflectionSchedulerRunner()
    runner.start()
    try:
        await asyncio.Event().wait()
    finally:
        runner.stop()


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, settings.advanceweekly_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass
