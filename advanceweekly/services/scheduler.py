"""Hourly scheduler for automatic weekly reflection generation.

Invoked once an hour (by the in-process APScheduler runner or an external
trigger hitting the internal route). Each run looks at every user with
automatic generation on and processes those whose preferred local day and
hour match the current time.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime
from enum import Enum

import pytz

from advanceweekly.config import settings
from advanceweekly.models import OperationType, ReflectionPreferences, TriggerType, UserProfile
from advanceweekly.services.dispatcher import JobDispatcher
from advanceweekly.services.operations import OperationStore
from advanceweekly.services.profiles import UserProfileStore
from advanceweekly.weeks import most_recently_completed_week

logger = logging.getLogger(__name__)


class ScheduleOutcome(str, Enum):
    """What happened to one user in a scheduler run."""

    NOT_DUE = "not_due"
    SKIPPED = "skipped"
    PROCESSED = "processed"


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return pytz.utc.localize(now)
    return now.astimezone(pytz.utc)


def local_time(preferences: ReflectionPreferences, now: datetime) -> datetime:
    """``now`` expressed in the user's timezone."""
    return _as_utc(now).astimezone(pytz.timezone(preferences.timezone))


def is_due(preferences: ReflectionPreferences, now: datetime) -> bool:
    """True when the local weekday and hour match the user's preferred time.

    Naive datetimes are taken to be UTC.
    """
    local = local_time(preferences, now)
    return (
        local.weekday() == preferences.preferred_day.weekday
        and local.hour == preferences.preferred_hour
    )


class HourlyReflectionScheduler:
    """Create and run scheduled reflection operations for due users."""

    operation_type = OperationType.WEEKLY_REFLECTION.value

    def __init__(
        self,
        profiles: UserProfileStore,
        store: OperationStore,
        dispatcher: JobDispatcher,
        max_concurrency: int | None = None,
    ):
        self._profiles = profiles
        self._store = store
        self._dispatcher = dispatcher
        self._max_concurrency = max(1, max_concurrency or settings.advanceweekly_scheduler_max_concurrency)

    async def check_and_process_users(self, now: datetime | None = None) -> dict[str, int]:
        """Process every auto-generate user once.

        One user's failure never stops the others; it is logged and counted.

        Returns:
            Counts per outcome plus ``failed``.
        """
        now = _as_utc(now or datetime.now(pytz.utc))
        users = await self._profiles.list_auto_generate_users()
        logger.info("Scheduler run at %s: %d auto-generate user(s)", now.isoformat(), len(users))

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run_one(user: UserProfile) -> str:
            async with semaphore:
                try:
                    outcome = await self.process_user(user, now)
                except Exception:
                    logger.exception("Scheduled reflection failed for user %s", user.id)
                    return "failed"
                return outcome.value

        outcomes = await asyncio.gather(*(run_one(user) for user in users))

        summary = Counter({outcome.value: 0 for outcome in ScheduleOutcome})
        summary["failed"] = 0
        summary.update(outcomes)
        logger.info(
            "Scheduler run complete: %d processed, %d skipped, %d not due, %d failed",
            summary[ScheduleOutcome.PROCESSED.value],
            summary[ScheduleOutcome.SKIPPED.value],
            summary[ScheduleOutcome.NOT_DUE.value],
            summary["failed"],
        )
        return dict(summary)

    async def process_user(self, user: UserProfile, now: datetime) -> ScheduleOutcome:
        """Generate last week's reflection for ``user`` if it is their time.

        Raises:
            Exception: Whatever creating or running the operation raised.
        """
        preferences = user.preferences
        if not preferences.auto_generate or not is_due(preferences, now):
            return ScheduleOutcome.NOT_DUE

        week = most_recently_completed_week(local_time(preferences, now).date())

        existing = await self._store.find_active_or_completed(user.id, self.operation_type, week.key)
        if existing is not None:
            logger.info(
                "Skipping user %s for %s: operation %s is %s",
                user.id,
                week.key,
                existing.id,
                existing.status.value,
            )
            return ScheduleOutcome.SKIPPED

        input_data = {
            "user_id": str(user.id),
            "week_start": week.start.isoformat(),
            "week_end": week.end.isoformat(),
            "include_previous_context": True,
            "include_integrations": preferences.include_integrations,
            "test_mode": False,
        }
        operation, created = await self._store.create_if_absent(
            user_id=user.id,
            operation_type=self.operation_type,
            input_data=input_data,
            metadata={
                "trigger_type": TriggerType.SCHEDULED.value,
                "timezone": preferences.timezone,
                "preferred_time": preferences.preferred_time_label,
                "week": week.to_dict(),
            },
            week_key=week.key,
            estimated_duration=settings.advanceweekly_reflection_estimated_duration,
        )
        if not created:
            logger.info("Skipping user %s for %s: operation %s already active", user.id, week.key, operation.id)
            return ScheduleOutcome.SKIPPED

        logger.info("Generating scheduled reflection for user %s, week %s", user.id, week.key)
        await self._dispatcher.process_job(self.operation_type, user.id, operation.id, input_data)
        return ScheduleOutcome.PROCESSED
