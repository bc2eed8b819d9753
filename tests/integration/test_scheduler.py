"""Integration tests for the hourly reflection scheduler."""

from datetime import datetime

import pytest
import pytz

from advanceweekly.errors import IntegrationError
from advanceweekly.models import AsyncOperationStatus, OperationType
from advanceweekly.runtime import build_runtime
from advanceweekly.services.integrations import IntegrationGateway
from advanceweekly.services.scheduler import ScheduleOutcome
from tests.factories import OptedOutUserProfileFactory, UserProfileFactory

WEEKLY = OperationType.WEEKLY_REFLECTION.value

# Friday 2026-10-16 14:15 in New York (EDT, UTC-4)
FRIDAY_2PM_NEW_YORK = datetime(2026, 10, 16, 18, 15, tzinfo=pytz.utc)
LAST_WEEK_KEY = "2026-W41"


async def _add(session_factory, *profiles):
    async with session_factory() as session:
        for profile in profiles:
            session.add(profile)
    return profiles


class TestProcessUser:
    """Tests for process_user."""

    async def test_due_user_gets_last_weeks_reflection(self, runtime, user_profile):
        """Test a due user gets last week's reflection."""
        outcome = await runtime.scheduler.process_user(user_profile, FRIDAY_2PM_NEW_YORK)

        assert outcome == ScheduleOutcome.PROCESSED
        [operation] = await runtime.store.list_for_user(user_profile.id)
        assert operation.status == AsyncOperationStatus.COMPLETED
        assert operation.week_key == LAST_WEEK_KEY
        assert operation.operation_metadata["trigger_type"] == "scheduled"
        assert operation.operation_metadata["timezone"] == "America/New_York"
        assert operation.operation_metadata["preferred_time"] == "friday 14:00"
        assert operation.result_data["week_key"] == LAST_WEEK_KEY
        assert operation.input_data["week_start"] == "2026-10-05"

    @pytest.mark.parametrize(
        "now",
        [
            datetime(2026, 10, 16, 17, 59, tzinfo=pytz.utc),  # Friday 13:59 New York
            datetime(2026, 10, 16, 19, 0, tzinfo=pytz.utc),  # Friday 15:00 New York
            datetime(2026, 10, 15, 18, 15, tzinfo=pytz.utc),  # Thursday 14:15 New York
        ],
    )
    async def test_not_due(self, runtime, user_profile, fake_llm, now):
        """Test a user outside their preferred hour is left alone."""
        outcome = await runtime.scheduler.process_user(user_profile, now)

        assert outcome == ScheduleOutcome.NOT_DUE
        assert await runtime.store.list_for_user(user_profile.id) == []
        assert fake_llm.calls == []

    async def test_completed_week_is_skipped(self, runtime, user_profile, fake_llm):
        """Test a week with a completed operation is skipped."""
        await runtime.scheduler.process_user(user_profile, FRIDAY_2PM_NEW_YORK)
        calls = len(fake_llm.calls)

        outcome = await runtime.scheduler.process_user(user_profile, FRIDAY_2PM_NEW_YORK)

        assert outcome == ScheduleOutcome.SKIPPED
        assert len(await runtime.store.list_for_user(user_profile.id)) == 1
        assert len(fake_llm.calls) == calls

    async def test_active_operation_is_skipped(self, runtime, user_profile, fake_llm):
        """Test a week with an active operation is skipped."""
        existing = await runtime.store.create(user_profile.id, WEEKLY, week_key=LAST_WEEK_KEY)

        outcome = await runtime.scheduler.process_user(user_profile, FRIDAY_2PM_NEW_YORK)

        assert outcome == ScheduleOutcome.SKIPPED
        [operation] = await runtime.store.list_for_user(user_profile.id)
        assert operation.id == existing.id
        assert fake_llm.calls == []

    async def test_failed_week_is_retried(self, runtime, user_profile):
        """Test a failed week is retried while still due."""
        failed = await runtime.store.create(user_profile.id, WEEKLY, week_key=LAST_WEEK_KEY)
        await runtime.store.update(failed.id, AsyncOperationStatus.PROCESSING)
        await runtime.store.update(failed.id, AsyncOperationStatus.FAILED, error_message="boom")

        outcome = await runtime.scheduler.process_user(user_profile, FRIDAY_2PM_NEW_YORK)

        assert outcome == ScheduleOutcome.PROCESSED

    async def test_errors_propagate(self, session_factory, user_profile, fake_llm):
        """Test process_user lets job errors propagate."""
        runtime = build_runtime(session_factory=session_factory, llm=fake_llm, gateway=IntegrationGateway())

        with pytest.raises(IntegrationError):
            await runtime.scheduler.process_user(user_profile, FRIDAY_2PM_NEW_YORK)

        [operation] = await runtime.store.list_for_user(user_profile.id)
        assert operation.status == AsyncOperationStatus.FAILED


class FailingForUser:
    """Calendar provider that fails for one user only."""

    def __init__(self, failing_user_id, delegate):
        self.failing_user_id = failing_user_id
        self.delegate = delegate

    async def fetch_weekly_data(self, user_id, week_start, week_end):
        if user_id == self.failing_user_id:
            raise IntegrationError("calendar unavailable")
        return await self.delegate.fetch_weekly_data(user_id, week_start, week_end)


class TestCheckAndProcessUsers:
    """Tests for a full scheduler pass."""

    async def test_processes_due_users_and_ignores_opted_out(self, runtime, session_factory, user_profile):
        """Test a run covers due users and skips opted-out ones."""
        opted_out = OptedOutUserProfileFactory()
        tokyo = UserProfileFactory(
            reflection_preferences={"preferred_day": "friday", "preferred_hour": 14, "timezone": "Asia/Tokyo"}
        )
        await _add(session_factory, opted_out, tokyo)

        summary = await runtime.scheduler.check_and_process_users(FRIDAY_2PM_NEW_YORK)

        assert summary == {"processed": 1, "skipped": 0, "not_due": 1, "failed": 0}
        assert await runtime.store.list_for_user(opted_out.id) == []
        assert await runtime.store.list_for_user(tokyo.id) == []

    async def test_one_failure_does_not_stop_others(self, session_factory, fake_llm, calendar_provider):
        """Test one user's failure does not stop the rest."""
        healthy = UserProfileFactory()
        broken = UserProfileFactory()
        await _add(session_factory, healthy, broken)
        gateway = IntegrationGateway(
            providers={"google_calendar": FailingForUser(broken.id, calendar_provider)}
        )
        runtime = build_runtime(session_factory=session_factory, llm=fake_llm, gateway=gateway, max_concurrency=1)

        summary = await runtime.scheduler.check_and_process_users(FRIDAY_2PM_NEW_YORK)

        assert summary["processed"] == 1
        assert summary["failed"] == 1
        [healthy_op] = await runtime.store.list_for_user(healthy.id)
        [broken_op] = await runtime.store.list_for_user(broken.id)
        assert healthy_op.status == AsyncOperationStatus.COMPLETED
        assert broken_op.status == AsyncOperationStatus.FAILED
        assert broken_op.error_message == "calendar unavailable"

    async def test_invalid_preferences_are_skipped(self, runtime, session_factory, user_profile):
        """Test users with invalid preferences are left out of the run."""
        broken = UserProfileFactory(reflection_preferences={"timezone": "Not/AZone"})
        await _add(session_factory, broken)

        summary = await runtime.scheduler.check_and_process_users(FRIDAY_2PM_NEW_YORK)

        assert summary["processed"] == 1
        assert summary["failed"] == 0

    async def test_no_users(self, runtime):
        """Test a run with no users."""
        summary = await runtime.scheduler.check_and_process_users(FRIDAY_2PM_NEW_YORK)
        assert summary == {"processed": 0, "skipped": 0, "not_due": 0, "failed": 0}
