"""Manual reflection generation and operation status polling."""

import asyncio
import logging
from datetime import date, datetime
from typing import Any
from uuid import UUID

import pytz

from advanceweekly.config import settings
from advanceweekly.errors import OperationNotFoundError
from advanceweekly.models import AsyncOperation, AsyncOperationStatus, OperationType, TriggerType
from advanceweekly.services.dispatcher import JobDispatcher
from advanceweekly.services.operations import OperationStore
from advanceweekly.services.profiles import UserProfileStore
from advanceweekly.weeks import week_from_bounds

logger = logging.getLogger(__name__)


class ReflectionGenerationService:
    """Enqueue reflection operations and report on their progress.

    Operations started without ``wait`` run as background tasks on the
    current event loop; callers poll ``get_status`` with the returned
    operation id.
    """

    operation_type = OperationType.WEEKLY_REFLECTION.value

    def __init__(
        self,
        store: OperationStore,
        dispatcher: JobDispatcher,
        profiles: UserProfileStore,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._profiles = profiles
        self._tasks: set[asyncio.Task] = set()

    async def generate(
        self,
        user_id: UUID,
        trigger_type: TriggerType = TriggerType.MANUAL,
        include_previous_context: bool = True,
        include_integrations: list[str] | None = None,
        week_start: date | None = None,
        test_mode: bool = False,
        wait: bool = False,
    ) -> dict[str, Any]:
        """Start generating a reflection for one week.

        Args:
            user_id: Owner of the reflection.
            trigger_type: Provenance recorded in the operation metadata.
            include_previous_context: Feed last week's reflection to the model.
            include_integrations: Integration types to use; defaults to the
                user's preferences.
            week_start: First day of the target week; defaults to the current
                week in the user's timezone.
            test_mode: Use sample integration data instead of real providers.
            wait: Run the job to completion before returning.

        Returns:
            dict with operation_id and status. Status is
            ``already_processing`` when an operation for the same week is
            still queued or running.
        """
        preferences = await self._profiles.get_reflection_preferences(user_id)
        today = datetime.now(pytz.timezone(preferences.timezone)).date()
        week = week_from_bounds(week_start, None, today)
        trigger = TriggerType(trigger_type)

        input_data = {
            "user_id": str(user_id),
            "week_start": week.start.isoformat(),
            "week_end": week.end.isoformat(),
            "include_previous_context": include_previous_context,
            "include_integrations": include_integrations,
            "test_mode": test_mode,
        }
        operation, created = await self._store.create_if_absent(
            user_id=user_id,
            operation_type=self.operation_type,
            input_data=input_data,
            metadata={
                "trigger_type": trigger.value,
                "test_mode": test_mode,
                "week": week.to_dict(),
            },
            week_key=week.key,
            estimated_duration=settings.advanceweekly_reflection_estimated_duration,
        )

        if not created:
            logger.info("Reflection for user %s week %s already in progress (%s)", user_id, week.key, operation.id)
            return {
                "status": "already_processing",
                "operation_id": str(operation.id),
                "week_key": week.key,
                "progress": operation.progress,
            }

        if wait:
            await self._run(operation, input_data)
            return await self.get_status(operation.id, user_id)

        task = asyncio.create_task(
            self._run(operation, input_data),
            name=f"reflection-{operation.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return {
            "status": AsyncOperationStatus.QUEUED.value,
            "operation_id": str(operation.id),
            "week_key": week.key,
            "estimated_duration": operation.estimated_duration,
        }

    async def get_status(self, operation_id: UUID, user_id: UUID | None = None) -> dict[str, Any]:
        """Current state of an operation.

        Raises:
            OperationNotFoundError: If the operation does not exist or belongs
                to a different user.
        """
        operation = await self._store.get(operation_id)
        if user_id is not None and operation.user_id != user_id:
            raise OperationNotFoundError(f"Operation {operation_id} not found")

        status: dict[str, Any] = {
            "operation_id": str(operation.id),
            "operation_type": operation.operation_type,
            "status": operation.status.value,
            "progress": operation.progress,
            "week_key": operation.week_key,
            "metadata": operation.operation_metadata,
            "is_complete": operation.is_terminal,
            "created_at": operation.created_at.isoformat(),
        }
        if operation.status == AsyncOperationStatus.COMPLETED:
            status["result_data"] = operation.result_data
        if operation.status == AsyncOperationStatus.FAILED:
            status["error_message"] = operation.error_message
        time_remaining = operation.time_remaining()
        if time_remaining is not None:
            status["time_remaining"] = time_remaining
        return status

    async def list_operations(
        self,
        user_id: UUID,
        operation_type: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """A user's operations, newest first."""
        operations = await self._store.list_for_user(user_id, operation_type=operation_type, limit=limit)
        return [
            {
                "operation_id": str(op.id),
                "operation_type": op.operation_type,
                "status": op.status.value,
                "progress": op.progress,
                "week_key": op.week_key,
                "trigger_type": (op.operation_metadata or {}).get("trigger_type"),
                "created_at": op.created_at.isoformat(),
                "completed_at": op.completed_at.isoformat() if op.completed_at else None,
                "is_complete": op.is_terminal,
            }
            for op in operations
        ]

    async def drain(self) -> None:
        """Wait for background operations started by this service."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self, operation: AsyncOperation, input_data: dict[str, Any]) -> None:
        try:
            await self._dispatcher.process_job(
                operation.operation_type,
                operation.user_id,
                operation.id,
                input_data,
            )
        except Exception as exc:
            # The dispatcher has already recorded the failure on the operation
            logger.warning("Reflection operation %s ended with error: %s", operation.id, exc)
