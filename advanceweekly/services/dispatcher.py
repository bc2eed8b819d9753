"""Job dispatcher: runs a registered handler against an async operation."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Protocol
from uuid import UUID

from advanceweekly.errors import UnknownOperationTypeError
from advanceweekly.models import AsyncOperationStatus
from advanceweekly.services.operations import OperationStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str | None], Awaitable[None]]


@dataclass
class JobContext:
    """What a handler may know about the operation it is running."""

    user_id: UUID
    operation_id: UUID
    update_progress: ProgressCallback
    metadata: dict[str, Any] = field(default_factory=dict)


class JobHandler(Protocol):
    """Business logic for one operation type."""

    operation_type: str
    estimated_duration: int

    async def process(self, input_data: dict[str, Any], context: JobContext) -> dict[str, Any]:
        """Run the job and return a JSON-serializable result."""


class JobDispatcher:
    """Map operation types to handlers and drive operations to a terminal state.

    The handler map is owned by the instance; build it at startup and pass it
    in, or call ``register_handler`` on the instance.
    """

    def __init__(
        self,
        store: OperationStore,
        handlers: dict[str, JobHandler] | None = None,
    ):
        self._store = store
        self._handlers: dict[str, JobHandler] = dict(handlers or {})

    def register_handler(self, operation_type: str, handler: JobHandler) -> None:
        self._handlers[operation_type] = handler
        logger.info("Registered job handler: %s", operation_type)

    def resolve(self, operation_type: str) -> JobHandler:
        handler = self._handlers.get(operation_type)
        if handler is None:
            raise UnknownOperationTypeError(f"No handler registered for job type: {operation_type}")
        return handler

    @property
    def operation_types(self) -> list[str]:
        return sorted(self._handlers)

    async def process_job(
        self,
        operation_type: str,
        user_id: UUID,
        operation_id: UUID,
        input_data: dict[str, Any],
    ) -> dict[str, Any]:
        """Run the handler for ``operation_type`` and record the outcome.

        Returns:
            The handler's result, also stored as the operation's result_data.

        Raises:
            UnknownOperationTypeError: Before any state change, if no handler
                is registered.
            Exception: Whatever the handler raised, after the operation has
                been marked FAILED with the exception's message. A failure to
                store the result also marks the operation FAILED and is raised.
        """
        handler = self.resolve(operation_type)

        logger.info("Processing job %s for user %s, operation %s", operation_type, user_id, operation_id)
        await self._store.update(
            operation_id,
            AsyncOperationStatus.PROCESSING,
            progress=0,
            metadata={"job_type": operation_type},
        )

        async def update_progress(percent: int, message: str | None = None) -> None:
            metadata = {"last_updated": datetime.utcnow().isoformat()}
            if message:
                metadata["current_step"] = message
            await self._store.update(
                operation_id,
                progress=min(100, max(0, int(percent))),
                metadata=metadata,
            )

        context = JobContext(
            user_id=user_id,
            operation_id=operation_id,
            update_progress=update_progress,
            metadata={"job_type": operation_type},
        )

        started = time.monotonic()
        try:
            result = await handler.process(input_data, context)
        except Exception as exc:
            logger.exception("Job %s failed for user %s (operation %s)", operation_type, user_id, operation_id)
            await self._mark_failed(operation_id, str(exc) or exc.__class__.__name__, started, exc)
            raise

        duration_ms = int((time.monotonic() - started) * 1000)
        try:
            await self._store.update(
                operation_id,
                AsyncOperationStatus.COMPLETED,
                progress=100,
                result_data=result,
                metadata={"duration_ms": duration_ms, "completed_at": datetime.utcnow().isoformat()},
            )
        except Exception as exc:
            logger.exception("Could not record result for operation %s", operation_id)
            await self._mark_failed(operation_id, f"Could not record result: {exc}", started, exc)
            raise

        logger.info(
            "Job %s completed for user %s in %dms (operation %s)",
            operation_type,
            user_id,
            duration_ms,
            operation_id,
        )
        return result

    async def _mark_failed(
        self,
        operation_id: UUID,
        message: str,
        started: float,
        cause: Exception,
    ) -> None:
        """Record FAILED so the operation releases its slot.

        If the write itself fails, that error is raised with ``cause`` chained.
        """
        duration_ms = int((time.monotonic() - started) * 1000)
        try:
            await self._store.update(
                operation_id,
                AsyncOperationStatus.FAILED,
                error_message=message,
                metadata={"duration_ms": duration_ms, "failed_at": datetime.utcnow().isoformat()},
            )
        except Exception as write_exc:
            logger.exception("Could not mark operation %s as failed", operation_id)
            raise write_exc from cause
