"""Durable store for async operations and their state machine."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from advanceweekly.db import SessionFactory, get_session
from advanceweekly.errors import (
    DuplicateOperationError,
    InvalidTransitionError,
    OperationNotFoundError,
)
from advanceweekly.models import AsyncOperation, AsyncOperationStatus
from advanceweekly.models.async_operation import ACTIVE_STATUSES

logger = logging.getLogger(__name__)

_PATCHABLE_FIELDS = {"progress", "result_data", "error_message", "metadata", "estimated_duration"}


class OperationStore:
    """Create, read and transition ``AsyncOperation`` records.

    Every method runs in its own short session so that progress written by a
    running job is visible to status pollers immediately.
    """

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    async def create(
        self,
        user_id: UUID,
        operation_type: str,
        input_data: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        week_key: str | None = None,
        estimated_duration: int | None = None,
    ) -> AsyncOperation:
        """Insert a new QUEUED operation.

        Raises:
            DuplicateOperationError: If an active operation already holds the
                same (user, type, week) slot.
        """
        operation = AsyncOperation(
            user_id=user_id,
            operation_type=operation_type,
            status=AsyncOperationStatus.QUEUED,
            week_key=week_key,
            input_data=input_data or {},
            operation_metadata=metadata or {},
            estimated_duration=estimated_duration,
        )
        try:
            async with self._session_factory() as session:
                session.add(operation)
                await session.flush()
        except IntegrityError as exc:
            raise DuplicateOperationError(
                f"An active {operation_type} operation already exists for user {user_id} week {week_key}"
            ) from exc

        logger.debug("Created operation %s (%s) for user %s", operation.id, operation_type, user_id)
        return operation

    async def create_if_absent(
        self,
        user_id: UUID,
        operation_type: str,
        input_data: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        week_key: str | None = None,
        estimated_duration: int | None = None,
    ) -> tuple[AsyncOperation, bool]:
        """Insert unless an active operation holds the slot.

        The unique index decides; there is no read-then-write window.

        Returns:
            Tuple of (operation, created). ``created`` is False when the
            returned operation is the one that was already active.
        """
        for _ in range(2):
            try:
                operation = await self.create(
                    user_id=user_id,
                    operation_type=operation_type,
                    input_data=input_data,
                    metadata=metadata,
                    week_key=week_key,
                    estimated_duration=estimated_duration,
                )
                return operation, True
            except DuplicateOperationError:
                existing = await self.find_active(user_id, operation_type, week_key)
                if existing is not None:
                    return existing, False
                # The holder reached a terminal state in between; try again.

        raise DuplicateOperationError(
            f"Could not claim {operation_type} slot for user {user_id} week {week_key}"
        )

    async def get(self, operation_id: UUID) -> AsyncOperation:
        """Get an operation by ID.

        Raises:
            OperationNotFoundError: If no such operation exists.
        """
        async with self._session_factory() as session:
            operation = await session.get(AsyncOperation, operation_id)
        if operation is None:
            raise OperationNotFoundError(f"Operation {operation_id} not found")
        return operation

    async def update(
        self,
        operation_id: UUID,
        status: AsyncOperationStatus | None = None,
        **patch: Any,
    ) -> AsyncOperation:
        """Apply a status transition and/or a field patch.

        ``metadata`` in the patch is merged into the stored metadata; other
        fields are replaced.

        Raises:
            OperationNotFoundError: If no such operation exists.
            InvalidTransitionError: If the transition is not allowed, or the
                operation is already terminal.
        """
        unknown = set(patch) - _PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch operation fields: {sorted(unknown)}")

        async with self._session_factory() as session:
            operation = await session.get(AsyncOperation, operation_id)
            if operation is None:
                raise OperationNotFoundError(f"Operation {operation_id} not found")

            if status is not None:
                operation.transition_to(status)
            elif operation.is_terminal:
                raise InvalidTransitionError(
                    f"Operation {operation_id} is {operation.status.value} and can no longer change"
                )

            if "metadata" in patch:
                operation.operation_metadata = {
                    **(operation.operation_metadata or {}),
                    **(patch.pop("metadata") or {}),
                }
            for field, value in patch.items():
                setattr(operation, field, value)
            operation.updated_at = datetime.utcnow()

            session.add(operation)
            await session.flush()

        return operation

    async def find_active(
        self,
        user_id: UUID,
        operation_type: str,
        week_key: str | None,
    ) -> AsyncOperation | None:
        """Return the QUEUED/PROCESSING operation for the slot, if any."""
        return await self._find(user_id, operation_type, week_key, ACTIVE_STATUSES)

    async def find_active_or_completed(
        self,
        user_id: UUID,
        operation_type: str,
        week_key: str | None,
    ) -> AsyncOperation | None:
        """Dedup gate: any QUEUED, PROCESSING or COMPLETED operation for the slot."""
        return await self._find(
            user_id,
            operation_type,
            week_key,
            (*ACTIVE_STATUSES, AsyncOperationStatus.COMPLETED),
        )

    async def list_for_user(
        self,
        user_id: UUID,
        operation_type: str | None = None,
        limit: int = 50,
    ) -> list[AsyncOperation]:
        """List a user's operations, newest first."""
        query = select(AsyncOperation).where(AsyncOperation.user_id == user_id)
        if operation_type:
            query = query.where(AsyncOperation.operation_type == operation_type)
        query = query.order_by(AsyncOperation.created_at.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _find(
        self,
        user_id: UUID,
        operation_type: str,
        week_key: str | None,
        statuses: tuple[AsyncOperationStatus, ...],
    ) -> AsyncOperation | None:
        query = select(AsyncOperation).where(
            AsyncOperation.user_id == user_id,
            AsyncOperation.operation_type == operation_type,
            AsyncOperation.status.in_(statuses),
        )
        if week_key is None:
            query = query.where(AsyncOperation.week_key.is_(None))
        else:
            query = query.where(AsyncOperation.week_key == week_key)
        query = query.order_by(AsyncOperation.created_at.desc()).limit(1)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return result.scalar_one_or_none()
